"""单次掷茭的搞笑点评。"""

from __future__ import annotations

from divination.models import ThrowOutcome
from .client import ask_llm
from .persona import FORTUNE_TELLER_PERSONA, complaint_or_default

MIN_LENGTH = 15
MAX_LENGTH = 25
TEMPERATURE = 0.9

SYSTEM_PROMPT = (
    f"{FORTUNE_TELLER_PERSONA}\n"
    f"请为这一次掷茭写一句搞笑的解读，{MIN_LENGTH}-{MAX_LENGTH}字。\n"
    '只返回 JSON：{"text": "这次掷茭的搞笑解读"}'
)


def _build_prompt(complaint: str, outcome: ThrowOutcome, index: int) -> str:
    return (
        f"打工人的吐槽：{complaint_or_default(complaint)}\n\n"
        f"这是第 {index + 1} 次掷茭，结果是：{outcome.label}\n\n"
        "请生成一句搞笑的解读。"
    )


async def generate_throw_comment(complaint: str, outcome: ThrowOutcome, index: int) -> str:
    """返回模型的原始 JSON 文本，由调用方解析。"""
    return await ask_llm(
        _build_prompt(complaint, outcome, index),
        system_instruction=SYSTEM_PROMPT,
        temperature=TEMPERATURE,
        json_output=True,
    )
