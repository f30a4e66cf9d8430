"""三次掷茭之后的最终结论卡片。"""

from __future__ import annotations

from typing import Sequence

from divination.models import ThrowOutcome, Verdict
from .client import ask_llm
from .persona import FORTUNE_TELLER_PERSONA, complaint_or_default, describe_outcomes

TEMPERATURE = 0.9

SYSTEM_PROMPT = (
    f"{FORTUNE_TELLER_PERSONA}\n"
    "最终判断规则：至少两次圣杯为吉（QUIT，建议辞职）；否则至少两次阴杯为凶（STAY，建议留下）；"
    "其余情况一律暂缓决定（MAYBE，建议摸鱼）。\n"
    "只返回如下 JSON：\n"
    "{\n"
    '  "cardTitle": "卡片标题（8-12字，有创意、有幽默感）",\n'
    '  "cardSubtitle": "副标题（10-15字，要搞笑）",\n'
    '  "stamp": "印章文字（2-4字）",\n'
    '  "interpretation": "解读（30-50字，搞笑、扎心或爽快）",\n'
    '  "divinationText": "掷茭总结（20-30字）",\n'
    '  "finalResult": "QUIT" | "STAY" | "MAYBE"\n'
    "}"
)


def _build_prompt(complaint: str, outcomes: Sequence[ThrowOutcome], verdict: Verdict) -> str:
    return (
        f"打工人的吐槽：{complaint_or_default(complaint)}\n\n"
        f"三次掷茭结果：\n{describe_outcomes(outcomes)}\n\n"
        f"按规则，最终结论是 {verdict.value}（{verdict.label}），finalResult 必须填写它。\n"
        "请生成最终的占卜结果卡片，记住要幽默搞笑，让打工人看了会心一笑！"
    )


async def generate_verdict_card(complaint: str, outcomes: Sequence[ThrowOutcome], verdict: Verdict) -> str:
    """返回模型的原始 JSON 文本，由调用方解析。"""
    return await ask_llm(
        _build_prompt(complaint, outcomes, verdict),
        system_instruction=SYSTEM_PROMPT,
        temperature=TEMPERATURE,
        json_output=True,
    )
