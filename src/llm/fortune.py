"""基于 Gemini 的文案服务：把模型的 JSON 回答变成点评文字和结论卡片。"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Sequence

from divination.models import CARD_SOURCE_SERVICE, ThrowOutcome, Verdict, VerdictCard
from divination.service import FortuneServiceError, FortuneServiceUnavailable
from divination.throws import classify
from .client import GeminiClientError, GeminiUnavailableError, is_configured
from .throw_comment import generate_throw_comment
from .verdict_card import generate_verdict_card

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")

# 模型字段名 -> VerdictCard 字段名
CARD_FIELDS = {
    "cardTitle": "title",
    "cardSubtitle": "subtitle",
    "stamp": "stamp",
    "interpretation": "interpretation",
    "divinationText": "summary",
}


def _load_json(raw: str) -> Dict[str, Any]:
    text = _FENCE_RE.sub("", (raw or "").strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FortuneServiceError(f"文案服务返回的不是合法 JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise FortuneServiceError("文案服务返回的 JSON 不是对象")
    return data


def _required_text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise FortuneServiceError(f"文案服务的回答缺少字段 {key}")
    return value.strip()


def parse_throw_comment(raw: str) -> str:
    return _required_text(_load_json(raw), "text")


def parse_verdict_card(raw: str) -> VerdictCard:
    data = _load_json(raw)
    fields = {target: _required_text(data, source) for source, target in CARD_FIELDS.items()}
    try:
        verdict = Verdict(_required_text(data, "finalResult").upper())
    except ValueError as exc:
        raise FortuneServiceError(f"未知的结论 {data.get('finalResult')!r}") from exc
    return VerdictCard(verdict=verdict, source=CARD_SOURCE_SERVICE, **fields)


class GeminiFortuneService:
    """文案服务的 Gemini 实现。

    没有配置密钥时不发出任何请求，直接抛出 FortuneServiceUnavailable。
    超时由掷茭编排器控制，这里只负责一次请求和解析。
    """

    def _ensure_available(self) -> None:
        if not is_configured():
            raise FortuneServiceUnavailable("GEMINI_API_KEY 未设置")

    async def comment_on_throw(self, complaint: str, outcome: ThrowOutcome, index: int) -> str:
        self._ensure_available()
        try:
            raw = await generate_throw_comment(complaint, outcome, index)
        except GeminiUnavailableError as exc:
            raise FortuneServiceUnavailable(str(exc)) from exc
        except GeminiClientError as exc:
            raise FortuneServiceError(str(exc)) from exc
        return parse_throw_comment(raw)

    async def produce_card(self, complaint: str, outcomes: Sequence[ThrowOutcome]) -> VerdictCard:
        self._ensure_available()
        outcomes = tuple(outcomes)
        try:
            raw = await generate_verdict_card(complaint, outcomes, classify(outcomes))
        except GeminiUnavailableError as exc:
            raise FortuneServiceUnavailable(str(exc)) from exc
        except GeminiClientError as exc:
            raise FortuneServiceError(str(exc)) from exc
        card = parse_verdict_card(raw)
        logger.info("Gemini verdict card: %s (%s)", card.verdict.value, card.title)
        return card


__all__ = [
    "GeminiFortuneService",
    "parse_throw_comment",
    "parse_verdict_card",
]
