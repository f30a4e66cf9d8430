"""掷杯茭仪式的数据模型：掷茭结果、结论、卡片与会话。"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

THROWS_PER_RITUAL = 3


class ThrowOutcome(str, Enum):
    """一次掷茭的结果，值即为对外传输的符号。"""

    AFFIRM = "SHENG"
    DOUBT = "XIAO"
    DENY = "YIN"

    @property
    def label(self) -> str:
        return _OUTCOME_LABELS[self]


_OUTCOME_LABELS = {
    ThrowOutcome.AFFIRM: "圣杯",
    ThrowOutcome.DOUBT: "笑杯",
    ThrowOutcome.DENY: "阴杯",
}


class Verdict(str, Enum):
    PROCEED = "QUIT"
    HOLD = "STAY"
    DEFER = "MAYBE"

    @property
    def label(self) -> str:
        return _VERDICT_LABELS[self]


_VERDICT_LABELS = {
    Verdict.PROCEED: "建议辞职",
    Verdict.HOLD: "建议留下",
    Verdict.DEFER: "建议摸鱼",
}


class SequencerPhase(str, Enum):
    IDLE = "idle"
    AWAITING_THROW = "awaiting_throw"
    THROW_IN_FLIGHT = "throw_in_flight"
    THROW_SETTLED = "throw_settled"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ThrowRecord:
    index: int
    outcome: ThrowOutcome
    commentary: Optional[str] = None

    def with_commentary(self, text: str) -> "ThrowRecord":
        return replace(self, commentary=text)


CARD_SOURCE_SERVICE = "service"
CARD_SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class VerdictCard:
    """最终的结论卡片。

    所有文字字段来自同一个来源：要么整张来自文案服务，要么整张来自兜底表。
    """

    title: str
    subtitle: str
    stamp: str
    interpretation: str
    summary: str
    verdict: Verdict
    source: str = CARD_SOURCE_FALLBACK


@dataclass(frozen=True)
class RitualSnapshot:
    """交给展示层的只读会话快照。"""

    session_id: str
    complaint: str
    phase: SequencerPhase
    throws: Tuple[ThrowRecord, ...]
    verdict: Optional[Verdict]
    card: Optional[VerdictCard]
    highlighted_index: Optional[int]

    @property
    def throw_count(self) -> int:
        return len(self.throws)

    @property
    def highlighted(self) -> Optional[ThrowRecord]:
        if self.highlighted_index is None:
            return None
        return self.throws[self.highlighted_index]


IDLE_SNAPSHOT = RitualSnapshot(
    session_id="",
    complaint="",
    phase=SequencerPhase.IDLE,
    throws=(),
    verdict=None,
    card=None,
    highlighted_index=None,
)


def _new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class RitualSession:
    """一次仪式的全部状态，只由掷茭编排器持有和修改。"""

    complaint: str
    session_id: str = field(default_factory=_new_session_id)
    throws: List[ThrowRecord] = field(default_factory=list)
    verdict: Optional[Verdict] = None
    card: Optional[VerdictCard] = None
    phase: SequencerPhase = SequencerPhase.AWAITING_THROW
    highlighted_index: Optional[int] = None

    @property
    def sealed(self) -> bool:
        return len(self.throws) >= THROWS_PER_RITUAL

    def outcomes(self) -> Tuple[ThrowOutcome, ...]:
        return tuple(record.outcome for record in self.throws)

    def snapshot(self) -> RitualSnapshot:
        return RitualSnapshot(
            session_id=self.session_id,
            complaint=self.complaint,
            phase=self.phase,
            throws=tuple(self.throws),
            verdict=self.verdict,
            card=self.card,
            highlighted_index=self.highlighted_index,
        )


__all__ = [
    "THROWS_PER_RITUAL",
    "ThrowOutcome",
    "Verdict",
    "SequencerPhase",
    "ThrowRecord",
    "VerdictCard",
    "CARD_SOURCE_SERVICE",
    "CARD_SOURCE_FALLBACK",
    "RitualSnapshot",
    "IDLE_SNAPSHOT",
    "RitualSession",
]
