"""掷茭与解签规则。"""

from __future__ import annotations

import random
from collections import Counter
from typing import Optional, Sequence

from .models import THROWS_PER_RITUAL, ThrowOutcome, Verdict

_OUTCOMES = tuple(ThrowOutcome)


class ThrowGenerator:
    """等概率地产生三种掷茭结果之一，可跨会话重复使用。"""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def next(self) -> ThrowOutcome:
        return self._rng.choice(_OUTCOMES)


def classify(outcomes: Sequence[ThrowOutcome]) -> Verdict:
    """根据三次掷茭结果给出结论，只看各结果出现的次数，与顺序无关。

    - 至少两次圣杯 -> 建议辞职
    - 否则至少两次阴杯 -> 建议留下
    - 其余情况（三种各一次、三次笑杯等） -> 建议摸鱼
    """
    if len(outcomes) != THROWS_PER_RITUAL:
        raise ValueError(
            f"需要 {THROWS_PER_RITUAL} 次掷茭结果，实际为 {len(outcomes)} 次"
        )

    counts = Counter(ThrowOutcome(outcome) for outcome in outcomes)
    if counts[ThrowOutcome.AFFIRM] >= 2:
        return Verdict.PROCEED
    if counts[ThrowOutcome.DENY] >= 2:
        return Verdict.HOLD
    return Verdict.DEFER


__all__ = ["ThrowGenerator", "classify"]
