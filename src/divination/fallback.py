"""兜底文案：文案服务不可用、超时或出错时使用的静态文案表。"""

from __future__ import annotations

import csv
import logging
import random
from pathlib import Path
from typing import Dict, List, Optional

from .models import CARD_SOURCE_FALLBACK, ThrowOutcome, Verdict, VerdictCard

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
THROW_TEXTS_PATH = DATA_DIR / "throw_texts.csv"
VERDICT_CARDS_PATH = DATA_DIR / "verdict_cards.csv"

# 每种结果少于这个数量时文案容易重复
RECOMMENDED_TEXTS_PER_OUTCOME = 4

_CARD_COLUMNS = 6


def _read_rows(path: Path) -> List[List[str]]:
    if not path.exists():
        raise FileNotFoundError(f"找不到兜底文案文件: {path}")

    rows: List[List[str]] = []
    with path.open("r", encoding="utf-8") as f:
        reader = csv.reader(f, delimiter=";")
        for row in reader:
            cells = [cell.replace("\ufeff", "").strip() for cell in row]
            if any(cells):
                rows.append(cells)
    return rows


def load_throw_texts(path: Path = THROW_TEXTS_PATH) -> Dict[ThrowOutcome, List[str]]:
    texts: Dict[ThrowOutcome, List[str]] = {outcome: [] for outcome in ThrowOutcome}
    for row in _read_rows(path):
        if len(row) < 2 or not row[1]:
            continue
        try:
            outcome = ThrowOutcome(row[0])
        except ValueError:
            logger.warning("Unknown throw outcome %r in %s", row[0], path)
            continue
        texts[outcome].append(row[1])

    for outcome, entries in texts.items():
        if not entries:
            raise ValueError(f"{path} 中没有 {outcome.value} 的文案，格式应为 'outcome;text'")
        if len(entries) < RECOMMENDED_TEXTS_PER_OUTCOME:
            logger.warning(
                "Only %d fallback texts for %s, repetition will be noticeable",
                len(entries),
                outcome.value,
            )
    return texts


def load_verdict_cards(path: Path = VERDICT_CARDS_PATH) -> Dict[Verdict, VerdictCard]:
    cards: Dict[Verdict, VerdictCard] = {}
    for row in _read_rows(path):
        if len(row) < _CARD_COLUMNS or not all(row[:_CARD_COLUMNS]):
            raise ValueError(
                f"{path} 中的行不完整，格式应为 'verdict;title;subtitle;stamp;interpretation;summary'"
            )
        verdict = Verdict(row[0])
        if verdict in cards:
            raise ValueError(f"{path} 中 {verdict.value} 出现了不止一次")
        title, subtitle, stamp, interpretation, summary = row[1:_CARD_COLUMNS]
        cards[verdict] = VerdictCard(
            title=title,
            subtitle=subtitle,
            stamp=stamp,
            interpretation=interpretation,
            summary=summary,
            verdict=verdict,
            source=CARD_SOURCE_FALLBACK,
        )

    missing = [verdict.value for verdict in Verdict if verdict not in cards]
    if missing:
        raise ValueError(f"{path} 缺少结论卡片: {', '.join(missing)}")
    return cards


class FallbackBank:
    """按掷茭结果随机挑选文案，按结论取整张兜底卡片。"""

    def __init__(
        self,
        throw_texts: Dict[ThrowOutcome, List[str]],
        cards: Dict[Verdict, VerdictCard],
        rng: Optional[random.Random] = None,
    ) -> None:
        self._throw_texts = {outcome: list(entries) for outcome, entries in throw_texts.items()}
        self._cards = dict(cards)
        self._rng = rng or random.Random()

    @classmethod
    def load(cls, rng: Optional[random.Random] = None) -> "FallbackBank":
        return cls(load_throw_texts(), load_verdict_cards(), rng=rng)

    def texts_for(self, outcome: ThrowOutcome) -> List[str]:
        return list(self._throw_texts[outcome])

    def throw_text(self, outcome: ThrowOutcome) -> str:
        return self._rng.choice(self._throw_texts[outcome])

    def card_for(self, verdict: Verdict) -> VerdictCard:
        return self._cards[verdict]


__all__ = [
    "FallbackBank",
    "load_throw_texts",
    "load_verdict_cards",
    "THROW_TEXTS_PATH",
    "VERDICT_CARDS_PATH",
]
