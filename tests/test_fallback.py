"""Tests for divination.fallback: CSV loaders and FallbackBank."""

import logging
import random

import pytest

from divination.fallback import (
    RECOMMENDED_TEXTS_PER_OUTCOME,
    FallbackBank,
    load_throw_texts,
    load_verdict_cards,
)
from divination.models import CARD_SOURCE_FALLBACK, ThrowOutcome, Verdict

CARD_ROWS = (
    "QUIT;辞职卡;快跑;准予离职;两次圣杯;天意如此\n"
    "STAY;搬砖卡;再忍忍;继续搬砖;两次阴杯;留得青山在\n"
    "MAYBE;摸鱼卡;先摸鱼;暂缓决定;天意未明;静观其变\n"
)


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


class TestBundledBank:
    def test_every_outcome_has_enough_texts(self, fallback_bank):
        for outcome in ThrowOutcome:
            assert len(fallback_bank.texts_for(outcome)) >= RECOMMENDED_TEXTS_PER_OUTCOME

    def test_every_verdict_has_a_fallback_card(self, fallback_bank):
        for verdict in Verdict:
            card = fallback_bank.card_for(verdict)
            assert card.verdict is verdict
            assert card.source == CARD_SOURCE_FALLBACK
            assert all([card.title, card.subtitle, card.stamp, card.interpretation, card.summary])

    def test_quit_card_content(self, fallback_bank):
        card = fallback_bank.card_for(Verdict.PROCEED)
        assert card.title == "辞职申请书"
        assert card.stamp == "准予离职"

    @pytest.mark.parametrize("outcome", list(ThrowOutcome))
    def test_throw_text_comes_from_outcome_bank(self, fallback_bank, outcome):
        for _ in range(20):
            assert fallback_bank.throw_text(outcome) in fallback_bank.texts_for(outcome)

    def test_texts_for_returns_a_copy(self, fallback_bank):
        fallback_bank.texts_for(ThrowOutcome.AFFIRM).clear()
        assert fallback_bank.texts_for(ThrowOutcome.AFFIRM)


class TestLoadThrowTexts:
    def test_parses_rows_and_strips_bom(self, tmp_path):
        path = _write(
            tmp_path,
            "texts.csv",
            "\ufeffSHENG;圣杯文案\nXIAO;笑杯文案\nYIN;阴杯文案\n\n",
        )
        texts = load_throw_texts(path)
        assert texts[ThrowOutcome.AFFIRM] == ["圣杯文案"]
        assert texts[ThrowOutcome.DOUBT] == ["笑杯文案"]
        assert texts[ThrowOutcome.DENY] == ["阴杯文案"]

    def test_warns_when_bank_is_small(self, tmp_path, caplog):
        path = _write(tmp_path, "texts.csv", "SHENG;a\nXIAO;b\nYIN;c\n")
        with caplog.at_level(logging.WARNING, logger="divination.fallback"):
            load_throw_texts(path)
        assert "repetition" in caplog.text

    def test_skips_unknown_outcome(self, tmp_path):
        path = _write(tmp_path, "texts.csv", "SHENG;a\nXIAO;b\nYIN;c\nBOOM;d\n")
        texts = load_throw_texts(path)
        assert sum(len(entries) for entries in texts.values()) == 3

    def test_missing_outcome_raises(self, tmp_path):
        path = _write(tmp_path, "texts.csv", "SHENG;a\nXIAO;b\n")
        with pytest.raises(ValueError):
            load_throw_texts(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_throw_texts(tmp_path / "nope.csv")


class TestLoadVerdictCards:
    def test_parses_all_cards(self, tmp_path):
        cards = load_verdict_cards(_write(tmp_path, "cards.csv", CARD_ROWS))
        assert set(cards) == set(Verdict)
        assert cards[Verdict.HOLD].title == "搬砖卡"
        assert cards[Verdict.DEFER].summary == "静观其变"

    def test_incomplete_row_raises(self, tmp_path):
        path = _write(tmp_path, "cards.csv", CARD_ROWS + "QUIT;只有标题\n")
        with pytest.raises(ValueError):
            load_verdict_cards(path)

    def test_duplicate_verdict_raises(self, tmp_path):
        path = _write(tmp_path, "cards.csv", CARD_ROWS + "QUIT;又一张;x;x;x;x\n")
        with pytest.raises(ValueError):
            load_verdict_cards(path)

    def test_missing_verdict_raises(self, tmp_path):
        path = _write(tmp_path, "cards.csv", CARD_ROWS.split("MAYBE")[0])
        with pytest.raises(ValueError):
            load_verdict_cards(path)


def test_bank_uses_given_rng(tmp_path):
    texts = {outcome: [f"{outcome.value}-{i}" for i in range(5)] for outcome in ThrowOutcome}
    cards = load_verdict_cards(_write(tmp_path, "cards.csv", CARD_ROWS))
    first = FallbackBank(texts, cards, rng=random.Random(3))
    second = FallbackBank(texts, cards, rng=random.Random(3))
    picks = [first.throw_text(ThrowOutcome.DENY) for _ in range(5)]
    assert picks == [second.throw_text(ThrowOutcome.DENY) for _ in range(5)]
