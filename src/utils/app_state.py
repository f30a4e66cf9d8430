from __future__ import annotations

from typing import Dict, Optional

from aiogram import Bot

from divination.complaints import ComplaintDesk
from divination.fallback import FallbackBank
from divination.sequencer import DivinationSequencer, SequencerTimings
from divination.service import FortuneTextService

_bot: Optional[Bot] = None
_service: Optional[FortuneTextService] = None
_fallback: Optional[FallbackBank] = None
_timings: Optional[SequencerTimings] = None

# 每个聊天一个编排器和一个吐槽台，只存在内存里
_sequencers: Dict[int, DivinationSequencer] = {}
_desks: Dict[int, ComplaintDesk] = {}


def set_bot(bot: Bot) -> None:
    global _bot
    _bot = bot


def get_bot() -> Bot:
    assert _bot is not None, "Bot 尚未初始化"
    return _bot


def configure_ritual(
    service: Optional[FortuneTextService],
    fallback: FallbackBank,
    timings: Optional[SequencerTimings] = None,
) -> None:
    global _service, _fallback, _timings
    _service = service
    _fallback = fallback
    _timings = timings


def get_sequencer(chat_id: int) -> DivinationSequencer:
    sequencer = _sequencers.get(chat_id)
    if sequencer is None:
        assert _fallback is not None, "仪式尚未配置"
        sequencer = DivinationSequencer(_service, _fallback, timings=_timings)
        _sequencers[chat_id] = sequencer
    return sequencer


def get_desk(chat_id: int) -> ComplaintDesk:
    desk = _desks.get(chat_id)
    if desk is None:
        desk = _desks[chat_id] = ComplaintDesk()
    return desk


def all_sequencers() -> list[DivinationSequencer]:
    return list(_sequencers.values())


def clear_sessions() -> None:
    _sequencers.clear()
    _desks.clear()
