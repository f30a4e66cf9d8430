from __future__ import annotations

import logging
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramNetworkError

from divination.models import RitualSnapshot
from .keyboards import ritual_kb
from .rendering import render_ritual

logger = logging.getLogger(__name__)


class RitualView:
    """编排器的快照监听器：每次收到快照就编辑同一条仪式消息。"""

    def __init__(self, bot: Bot, chat_id: int, message_id: int) -> None:
        self.bot = bot
        self.chat_id = chat_id
        self.message_id = message_id
        self._last_rendered: Optional[tuple[str, object]] = None

    async def __call__(self, snapshot: RitualSnapshot) -> None:
        text = render_ritual(snapshot)
        markup = ritual_kb(snapshot)
        rendered = (text, markup)
        if rendered == self._last_rendered:
            return

        try:
            await self.bot.edit_message_text(
                text=text,
                chat_id=self.chat_id,
                message_id=self.message_id,
                reply_markup=markup,
            )
            self._last_rendered = rendered
        except TelegramBadRequest as exc:
            if "message is not modified" in str(exc):
                self._last_rendered = rendered
                return
            logger.warning("Failed to update ritual message in chat %s: %s", self.chat_id, exc)
        except TelegramNetworkError as exc:
            logger.warning("Network error while updating ritual message in chat %s: %s", self.chat_id, exc)
