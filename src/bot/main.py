from __future__ import annotations

import asyncio
import logging
import os
import signal

from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.client.default import DefaultBotProperties

from divination.fallback import FallbackBank
from divination.sequencer import SequencerTimings
from llm.client import is_configured
from llm.fortune import GeminiFortuneService
from utils.app_state import all_sequencers, configure_ritual, set_bot
from .handlers import router as handlers_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BOT_TOKEN = os.getenv("BOT_TOKEN")
if not BOT_TOKEN:
    raise RuntimeError("BOT_TOKEN is not set")


async def on_startup(bot: Bot) -> None:
    set_bot(bot)
    if not is_configured():
        logger.warning("GEMINI_API_KEY is not set, every ritual will use fallback texts")
    logger.info("Bot started")


async def on_shutdown(bot: Bot) -> None:
    # 进行中的仪式直接取消，不再推送快照
    for sequencer in all_sequencers():
        sequencer.set_listener(None)
        await sequencer.reset()
    logger.info("Bot stopped")


async def main() -> None:
    bot = Bot(
        token=BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = Dispatcher(storage=MemoryStorage())

    # 仪式依赖要在开始轮询之前准备好，兜底文案表坏了就直接启动失败
    set_bot(bot)
    configure_ritual(GeminiFortuneService(), FallbackBank.load(), SequencerTimings.from_env())

    dp.include_router(handlers_router)

    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: asyncio.create_task(dp.stop_polling()))

    await dp.start_polling(bot)


if __name__ == "__main__":
    asyncio.run(main())
