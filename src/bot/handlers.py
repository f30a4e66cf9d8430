from __future__ import annotations

import asyncio
import logging
import os
import time

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import BufferedInputFile, CallbackQuery, Message

from divination.complaints import ComplaintNotDestroyed, ComplaintStatus
from divination.models import SequencerPhase
from utils.app_state import get_bot, get_desk, get_sequencer
from utils.countdown import format_countdown
from .card_image import render_card_png
from .keyboards import (
    BTN_COUNTDOWN,
    BTN_HELP,
    BTN_HISTORY,
    BTN_START,
    BTN_WRITE,
    destroy_kb,
    main_menu_kb,
    start_ritual_kb,
)
from .rendering import render_history
from .ritual_view import RitualView

logger = logging.getLogger(__name__)

router = Router()

DESTROY_DELAY_SECONDS = float(os.getenv("DESTROY_DELAY_SECONDS") or 2)

STALE_RITUAL_TEXT = "这是之前的占卜，请在最新的仪式消息里操作"

HELP_TEXT = (
    "<b>职场速效救心丸</b>\n\n"
    "1. 点「写下吐槽」，把今天的怨气发给我。\n"
    "2. 选择粉碎或焚烧，让烦恼灰飞烟灭。\n"
    "3. 点「开始占卜」，连续掷 3 次杯茭。\n"
    "4. 神仙会给出结论：辞职、留下，还是先摸鱼。结论卡片可以保存为图片。\n\n"
    "不写吐槽也可以直接占卜，就问心中所念之事。"
)

_DESTROY_ACTIONS = {
    "shred": (ComplaintStatus.SHREDDED, "🔪 碎纸机启动中...", "🔪 已粉碎！烦恼已经碎成渣了。"),
    "burn": (ComplaintStatus.BURNT, "🔥 点火中...", "🔥 已焚烧！烦恼已经化为灰烬。"),
}


class ComplaintStates(StatesGroup):
    waiting_text = State()


async def _ask_for_complaint(message: Message, state: FSMContext) -> None:
    await state.set_state(ComplaintStates.waiting_text)
    await message.answer("把你的职场怨念写下来吧，一条就好 ✍️")


async def _is_live_ritual_message(cb: CallbackQuery) -> bool:
    """按钮是否来自当前仪式的那条消息；旧消息上的按钮不再作用于新仪式。"""
    view = get_sequencer(cb.message.chat.id).listener
    if isinstance(view, RitualView) and view.message_id == cb.message.message_id:
        return True
    await cb.answer(STALE_RITUAL_TEXT, show_alert=True)
    return False


async def _start_ritual(message: Message, chat_id: int) -> None:
    desk = get_desk(chat_id)
    try:
        complaint = desk.ritual_complaint()
    except ComplaintNotDestroyed as exc:
        await message.answer(str(exc), reply_markup=destroy_kb())
        return

    sequencer = get_sequencer(chat_id)
    if sequencer.phase is not SequencerPhase.IDLE:
        sequencer.set_listener(None)
        await sequencer.reset()

    ritual_message = await message.answer("🕯 神圣仪式准备中...")
    sequencer.set_listener(RitualView(get_bot(), chat_id, ritual_message.message_id))
    await sequencer.begin_ritual(complaint)


@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext) -> None:
    await state.clear()
    await message.answer(
        "欢迎来到赛博掷杯茭！\n"
        "上班好累？写下吐槽，粉碎它，然后让神仙告诉你要不要辞职。\n\n"
        f"下班倒计时：{format_countdown()}",
        reply_markup=main_menu_kb(),
    )


@router.message(Command("help"))
@router.message(F.text == BTN_HELP)
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT, reply_markup=main_menu_kb())


@router.message(F.text == BTN_COUNTDOWN)
async def btn_countdown(message: Message) -> None:
    await message.answer(f"⏰ 下班倒计时：{format_countdown()}")


@router.message(F.text == BTN_HISTORY)
async def btn_history(message: Message) -> None:
    await message.answer(render_history(get_desk(message.chat.id).history))


@router.message(F.text == BTN_WRITE)
async def btn_write(message: Message, state: FSMContext) -> None:
    await _ask_for_complaint(message, state)


@router.message(F.text == BTN_START)
async def btn_start_ritual(message: Message, state: FSMContext) -> None:
    await state.clear()
    await _start_ritual(message, message.chat.id)


@router.message(ComplaintStates.waiting_text)
async def msg_complaint_text(message: Message, state: FSMContext) -> None:
    try:
        get_desk(message.chat.id).add(message.text or "")
    except ValueError:
        await message.answer("吐槽不能是空的，打几个字也行。")
        return

    await state.clear()
    await message.answer("收到。现在选择怎么处理这条吐槽：", reply_markup=destroy_kb())


@router.callback_query(F.data.startswith("destroy:"))
async def cb_destroy(cb: CallbackQuery) -> None:
    action = _DESTROY_ACTIONS.get(cb.data.split(":", 1)[1])
    desk = get_desk(cb.message.chat.id)
    if action is None or desk.current is None:
        await cb.answer("先写下一条吐槽吧", show_alert=True)
        return

    # 停顿期间当前吐槽可能被换掉，只处理点按钮时的那一条
    target = desk.current
    status, progress_text, done_text = action
    await cb.answer()
    try:
        await cb.message.edit_text(progress_text)
    except TelegramBadRequest:
        logger.exception("Failed to show destroy progress")

    await asyncio.sleep(DESTROY_DELAY_SECONDS)
    desk.destroy(status, target)
    if desk.current is not target:
        await cb.message.answer(done_text)
        return
    await cb.message.answer(done_text, reply_markup=start_ritual_kb())


@router.callback_query(F.data == "ritual_start")
async def cb_ritual_start(cb: CallbackQuery) -> None:
    await cb.answer()
    await _start_ritual(cb.message, cb.message.chat.id)


@router.callback_query(F.data == "ritual_throw")
async def cb_ritual_throw(cb: CallbackQuery) -> None:
    if not await _is_live_ritual_message(cb):
        return
    accepted = await get_sequencer(cb.message.chat.id).request_throw()
    await cb.answer("啪嗒！" if accepted else "神仙还在忙，稍等一下")


@router.callback_query(F.data == "ritual_busy")
async def cb_ritual_busy(cb: CallbackQuery) -> None:
    await cb.answer("占卜中，请耐心等待")


@router.callback_query(F.data == "ritual_reset")
async def cb_ritual_reset(cb: CallbackQuery) -> None:
    if not await _is_live_ritual_message(cb):
        return
    chat_id = cb.message.chat.id
    await get_sequencer(chat_id).reset()
    get_desk(chat_id).clear_current()
    await cb.answer("已重置")
    await cb.message.answer("重新来过。写下新的吐槽，或者直接开始占卜。", reply_markup=main_menu_kb())


@router.callback_query(F.data == "ritual_continue")
async def cb_ritual_continue(cb: CallbackQuery, state: FSMContext) -> None:
    if not await _is_live_ritual_message(cb):
        return
    chat_id = cb.message.chat.id
    await get_sequencer(chat_id).reset()
    get_desk(chat_id).clear_current()
    await cb.answer()
    await _ask_for_complaint(cb.message, state)


@router.callback_query(F.data == "card_download")
async def cb_card_download(cb: CallbackQuery) -> None:
    if not await _is_live_ritual_message(cb):
        return
    snapshot = get_sequencer(cb.message.chat.id).snapshot()
    if snapshot.card is None:
        await cb.answer("卡片还没出来，或者仪式已经重置了", show_alert=True)
        return

    await cb.answer("正在生成图片...")
    png = await asyncio.to_thread(render_card_png, snapshot.card, snapshot.complaint)
    await cb.message.answer_photo(
        photo=BufferedInputFile(png, filename=f"辞职决定-{int(time.time() * 1000)}.png"),
        caption=snapshot.card.title,
    )
