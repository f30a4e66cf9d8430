from aiogram.types import ReplyKeyboardMarkup, KeyboardButton, InlineKeyboardMarkup, InlineKeyboardButton

from divination.models import RitualSnapshot, SequencerPhase

BTN_WRITE = "写下吐槽"
BTN_START = "开始占卜"
BTN_COUNTDOWN = "下班倒计时"
BTN_HISTORY = "吐槽记录"
BTN_HELP = "帮助"


def main_menu_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=BTN_WRITE), KeyboardButton(text=BTN_START)],
            [KeyboardButton(text=BTN_COUNTDOWN), KeyboardButton(text=BTN_HISTORY)],
            [KeyboardButton(text=BTN_HELP)],
        ],
        resize_keyboard=True,
        input_field_placeholder="今天又被什么气到了？",
    )


def destroy_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="🔪 粉碎", callback_data="destroy:shred"),
                InlineKeyboardButton(text="🔥 焚烧", callback_data="destroy:burn"),
            ]
        ]
    )


def start_ritual_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="开始占卜 🙏", callback_data="ritual_start")]]
    )


def result_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="保存为图片", callback_data="card_download")],
            [
                InlineKeyboardButton(text="继续吐槽", callback_data="ritual_continue"),
                InlineKeyboardButton(text="重新占卜", callback_data="ritual_reset"),
            ],
        ]
    )


def ritual_kb(snapshot: RitualSnapshot) -> InlineKeyboardMarkup | None:
    """掷茭按钮只在等待掷茭时可用，其余阶段显示占位按钮。"""
    phase = snapshot.phase
    if phase is SequencerPhase.IDLE:
        return None
    if phase is SequencerPhase.COMPLETE:
        return result_kb()

    if phase is SequencerPhase.AWAITING_THROW:
        main = InlineKeyboardButton(text="掷！", callback_data="ritual_throw")
    elif phase is SequencerPhase.THROW_IN_FLIGHT:
        main = InlineKeyboardButton(text="冥想中...", callback_data="ritual_busy")
    else:
        main = InlineKeyboardButton(text="占卜中...", callback_data="ritual_busy")

    return InlineKeyboardMarkup(
        inline_keyboard=[
            [main],
            [InlineKeyboardButton(text="重新占卜", callback_data="ritual_reset")],
        ]
    )
