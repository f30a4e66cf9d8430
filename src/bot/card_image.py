"""把结论卡片画成 PNG，供「保存为图片」发送。"""

from __future__ import annotations

import io
import logging
import os
import random
from datetime import date
from typing import List, Optional

from PIL import Image, ImageDraw, ImageFont

from divination.models import Verdict, VerdictCard
from .rendering import CARD_FOOTER

logger = logging.getLogger(__name__)

# 默认字体不含中文字形，生产环境需要指向一个 CJK 字体文件
CARD_FONT_PATH = os.getenv("CARD_FONT_PATH")

WIDTH, HEIGHT = 900, 1280
MARGIN = 60
INK = (26, 26, 26)
RED = (204, 51, 51)
PAPER = {
    Verdict.PROCEED: (241, 196, 15),
    Verdict.HOLD: (241, 196, 15),
    Verdict.DEFER: (255, 255, 255),
}


def _font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    if CARD_FONT_PATH:
        try:
            return ImageFont.truetype(CARD_FONT_PATH, size)
        except OSError as exc:
            logger.warning("Failed to load card font %s: %s", CARD_FONT_PATH, exc)
    return ImageFont.load_default(size=size)


def wrap_text(text: str, max_chars: int) -> List[str]:
    """按字符数折行，中文没有空格可断。"""
    lines: List[str] = []
    for paragraph in text.splitlines() or [""]:
        if not paragraph:
            lines.append("")
            continue
        lines.extend(paragraph[i:i + max_chars] for i in range(0, len(paragraph), max_chars))
    return lines


def _draw_centered(draw: ImageDraw.ImageDraw, y: int, text: str, font, fill) -> int:
    width = draw.textlength(text, font=font)
    draw.text(((WIDTH - width) / 2, y), text, font=font, fill=fill)
    _, top, _, bottom = draw.textbbox((0, 0), text, font=font)
    return y + (bottom - top) + 16


def render_card_png(
    card: VerdictCard,
    complaint: str,
    issued_on: Optional[date] = None,
    serial: Optional[int] = None,
) -> bytes:
    issued_on = issued_on or date.today()
    serial = serial if serial is not None else random.randrange(10000)

    image = Image.new("RGB", (WIDTH, HEIGHT), PAPER[card.verdict])
    draw = ImageDraw.Draw(image)
    draw.rectangle((20, 20, WIDTH - 20, HEIGHT - 20), outline=INK, width=8)
    draw.rectangle((MARGIN, MARGIN, WIDTH - MARGIN, HEIGHT - 300), outline=INK, width=4)

    y = MARGIN + 40
    y = _draw_centered(draw, y, card.title, _font(72), INK)
    draw.line((MARGIN + 40, y, WIDTH - MARGIN - 40, y), fill=INK, width=6)
    y += 30
    y = _draw_centered(draw, y, f"“ {card.subtitle} ”", _font(42), INK)

    y += 30
    y = _draw_centered(draw, y, "您的吐槽：", _font(26), INK)
    for line in wrap_text(complaint, 14):
        y = _draw_centered(draw, y, line, _font(48), RED)

    y += 30
    for line in wrap_text(card.interpretation, 20):
        y = _draw_centered(draw, y, line, _font(34), INK)

    y += 20
    for line in wrap_text(card.summary, 24):
        y = _draw_centered(draw, y, line, _font(28), INK)

    footer_font = _font(24)
    footer_y = HEIGHT - 240
    for line in (f"日期：{issued_on.isoformat()}", f"编号：OFFER-{serial:04d}", CARD_FOOTER):
        draw.text((MARGIN, footer_y), line, font=footer_font, fill=INK)
        footer_y += 40

    cx, cy, radius = WIDTH - MARGIN - 110, HEIGHT - 160, 100
    draw.ellipse((cx - radius, cy - radius, cx + radius, cy + radius), outline=RED, width=8)
    stamp_font = _font(40)
    stamp_width = draw.textlength(card.stamp, font=stamp_font)
    draw.text((cx - stamp_width / 2, cy - 24), card.stamp, font=stamp_font, fill=RED)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


__all__ = ["render_card_png", "wrap_text"]
