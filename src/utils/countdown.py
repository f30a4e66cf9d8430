"""下班倒计时。"""

from __future__ import annotations

import logging
import os
from datetime import datetime, time, timedelta
from typing import Optional

import pytz

logger = logging.getLogger(__name__)

CLOCK_OUT_TZ = pytz.timezone(os.getenv("CLOCK_OUT_TZ") or "Asia/Shanghai")
ALREADY_OFF_TEXT = "已下班！快跑！"


def _parse_clock_out(raw: Optional[str]) -> time:
    default = time(18, 0)
    if not raw:
        return default
    try:
        hour, minute = map(int, raw.split(":"))
        return time(hour=hour, minute=minute)
    except ValueError as exc:
        logger.warning("Invalid CLOCK_OUT_TIME '%s': %s", raw, exc)
        return default


CLOCK_OUT_TIME = _parse_clock_out(os.getenv("CLOCK_OUT_TIME"))


def time_until_clock_out(now: Optional[datetime] = None, clock_out: time = CLOCK_OUT_TIME) -> Optional[timedelta]:
    """距离今天下班还剩多久；已经过了下班时间则返回 None。"""
    if now is None:
        now = datetime.now(CLOCK_OUT_TZ)
    elif now.tzinfo is None:
        now = CLOCK_OUT_TZ.localize(now)
    else:
        now = now.astimezone(CLOCK_OUT_TZ)

    target = CLOCK_OUT_TZ.localize(datetime.combine(now.date(), clock_out))
    if now > target:
        return None
    return target - now


def format_countdown(now: Optional[datetime] = None, clock_out: time = CLOCK_OUT_TIME) -> str:
    left = time_until_clock_out(now, clock_out)
    if left is None:
        return ALREADY_OFF_TEXT
    total = int(left.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}时{minutes}分{seconds}秒"
