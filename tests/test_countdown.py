"""Tests for utils.countdown."""

from datetime import datetime, time, timedelta

import pytz

from utils.countdown import ALREADY_OFF_TEXT, format_countdown, time_until_clock_out

SIX_PM = time(18, 0)


def test_time_left_before_clock_out():
    left = time_until_clock_out(datetime(2026, 10, 19, 16, 29, 30), SIX_PM)
    assert left == timedelta(hours=1, minutes=30, seconds=30)


def test_format_countdown():
    assert format_countdown(datetime(2026, 10, 19, 16, 29, 30), SIX_PM) == "1时30分30秒"


def test_exactly_at_clock_out():
    assert format_countdown(datetime(2026, 10, 19, 18, 0, 0), SIX_PM) == "0时0分0秒"


def test_after_clock_out():
    assert time_until_clock_out(datetime(2026, 10, 19, 18, 0, 1), SIX_PM) is None
    assert format_countdown(datetime(2026, 10, 19, 21, 0), SIX_PM) == ALREADY_OFF_TEXT


def test_aware_datetime_is_converted(monkeypatch):
    monkeypatch.setattr("utils.countdown.CLOCK_OUT_TZ", pytz.timezone("Asia/Shanghai"))
    now = pytz.utc.localize(datetime(2026, 10, 19, 9, 30))
    assert format_countdown(now, SIX_PM) == "0时30分0秒"
