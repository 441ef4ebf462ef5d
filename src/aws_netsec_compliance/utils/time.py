"""Time helpers."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def add_calendar_month(value: datetime) -> datetime:
    """Return ``value`` moved forward one calendar month.

    The day is clamped to the last day of the target month, so Jan 31 becomes
    Feb 28 (or 29).
    """
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))
