"""Small date/time helpers shared by the CLI, API and aggregator."""

from __future__ import annotations

import calendar
from datetime import date, timedelta


def format_hms(total_seconds: int) -> str:
    """Format a duration as ``HH:MM:SS`` (hours are not wrapped at 24)."""
    total_seconds = max(0, int(total_seconds))
    h, rem = divmod(total_seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def minus_months(day: date, months: int) -> date:
    """Subtract calendar months, clamping to the last day of the target month."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def week_bounds(day: date) -> tuple[date, date]:
    """Return the Monday..Sunday week containing *day*."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)
