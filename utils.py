"""
utils.py
Calendar arithmetic and formatting helpers.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from errors import InvalidDurationError
from models import DURATION_UNITS


def as_date(value: date | datetime | str) -> date:
    """
    Normalize to a calendar day. Time-of-day is discarded.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def add_years(start: date, years: int) -> date:
    # Feb 29 => Feb 28 in non-leap years
    return add_months(start, years * 12)


def add_duration(start: date | datetime | str, value: int, unit: str) -> date:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidDurationError(f"Duration must be a positive whole number, got {value!r}")
    start = as_date(start)
    if unit == "day":
        return start + timedelta(days=value)
    if unit == "month":
        return add_months(start, value)
    if unit == "year":
        return add_years(start, value)
    raise InvalidDurationError(
        f"Unknown duration unit {unit!r}; expected one of {', '.join(DURATION_UNITS)}"
    )


def format_roll_number(prefix: str, counter: int) -> str:
    return f"{prefix}-{counter:04d}"
