"""
Back-office shared utilities.

Pure functions used across the whole package. No imports from other
backoffice modules; only the standard library is allowed here.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator, Optional


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def round_half_up(value: float, digits: int = 0) -> float | int:
    """Round with .5 going away from zero (``round`` uses banker's rounding).

    Returns an ``int`` when ``digits`` is 0 so cent values stay integral.
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return 0
    quant = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(float(value))).quantize(quant, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide *numerator* by *denominator*; return *default* on zero."""
    if denominator == 0:
        return default
    return numerator / denominator


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp *value* to [lo, hi]."""
    return max(lo, min(hi, value))


def pct(part: float, whole: float, digits: int = 1) -> float:
    """``part`` as a percentage of ``whole``, rounded; 0.0 when whole is 0."""
    if not whole:
        return 0.0
    return float(round_half_up(part / whole * 100.0, digits))


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_currency(cents: int | float) -> str:
    """Format integer cents as dollars: 1500 -> ``$15.00``, -1500 -> ``-$15.00``."""
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"


def format_hours(hours: float) -> str:
    """Two-decimal hours string: 8 -> ``8.00``."""
    return f"{hours:.2f}"


def format_date_long(day: date) -> str:
    """``Jan 5, 2025`` style date."""
    return f"{day.strftime('%b')} {day.day}, {day.year}"


# ---------------------------------------------------------------------------
# Dates and times
# ---------------------------------------------------------------------------

def to_utc(ts: datetime) -> datetime:
    """Return *ts* as an aware UTC datetime (naive values are assumed UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_timestamp(value: datetime | str) -> datetime:
    """Accept datetimes or ISO strings (``Z`` suffix allowed) and return UTC."""
    if isinstance(value, datetime):
        return to_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def parse_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every date from *start* to *end* inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def days_between(start: date, end: date) -> int:
    """Inclusive day count; 0 when *end* precedes *start*."""
    return max((end - start).days + 1, 0)


def last_day_of_month(year: int, month: int) -> int:
    if month == 12:
        nxt = date(year + 1, 1, 1)
    else:
        nxt = date(year, month + 1, 1)
    return (nxt - timedelta(days=1)).day


def js_weekday(day: date) -> int:
    """Weekday with Sunday = 0 ... Saturday = 6."""
    return (day.weekday() + 1) % 7


def start_of_week(day: date, week_start: int = 0) -> date:
    """First day of the week containing *day* (week_start uses Sunday = 0)."""
    offset = (js_weekday(day) - week_start) % 7
    return day - timedelta(days=offset)


def hours_between(start: datetime, end: Optional[datetime]) -> float:
    if end is None:
        return 0.0
    return (end - start).total_seconds() / 3600.0
