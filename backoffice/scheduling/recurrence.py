"""
backoffice.scheduling.recurrence — Expanding repeating shifts and events.

``generate_recurring_dates`` always returns the start date as the first
occurrence.  Weekday numbers use Sunday = 0 ... Saturday = 6 throughout.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, List, Optional

from backoffice.core.utils import format_date_long, js_weekday, last_day_of_month
from backoffice.domain.enums import RecurrenceEndType, RecurrenceType
from backoffice.domain.models import RecurrencePattern

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
ORDINALS = ["first", "second", "third", "fourth", "fifth"]
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

DEFAULT_MAX_OCCURRENCES = 365


def add_months(day: date, months: int, target_day: Optional[int] = None) -> date:
    """Move *months* forward, clamping to the last day of a shorter month."""
    index = day.month - 1 + months
    year, month = day.year + index // 12, index % 12 + 1
    wanted = target_day or day.day
    return date(year, month, min(wanted, last_day_of_month(year, month)))


def find_next_day_of_week(current: date, days_of_week: List[int], week_interval: int = 1) -> date:
    """Next date whose weekday is in *days_of_week*.

    Later days in the current week come first; after the last listed day
    the search jumps ``week_interval`` weeks ahead to the first listed day.
    """
    today = js_weekday(current)
    ordered = sorted(days_of_week)
    for wd in ordered:
        if wd > today:
            return current + timedelta(days=wd - today)
    days_to_next_week = (7 - today) + ordered[0]
    return current + timedelta(days=days_to_next_week, weeks=week_interval - 1)


def find_nth_day_of_month(any_day: date, weekday: int, n: int) -> date:
    """The *n*-th *weekday* of ``any_day``'s month, or the last one if there are fewer."""
    first = any_day.replace(day=1)
    offset = (weekday - js_weekday(first)) % 7
    target = first + timedelta(days=offset + (n - 1) * 7)
    while target.month != first.month:
        target -= timedelta(days=7)
    return target


def _next_occurrence(current: date, start: date, pattern: RecurrencePattern) -> date:
    interval = pattern.interval
    rtype = pattern.type

    if rtype == RecurrenceType.DAILY:
        return current + timedelta(days=interval)

    if rtype == RecurrenceType.WEEKDAY:
        nxt = current + timedelta(days=1)
        while js_weekday(nxt) in (0, 6):
            nxt += timedelta(days=1)
        return nxt

    if rtype in (RecurrenceType.WEEKLY, RecurrenceType.CUSTOM):
        if pattern.days_of_week:
            return find_next_day_of_week(current, pattern.days_of_week, interval)
        return current + timedelta(weeks=interval)

    if rtype == RecurrenceType.MONTHLY:
        if pattern.week_of_month and pattern.days_of_week:
            return find_nth_day_of_month(
                add_months(current, interval, 1), pattern.days_of_week[0], pattern.week_of_month,
            )
        return add_months(current, interval, pattern.day_of_month or start.day)

    if rtype == RecurrenceType.YEARLY:
        return add_months(current, 12 * interval, start.day)

    raise ValueError(f"Unsupported recurrence type: {rtype}")


def _within_end(day: date, count: int, pattern: RecurrencePattern, max_occurrences: int) -> bool:
    if count > max_occurrences:
        return False
    if pattern.end_type == RecurrenceEndType.NEVER:
        return True
    if pattern.end_type == RecurrenceEndType.ON and pattern.end_date:
        return day <= pattern.end_date
    if pattern.end_type == RecurrenceEndType.AFTER and pattern.occurrences:
        return count <= pattern.occurrences
    return False


def generate_recurring_dates(
    start: date,
    pattern: RecurrencePattern,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> List[date]:
    """Every occurrence of *pattern* beginning at *start* (inclusive).

    ``max_occurrences`` caps open-ended patterns.  An ``on`` end date is
    inclusive; an ``after`` count includes the start date.
    """
    dates = [start]
    current = start
    while True:
        current = _next_occurrence(current, start, pattern)
        if not _within_end(current, len(dates) + 1, pattern, max_occurrences):
            break
        dates.append(current)
    return dates


def get_recurrence_description(pattern: RecurrencePattern) -> str:
    """Human-readable summary such as ``Weekly on Monday, Wednesday, 10 times``."""
    interval = pattern.interval
    rtype = pattern.type

    if rtype == RecurrenceType.DAILY:
        text = "Daily" if interval == 1 else f"Every {interval} days"
    elif rtype == RecurrenceType.WEEKDAY:
        text = "Every weekday (Monday to Friday)"
    elif rtype == RecurrenceType.WEEKLY:
        if pattern.days_of_week:
            names = ", ".join(DAY_NAMES[d] for d in pattern.days_of_week)
            text = f"Weekly on {names}" if interval == 1 else f"Every {interval} weeks on {names}"
        else:
            text = "Weekly" if interval == 1 else f"Every {interval} weeks"
    elif rtype == RecurrenceType.MONTHLY:
        if pattern.week_of_month and pattern.days_of_week:
            ordinal = ORDINALS[min(pattern.week_of_month, 5) - 1]
            text = f"Monthly on the {ordinal} {DAY_NAMES[pattern.days_of_week[0]]}"
        else:
            text = "Monthly" if interval == 1 else f"Every {interval} months"
    elif rtype == RecurrenceType.YEARLY:
        text = "Annually" if interval == 1 else f"Every {interval} years"
    else:
        text = "Custom recurrence"

    if pattern.end_type == RecurrenceEndType.ON and pattern.end_date:
        text += f", until {format_date_long(pattern.end_date)}"
    elif pattern.end_type == RecurrenceEndType.AFTER and pattern.occurrences:
        text += f", {pattern.occurrences} times"
    return text


def get_recurrence_presets_for_date(day: date) -> List[Dict]:
    """Quick-pick options for the repeat dropdown, phrased for *day*."""
    weekday = js_weekday(day)
    day_name = DAY_NAMES[weekday]

    occurrence = (day.day - 1) // 7 + 1
    total = (last_day_of_month(day.year, day.month) - (day.day - 1) % 7 - 1) // 7 + 1
    if occurrence == total and occurrence > 1:
        ordinal = "last"
    else:
        ordinal = ORDINALS[occurrence - 1]

    def _pattern(**kwargs) -> dict:
        return RecurrencePattern(**kwargs).to_dict()

    return [
        {"label": "Does not repeat", "value": "none", "pattern": None},
        {"label": "Daily", "value": "daily", "pattern": _pattern(type="daily")},
        {
            "label": f"Weekly on {day_name}",
            "value": "weekly",
            "pattern": _pattern(type="weekly", days_of_week=[weekday]),
        },
        {
            "label": f"Monthly on the {ordinal} {day_name}",
            "value": "monthly",
            "pattern": _pattern(type="monthly", days_of_week=[weekday], week_of_month=occurrence),
        },
        {
            "label": f"Annually on {MONTH_NAMES[day.month - 1]} {day.day}",
            "value": "yearly",
            "pattern": _pattern(type="yearly"),
        },
        {
            "label": "Every weekday (Monday to Friday)",
            "value": "weekday",
            "pattern": _pattern(type="weekday"),
        },
        {"label": "Custom...", "value": "custom", "pattern": _pattern(type="custom")},
    ]
