"""
backoffice.scheduling.shift_validation — Conflict and overtime checks for
the schedule editor.

A shift is invalid when it double-books or overlaps another active shift
for the same employee, or lands on approved time off.  Overtime produces
warnings only and is checked once a shift is conflict-free.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from backoffice.core.constants import (
    DAILY_OT_ERROR_MINUTES,
    DAILY_OT_WARNING_MINUTES,
    WEEKLY_OT_APPROACH_MINUTES,
    WEEKLY_OT_ERROR_MINUTES,
    WEEKLY_OT_WARNING_MINUTES,
)
from backoffice.core.utils import start_of_week
from backoffice.domain.enums import ConflictType, Severity, ShiftStatus, TimeOffStatus
from backoffice.domain.models import Shift, TimeOffRequest


@dataclass
class OvertimeRules:
    enabled: bool = True
    daily_threshold_minutes: int = 8 * 60
    weekly_threshold_minutes: int = 40 * 60


@dataclass
class ShiftConflict:
    type: ConflictType
    message: str
    severity: Severity = Severity.ERROR
    conflicting_shift: Optional[Shift] = None
    conflicting_time_off: Optional[TimeOffRequest] = None


@dataclass
class OvertimeWarning:
    type: str                   # "daily" | "weekly"
    current_minutes: int
    threshold_minutes: int
    overtime_minutes: int
    message: str
    severity: Severity


@dataclass
class ShiftValidationResult:
    conflicts: List[ShiftConflict] = field(default_factory=list)
    overtime_warnings: List[OvertimeWarning] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.conflicts


@dataclass
class EmployeeWeeklyHours:
    employee_id: str
    employee_name: str
    total_minutes: int
    regular_minutes: int
    overtime_minutes: int


def _fmt_hours(minutes: float) -> str:
    return f"{minutes / 60:g}"


def _day_bounds(day: date) -> tuple:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def calculate_shift_minutes(shift: Shift) -> int:
    """Net scheduled minutes (total minus break), never negative."""
    total = int((shift.end_time - shift.start_time).total_seconds() // 60)
    return max(total - shift.break_duration, 0)


def shifts_overlap(a: Shift, b: Shift) -> bool:
    """True when the shifts share time; back-to-back shifts do not overlap."""
    return a.start_time < b.end_time and b.start_time < a.end_time


def shift_conflicts_with_time_off(
    shift: Shift,
    time_off: Iterable[TimeOffRequest],
) -> Optional[TimeOffRequest]:
    """Return the first approved request whose days contain the shift's start or end."""
    for request in time_off:
        if request.employee_id != shift.employee_id or request.status != TimeOffStatus.APPROVED:
            continue
        window_start, _ = _day_bounds(request.start_date)
        _, window_end = _day_bounds(request.end_date)
        if (
            window_start <= shift.start_time <= window_end
            or window_start <= shift.end_time <= window_end
        ):
            return request
    return None


def _active_shifts_for(shift: Shift, existing: Iterable[Shift], exclude_id: Optional[str]) -> List[Shift]:
    return [
        s for s in existing
        if s is not shift
        and s.status != ShiftStatus.CANCELLED
        and (exclude_id is None or s.id != exclude_id)
        and s.employee_id == shift.employee_id
    ]


def detect_shift_conflicts(
    shift: Shift,
    existing: Iterable[Shift],
    time_off: Iterable[TimeOffRequest],
    exclude_shift_id: Optional[str] = None,
) -> List[ShiftConflict]:
    """Conflicts for a new or edited shift.

    An exact duplicate is reported alone as a double booking; otherwise
    every overlapping shift and the first matching time-off request are
    reported.
    """
    active = _active_shifts_for(shift, existing, exclude_shift_id)

    for other in active:
        if other.start_time == shift.start_time and other.end_time == shift.end_time:
            return [ShiftConflict(
                type=ConflictType.DOUBLE_BOOKING,
                message="Employee is already scheduled for this exact time",
                conflicting_shift=other,
            )]

    conflicts = [
        ShiftConflict(
            type=ConflictType.OVERLAPPING_SHIFT,
            message=(
                f"Overlaps with another shift ({other.start_time:%H:%M} - {other.end_time:%H:%M})"
            ),
            conflicting_shift=other,
        )
        for other in active
        if shifts_overlap(shift, other)
    ]

    request = shift_conflicts_with_time_off(shift, time_off)
    if request is not None:
        conflicts.append(ShiftConflict(
            type=ConflictType.TIME_OFF_CONFLICT,
            message="Employee has approved time-off during this period",
            conflicting_time_off=request,
        ))
    return conflicts


def calculate_employee_minutes(
    employee_id: str,
    shifts: Iterable[Shift],
    start: datetime,
    end: datetime,
) -> int:
    """Scheduled minutes for shifts that start within ``[start, end]``."""
    return sum(
        calculate_shift_minutes(s)
        for s in shifts
        if s.employee_id == employee_id
        and s.status != ShiftStatus.CANCELLED
        and start <= s.start_time <= end
    )


def calculate_daily_overtime(
    employee_id: str,
    day: date,
    shifts: Iterable[Shift],
    rules: OvertimeRules,
) -> Optional[OvertimeWarning]:
    if not rules.enabled:
        return None
    day_start, day_end = _day_bounds(day)
    minutes = calculate_employee_minutes(employee_id, shifts, day_start, day_end)
    threshold = rules.daily_threshold_minutes
    if minutes <= threshold:
        return None

    overtime = minutes - threshold
    if overtime > DAILY_OT_ERROR_MINUTES:
        severity = Severity.ERROR
    elif overtime > DAILY_OT_WARNING_MINUTES:
        severity = Severity.WARNING
    else:
        severity = Severity.INFO
    return OvertimeWarning(
        type="daily",
        current_minutes=minutes,
        threshold_minutes=threshold,
        overtime_minutes=overtime,
        message=f"Daily OT: {overtime / 60:.1f}h over {_fmt_hours(threshold)}h threshold",
        severity=severity,
    )


def calculate_weekly_overtime(
    employee_id: str,
    day: date,
    shifts: Iterable[Shift],
    rules: OvertimeRules,
    new_shift: Optional[Shift] = None,
) -> Optional[OvertimeWarning]:
    """Weekly overtime (weeks start Sunday), or a heads-up within 2h of the threshold."""
    if not rules.enabled:
        return None
    week_start = start_of_week(day, 0)
    window_start, _ = _day_bounds(week_start)
    _, window_end = _day_bounds(week_start + timedelta(days=6))

    minutes = calculate_employee_minutes(employee_id, shifts, window_start, window_end)
    if new_shift is not None and new_shift.employee_id == employee_id:
        minutes += calculate_shift_minutes(new_shift)

    threshold = rules.weekly_threshold_minutes
    if minutes > threshold:
        overtime = minutes - threshold
        if overtime > WEEKLY_OT_ERROR_MINUTES:
            severity = Severity.ERROR
        elif overtime > WEEKLY_OT_WARNING_MINUTES:
            severity = Severity.WARNING
        else:
            severity = Severity.INFO
        return OvertimeWarning(
            type="weekly",
            current_minutes=minutes,
            threshold_minutes=threshold,
            overtime_minutes=overtime,
            message=f"Weekly OT: {overtime / 60:.1f}h over {_fmt_hours(threshold)}h threshold",
            severity=severity,
        )

    remaining = threshold - minutes
    if 0 < remaining <= WEEKLY_OT_APPROACH_MINUTES:
        return OvertimeWarning(
            type="weekly",
            current_minutes=minutes,
            threshold_minutes=threshold,
            overtime_minutes=0,
            message=f"Approaching weekly threshold: {remaining / 60:.1f}h remaining",
            severity=Severity.INFO,
        )
    return None


def validate_shift(
    shift: Shift,
    existing: Sequence[Shift],
    time_off: Sequence[TimeOffRequest],
    rules: Optional[OvertimeRules] = None,
    exclude_shift_id: Optional[str] = None,
) -> ShiftValidationResult:
    """Conflicts plus overtime warnings for *shift* against the schedule.

    ``existing`` may contain *shift* itself when ``exclude_shift_id`` is its
    id; it is then counted once.
    """
    rules = rules or OvertimeRules()
    result = ShiftValidationResult(
        conflicts=detect_shift_conflicts(shift, existing, time_off, exclude_shift_id),
    )
    if result.conflicts or not rules.enabled:
        return result

    others = [
        s for s in existing
        if s is not shift and (exclude_shift_id is None or s.id != exclude_shift_id)
    ]
    shift_day = shift.start_time.date()

    daily = calculate_daily_overtime(shift.employee_id, shift_day, [*others, shift], rules)
    if daily:
        result.overtime_warnings.append(daily)
    weekly = calculate_weekly_overtime(shift.employee_id, shift_day, others, rules, shift)
    if weekly:
        result.overtime_warnings.append(weekly)
    return result


def calculate_weekly_hours_for_employees(
    employees: Iterable,
    shifts: Sequence[Shift],
    week_start: date,
    week_end: date,
    rules: Optional[OvertimeRules] = None,
) -> List[EmployeeWeeklyHours]:
    """Scheduled minutes per employee for the week, split at the weekly threshold."""
    rules = rules or OvertimeRules()
    window_start, _ = _day_bounds(week_start)
    _, window_end = _day_bounds(week_end)
    out = []
    for employee in employees:
        total = calculate_employee_minutes(employee.id, shifts, window_start, window_end)
        out.append(EmployeeWeeklyHours(
            employee_id=employee.id,
            employee_name=employee.name,
            total_minutes=total,
            regular_minutes=min(total, rules.weekly_threshold_minutes),
            overtime_minutes=max(total - rules.weekly_threshold_minutes, 0),
        ))
    return out


def bulk_validate_shifts(
    shifts: Sequence[Shift],
    time_off: Sequence[TimeOffRequest],
    rules: Optional[OvertimeRules] = None,
) -> Dict[str, ShiftValidationResult]:
    """Validate every scheduled or confirmed shift; only problems are returned.

    Results are keyed by shift id.  Unsaved shifts have no id and are keyed
    ``"new-<position>"`` by their index in *shifts*.
    """
    results: Dict[str, ShiftValidationResult] = {}
    for index, shift in enumerate(shifts):
        if shift.status not in (ShiftStatus.SCHEDULED, ShiftStatus.CONFIRMED):
            continue
        result = validate_shift(shift, shifts, time_off, rules, shift.id)
        if not result.is_valid or result.overtime_warnings:
            results[shift.id if shift.id is not None else f"new-{index}"] = result
    return results
