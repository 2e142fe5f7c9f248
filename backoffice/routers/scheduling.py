"""
Scheduling Endpoints
POST /api/scheduling/validate               - conflicts and overtime for one shift
GET  /api/scheduling/shifts                 - shifts in a date range
POST /api/scheduling/shifts                 - create a shift or a recurring series
GET  /api/scheduling/issues                 - every problem shift in a range
GET  /api/scheduling/weekly-hours           - scheduled hours per employee
POST /api/scheduling/recurrence/preview     - dates and description for a pattern
GET  /api/scheduling/recurrence/presets     - quick-pick patterns for a date
POST /api/scheduling/punches                - record a time clock punch
GET  /api/scheduling/punches/review         - sessions and noise for review
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Query

from backoffice.api.schemas import (
    PunchIn, RecurrencePreviewRequest, ShiftCreateRequest, ShiftIn, ShiftValidateRequest,
)
from backoffice.core.errors import ValidationError
from backoffice.core.utils import start_of_week
from backoffice.database import (
    EmployeeRow, ShiftRow, TimeOffRequestRow, TimePunchRow, employee_from_row,
    get_db, get_employees, get_punches_in_range, get_setting, get_shifts_in_range,
    punch_from_row, shift_from_row, time_off_from_row, to_naive_utc,
)
from backoffice.domain.enums import PunchType, TimeOffStatus
from backoffice.domain.models import RecurrencePattern, Shift, TimePunch
from backoffice.labor.punches import process_punches_for_period
from backoffice.metrics import record_calculation
from backoffice.routers.settings import DEFAULTS, overtime_rules
from backoffice.scheduling.recurrence import (
    generate_recurring_dates, get_recurrence_description, get_recurrence_presets_for_date,
)
from backoffice.scheduling.shift_validation import (
    bulk_validate_shifts, calculate_weekly_hours_for_employees, validate_shift,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/scheduling", tags=["scheduling"])

# Existing shifts loaded around a candidate: enough for a full overtime week
_CONTEXT_DAYS = 7


def _to_shift(body: ShiftIn, shift_id: Optional[str] = None) -> Shift:
    if body.end_time <= body.start_time:
        raise ValidationError("Shift end time must be after start time")
    return Shift(
        employee_id=str(body.employee_id),
        start_time=body.start_time,
        end_time=body.end_time,
        id=shift_id,
        break_duration=body.break_duration,
        status=body.status,
        position=body.position,
    )


def _context(db, employee_id: int, day: date):
    """Existing shifts and approved or pending time off around *day*."""
    lo, hi = day - timedelta(days=_CONTEXT_DAYS), day + timedelta(days=_CONTEXT_DAYS)
    shifts = [shift_from_row(r) for r in get_shifts_in_range(db, lo, hi, employee_id)]
    time_off = [
        time_off_from_row(r)
        for r in db.query(TimeOffRequestRow).filter(
            TimeOffRequestRow.employee_id == employee_id,
            TimeOffRequestRow.status != TimeOffStatus.REJECTED.value,
            TimeOffRequestRow.start_date <= hi,
            TimeOffRequestRow.end_date >= lo,
        )
    ]
    return shifts, time_off


@router.post("/validate")
async def validate_shift_endpoint(body: ShiftValidateRequest):
    shift = _to_shift(body.shift)
    exclude = str(body.exclude_shift_id) if body.exclude_shift_id is not None else None

    def _sync():
        db = get_db()
        try:
            existing, time_off = _context(db, body.shift.employee_id, shift.start_time.date())
            rules = overtime_rules(db)
        finally:
            db.close()
        result = validate_shift(shift, existing, time_off, rules, exclude)
        record_calculation("shift_validation")
        return {
            "is_valid": result.is_valid,
            "conflicts": result.conflicts,
            "overtime_warnings": result.overtime_warnings,
        }

    return await asyncio.to_thread(_sync)


@router.get("/shifts")
async def list_shifts(start: date = Query(...), end: date = Query(...), employee_id: Optional[int] = None):
    def _sync():
        db = get_db()
        try:
            return [shift_from_row(r) for r in get_shifts_in_range(db, start, end, employee_id)]
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.post("/shifts", status_code=201)
async def create_shifts(body: ShiftCreateRequest):
    """Create one shift, or one per recurrence date when a pattern is given.

    Every occurrence is validated first.  With ``enforce_conflicts`` any
    conflict rejects the whole series and nothing is saved.
    """
    template = _to_shift(body.shift)
    pattern = RecurrencePattern.from_dict(body.recurrence.model_dump()) if body.recurrence else None
    first_day = template.start_time.date()
    days = generate_recurring_dates(first_day, pattern) if pattern else [first_day]

    def _sync():
        db = get_db()
        try:
            if db.get(EmployeeRow, body.shift.employee_id) is None:
                raise ValidationError(f"Employee {body.shift.employee_id} not found")
            rules = overtime_rules(db)
            candidates: List[Shift] = []
            problems = []
            for day in days:
                offset = day - first_day
                candidate = Shift(
                    employee_id=template.employee_id,
                    start_time=template.start_time + offset,
                    end_time=template.end_time + offset,
                    break_duration=template.break_duration,
                    status=template.status,
                    position=template.position,
                )
                existing, time_off = _context(db, body.shift.employee_id, day)
                result = validate_shift(candidate, [*existing, *candidates], time_off, rules)
                if not result.is_valid:
                    problems.append({"date": day.isoformat(), "conflicts": result.conflicts})
                candidates.append(candidate)

            if problems and body.enforce_conflicts:
                raise ValidationError(
                    "Shift conflicts with the existing schedule",
                    details=[
                        f"{p['date']}: {c.message}" for p in problems for c in p["conflicts"]
                    ],
                )

            rows = []
            parent_id = None
            for candidate in candidates:
                row = ShiftRow(
                    employee_id=body.shift.employee_id,
                    start_time=to_naive_utc(candidate.start_time),
                    end_time=to_naive_utc(candidate.end_time),
                    break_duration=candidate.break_duration,
                    position=candidate.position,
                    status=candidate.status.value,
                    recurrence_pattern=pattern.to_dict() if pattern else None,
                    recurrence_parent_id=parent_id,
                )
                db.add(row)
                db.flush()
                if pattern and parent_id is None:
                    parent_id = row.id
                rows.append(row)
            db.commit()
            logger.info("Created %d shift(s) for employee %s", len(rows), body.shift.employee_id)
            return {
                "created": [shift_from_row(r) for r in rows],
                "warnings": problems,
            }
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.get("/issues")
async def schedule_issues(start: date = Query(...), end: date = Query(...)):
    def _sync():
        db = get_db()
        try:
            shifts = [shift_from_row(r) for r in get_shifts_in_range(db, start, end)]
            time_off = [
                time_off_from_row(r)
                for r in db.query(TimeOffRequestRow).filter(
                    TimeOffRequestRow.start_date <= end,
                    TimeOffRequestRow.end_date >= start,
                )
            ]
            rules = overtime_rules(db)
        finally:
            db.close()
        record_calculation("shift_validation", len(shifts))
        return {
            shift_id: {
                "is_valid": r.is_valid,
                "conflicts": r.conflicts,
                "overtime_warnings": r.overtime_warnings,
            }
            for shift_id, r in bulk_validate_shifts(shifts, time_off, rules).items()
        }

    return await asyncio.to_thread(_sync)


@router.get("/weekly-hours")
async def weekly_hours(day: date = Query(..., description="Any date in the week")):
    def _sync():
        db = get_db()
        try:
            week_start_day = int(get_setting(db, "work_week_start", DEFAULTS["work_week_start"]))
            start = start_of_week(day, week_start_day)
            end = start + timedelta(days=6)
            employees = [employee_from_row(r) for r in get_employees(db, active_only=True)]
            shifts = [shift_from_row(r) for r in get_shifts_in_range(db, start, end)]
            rules = overtime_rules(db)
        finally:
            db.close()
        return {
            "week_start": start,
            "week_end": end,
            "employees": calculate_weekly_hours_for_employees(employees, shifts, start, end, rules),
        }

    return await asyncio.to_thread(_sync)


@router.post("/recurrence/preview")
async def recurrence_preview(body: RecurrencePreviewRequest):
    pattern = RecurrencePattern.from_dict(body.pattern.model_dump())
    dates = generate_recurring_dates(body.start_date, pattern, body.max_occurrences)
    return {
        "description": get_recurrence_description(pattern),
        "count": len(dates),
        "dates": dates,
    }


@router.get("/recurrence/presets")
async def recurrence_presets(day: date = Query(...)):
    return get_recurrence_presets_for_date(day)


@router.post("/punches", status_code=201)
async def record_punch(body: PunchIn):
    try:
        punch_type = PunchType(body.punch_type)
    except ValueError:
        raise ValidationError(f"Unknown punch type: {body.punch_type}")
    punch = TimePunch(str(body.employee_id), punch_type, body.punch_time)

    def _sync():
        db = get_db()
        try:
            if db.get(EmployeeRow, body.employee_id) is None:
                raise ValidationError(f"Employee {body.employee_id} not found")
            row = TimePunchRow(
                employee_id=body.employee_id,
                punch_type=punch.punch_type.value,
                punch_time=to_naive_utc(punch.punch_time),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return punch_from_row(row)
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.get("/punches/review")
async def review_punches(
    start: date = Query(...),
    end: date = Query(...),
    employee_id: Optional[int] = None,
):
    """Punches grouped into work sessions with noise and anomalies flagged."""
    def _sync():
        db = get_db()
        try:
            punches = [punch_from_row(r) for r in get_punches_in_range(db, start, end, employee_id)]
        finally:
            db.close()
        record_calculation("punch_review")
        return process_punches_for_period(punches)

    return await asyncio.to_thread(_sync)
