"""
Employee Endpoints
GET    /api/employees                     - list employees
POST   /api/employees                     - create an employee
GET    /api/employees/{id}                - one employee
PUT    /api/employees/{id}                - update compensation and profile
DELETE /api/employees/{id}                - delete an employee
GET    /api/employees/{id}/compensation   - cost summary over a date range
"""

import asyncio
import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Query

from backoffice.api.schemas import EmployeeCreate, EmployeeOut, EmployeeUpdate
from backoffice.core.errors import NotFoundError, ValidationError
from backoffice.core.utils import round_half_up
from backoffice.database import (
    EmployeeRow, apply_employee_fields, employee_from_row, employee_to_dict,
    get_db, get_employees, get_punches_in_range, punch_from_row,
)
from backoffice.domain.enums import CompensationType
from backoffice.labor.compensation import (
    generate_allocations_for_range, generate_compensation_summary,
    validate_compensation_fields,
)
from backoffice.labor.costs import get_employee_daily_rate_description
from backoffice.labor.punches import calculate_worked_hours
from backoffice.metrics import record_calculation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/employees", tags=["employees"])


def _out(row: EmployeeRow) -> EmployeeOut:
    return EmployeeOut(
        **employee_to_dict(row),
        rate_description=get_employee_daily_rate_description(employee_from_row(row)),
    )


def _load(db, employee_id: int) -> EmployeeRow:
    row = db.get(EmployeeRow, employee_id)
    if row is None:
        raise NotFoundError(f"Employee {employee_id} not found")
    return row


def _check_compensation(values: dict) -> None:
    errors = validate_compensation_fields(values)
    if errors:
        raise ValidationError("Invalid compensation", details=errors)


@router.get("", response_model=List[EmployeeOut])
async def list_employees(active_only: bool = Query(False)):
    def _sync():
        db = get_db()
        try:
            return [_out(r) for r in get_employees(db, active_only=active_only)]
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.post("", response_model=EmployeeOut, status_code=201)
async def create_employee(body: EmployeeCreate):
    values = body.model_dump(exclude_none=True)
    _check_compensation(values)

    def _sync():
        db = get_db()
        try:
            row = apply_employee_fields(EmployeeRow(), values)
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.info("Created employee %s (%s)", row.id, row.compensation_type)
            return _out(row)
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee(employee_id: int):
    def _sync():
        db = get_db()
        try:
            return _out(_load(db, employee_id))
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.put("/{employee_id}", response_model=EmployeeOut)
async def update_employee(employee_id: int, body: EmployeeUpdate):
    changes = body.model_dump(exclude_unset=True)

    def _sync():
        db = get_db()
        try:
            row = _load(db, employee_id)
            merged = {**employee_to_dict(row), **changes}
            _check_compensation(merged)
            apply_employee_fields(row, changes)
            db.commit()
            db.refresh(row)
            return _out(row)
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.delete("/{employee_id}")
async def delete_employee(employee_id: int):
    def _sync():
        db = get_db()
        try:
            db.delete(_load(db, employee_id))
            db.commit()
            return {"status": "ok", "deleted": employee_id}
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.get("/{employee_id}/compensation")
async def compensation_summary(
    employee_id: int,
    start: date = Query(...),
    end: date = Query(...),
):
    """Allocated cost for the range; hourly and daily-rate staff are costed from their punches."""
    if end < start:
        raise ValidationError("end must be on or after start")

    def _sync():
        db = get_db()
        try:
            employee = employee_from_row(_load(db, employee_id))
            punches = [punch_from_row(p) for p in get_punches_in_range(db, start, end, employee_id)]
        finally:
            db.close()

        hours = calculate_worked_hours(punches)
        worked_days = {p.punch_time.date() for p in punches}
        allocations = generate_allocations_for_range(employee, start, end, worked_days)
        summary = generate_compensation_summary(employee, allocations, hours)
        if employee.compensation_type == CompensationType.HOURLY:
            summary.total_amount = round_half_up(employee.hourly_rate * hours)
        record_calculation("compensation_summary")
        return {"summary": summary, "allocations": allocations}

    return await asyncio.to_thread(_sync)
