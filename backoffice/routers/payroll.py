"""
Payroll Endpoints
GET /api/payroll          - payroll for a pay period
GET /api/payroll/period   - pay period containing a date
"""

import asyncio
from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from backoffice.core.errors import ValidationError
from backoffice.database import (
    employee_from_row, get_db, get_employees, get_manual_payments_by_employee,
    get_punches_in_range, get_setting, get_tips_by_employee, punch_from_row,
)
from backoffice.domain.enums import PayPeriodType
from backoffice.labor.compensation import get_pay_period_dates
from backoffice.labor.payroll import calculate_payroll_period
from backoffice.metrics import record_calculation
from backoffice.routers.settings import DEFAULTS

router = APIRouter(prefix="/api/payroll", tags=["payroll"])


@router.get("")
async def payroll_for_period(
    start: date = Query(...),
    end: date = Query(...),
    include_inactive: bool = Query(False),
):
    """Hours, overtime, fixed pay, manual payments and tips per employee."""
    if end < start:
        raise ValidationError("end must be on or after start")

    def _sync():
        db = get_db()
        try:
            employees = [
                employee_from_row(r) for r in get_employees(db, active_only=not include_inactive)
            ]
            punches = {}
            for row in get_punches_in_range(db, start, end):
                punches.setdefault(str(row.employee_id), []).append(punch_from_row(row))
            tips = get_tips_by_employee(db, start, end)
            manual = get_manual_payments_by_employee(db, start, end)
        finally:
            db.close()
        record_calculation("payroll")
        return calculate_payroll_period(start, end, employees, punches, tips, manual)

    return await asyncio.to_thread(_sync)


@router.get("/period")
async def pay_period(
    day: date = Query(...),
    period_type: PayPeriodType = Query(PayPeriodType.BI_WEEKLY),
    week_start: Optional[int] = Query(None, ge=0, le=6),
):
    if week_start is None:
        def _sync():
            db = get_db()
            try:
                return int(get_setting(db, "work_week_start", DEFAULTS["work_week_start"]))
            finally:
                db.close()

        week_start = await asyncio.to_thread(_sync)
    start, end = get_pay_period_dates(day, period_type, week_start)
    return {"start": start, "end": end, "period_type": period_type.value}
