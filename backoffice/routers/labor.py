"""
Labor Cost Endpoints
GET /api/labor/costs   - scheduled vs actual labor cost for a date range
"""

import asyncio
import logging
from datetime import date

from fastapi import APIRouter, Query

from backoffice.core.errors import ValidationError
from backoffice.database import (
    employee_from_row, get_db, get_employees, get_punches_in_range,
    get_shifts_in_range, punch_from_row, shift_from_row,
)
from backoffice.labor.costs import calculate_actual_labor_cost, calculate_scheduled_labor_cost
from backoffice.metrics import record_calculation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/labor", tags=["labor"])


@router.get("/costs")
async def labor_costs(start: date = Query(...), end: date = Query(...)):
    """Projected cost from the schedule next to actual cost from the time clock."""
    if end < start:
        raise ValidationError("end must be on or after start")

    def _sync():
        db = get_db()
        try:
            employees = [employee_from_row(r) for r in get_employees(db)]
            shifts = [shift_from_row(r) for r in get_shifts_in_range(db, start, end)]
            punches = [punch_from_row(r) for r in get_punches_in_range(db, start, end)]
        finally:
            db.close()

        scheduled = calculate_scheduled_labor_cost(shifts, employees, start, end)
        actual = calculate_actual_labor_cost(employees, punches, start, end)
        record_calculation("labor_cost", 2)
        variance = actual.breakdown["total"] - scheduled.breakdown["total"]
        logger.debug("Labor %s..%s scheduled=%s actual=%s", start, end,
                     scheduled.breakdown["total"], actual.breakdown["total"])
        return {
            "start": start,
            "end": end,
            "scheduled": scheduled,
            "actual": actual,
            "variance": variance,
        }

    return await asyncio.to_thread(_sync)
