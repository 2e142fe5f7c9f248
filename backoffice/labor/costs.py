"""
backoffice.labor.costs — Labor cost for dashboards and the schedule view.

Unlike ``labor.compensation.calculate_daily_labor_cost`` these functions are
lenient: an employee with incomplete compensation terms costs 0 instead of
raising, so a single misconfigured record never breaks a report.

Costs are cents.  Daily rows may carry fractional cents because fixed pay
is spread evenly across the range; breakdown totals are rounded.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Set

from backoffice.core.utils import date_range, format_currency, round_half_up
from backoffice.domain.enums import CompensationType, ContractorInterval
from backoffice.domain.models import Employee, Shift, TimePunch
from backoffice.labor.compensation import (
    calculate_daily_contractor_allocation,
    calculate_daily_salary_allocation,
)
from backoffice.labor.punches import parse_work_periods

logger = logging.getLogger(__name__)


@dataclass
class DailyLaborCost:
    date: date
    hourly_cost: float = 0.0
    salary_cost: float = 0.0
    contractor_cost: float = 0.0
    daily_rate_cost: float = 0.0
    total_cost: float = 0.0
    hours_worked: float = 0.0

    def add(self, bucket: str, amount: float) -> None:
        setattr(self, bucket, getattr(self, bucket) + amount)
        self.total_cost += amount


@dataclass
class LaborCostResult:
    breakdown: Dict[str, dict]
    daily_costs: List[DailyLaborCost] = field(default_factory=list)


def _is_per_job(employee: Employee) -> bool:
    return employee.contractor_payment_interval == ContractorInterval.PER_JOB


def calculate_employee_daily_cost(employee: Employee, hours_worked: Optional[float] = None) -> int:
    """One day of cost in cents; 0 when terms are incomplete or hours are missing."""
    ctype = employee.compensation_type
    if ctype == CompensationType.HOURLY:
        if not hours_worked:
            return 0
        return round_half_up(employee.hourly_rate * hours_worked)
    if ctype == CompensationType.SALARY:
        if not employee.salary_amount or not employee.pay_period_type:
            return 0
        return calculate_daily_salary_allocation(employee.salary_amount, employee.pay_period_type)
    if ctype == CompensationType.CONTRACTOR:
        if not employee.contractor_payment_amount or not employee.contractor_payment_interval:
            return 0
        if _is_per_job(employee):
            return 0
        return calculate_daily_contractor_allocation(
            employee.contractor_payment_amount, employee.contractor_payment_interval,
        )
    if ctype == CompensationType.DAILY_RATE:
        return employee.daily_rate_amount or 0
    return 0


def calculate_employee_period_cost(
    employee: Employee,
    start: date,
    end: date,
    hours_per_day: Optional[Mapping[date, float]] = None,
) -> int:
    """Sum of daily cost over the inclusive range.

    Hourly and daily-rate employees only cost money on days present in
    *hours_per_day*; salaried and contractor pay accrues every day.
    """
    hours_per_day = hours_per_day or {}
    total = 0
    for day in date_range(start, end):
        hours = hours_per_day.get(day, 0)
        if employee.compensation_type == CompensationType.HOURLY:
            total += calculate_employee_daily_cost(employee, hours)
        elif employee.compensation_type == CompensationType.DAILY_RATE:
            if hours > 0:
                total += calculate_employee_daily_cost(employee)
        else:
            total += calculate_employee_daily_cost(employee)
    return total


def _empty_days(start: date, end: date) -> Dict[date, DailyLaborCost]:
    return {day: DailyLaborCost(date=day) for day in date_range(start, end)}


def _breakdown(
    daily: List[DailyLaborCost],
    salary_employees: int,
    contractor_employees: int,
    daily_rate_employees: int,
    salary_days: int,
    contractor_days: int,
) -> Dict[str, dict]:
    return {
        "hourly": {
            "cost": round_half_up(sum(d.hourly_cost for d in daily)),
            "hours": round(sum(d.hours_worked for d in daily), 2),
        },
        "salary": {
            "cost": round_half_up(sum(d.salary_cost for d in daily)),
            "employees": salary_employees,
            "days_scheduled": salary_days,
        },
        "contractor": {
            "cost": round_half_up(sum(d.contractor_cost for d in daily)),
            "employees": contractor_employees,
            "days_scheduled": contractor_days,
        },
        "daily_rate": {
            "cost": round_half_up(sum(d.daily_rate_cost for d in daily)),
            "employees": daily_rate_employees,
            "days_scheduled": sum(1 for d in daily if d.daily_rate_cost > 0),
        },
        "total": round_half_up(sum(d.total_cost for d in daily)),
    }


def shift_hours(shift: Shift) -> float:
    """Scheduled hours net of the unpaid break, never negative."""
    minutes = (shift.end_time - shift.start_time).total_seconds() / 60
    return max(minutes - shift.break_duration, 0) / 60


def calculate_scheduled_labor_cost(
    shifts: Iterable[Shift],
    employees: Iterable[Employee],
    start: date,
    end: date,
) -> LaborCostResult:
    """Projected labor cost for a schedule.

    Hourly shifts are costed on the date they start.  Salaried and
    non-per-job contractor pay for the range is spread evenly over every
    day, since it is owed whether or not anyone is scheduled.  Daily-rate
    staff cost one day of pay for each day they have a shift.
    """
    employees = [e for e in employees if e.is_active]
    by_id = {e.id: e for e in employees}
    days = _empty_days(start, end)
    scheduled: Dict[date, Set[str]] = defaultdict(set)

    for shift in shifts:
        employee = by_id.get(shift.employee_id)
        if employee is None:
            continue
        shift_day = shift.start_time.date()
        row = days.get(shift_day)
        if row is None:
            continue
        scheduled[shift_day].add(employee.id)

        if employee.compensation_type == CompensationType.HOURLY:
            hours = shift_hours(shift)
            row.add("hourly_cost", calculate_employee_daily_cost(employee, hours))
            row.hours_worked += hours

    for day, emp_ids in scheduled.items():
        for emp_id in emp_ids:
            employee = by_id[emp_id]
            if employee.compensation_type == CompensationType.DAILY_RATE:
                days[day].add("daily_rate_cost", calculate_employee_daily_cost(employee))

    salaried = [e for e in employees if e.compensation_type == CompensationType.SALARY]
    contractors = [
        e for e in employees
        if e.compensation_type == CompensationType.CONTRACTOR and not _is_per_job(e)
    ]
    day_count = len(days)
    for bucket, group in (("salary_cost", salaried), ("contractor_cost", contractors)):
        for employee in group:
            period_cost = calculate_employee_period_cost(employee, start, end)
            if period_cost <= 0 or day_count == 0:
                continue
            share = period_cost / day_count
            for row in days.values():
                row.add(bucket, share)

    daily = sorted(days.values(), key=lambda d: d.date)
    salary_ids = {e.id for e in salaried}
    contractor_ids = {e.id for e in contractors}
    return LaborCostResult(
        breakdown=_breakdown(
            daily,
            salary_employees=len(salaried),
            contractor_employees=len(contractors),
            daily_rate_employees=sum(
                1 for e in employees if e.compensation_type == CompensationType.DAILY_RATE
            ),
            salary_days=sum(1 for ids in scheduled.values() if ids & salary_ids),
            contractor_days=sum(1 for ids in scheduled.values() if ids & contractor_ids),
        ),
        daily_costs=daily,
    )


def calculate_actual_labor_cost(
    employees: Iterable[Employee],
    punches: Iterable[TimePunch],
    start: date,
    end: date,
) -> LaborCostResult:
    """Historical labor cost from time punches.

    Worked hours land on the date a work period starts.  An employee counts
    as present on every date a work period touches (overnight shifts span
    two), and salaried, contractor and daily-rate staff cost one day of pay
    for each date they were present.
    """
    employees = list(employees)
    by_id = {e.id: e for e in employees if e.is_active}
    days = _empty_days(start, end)

    punches_by_employee: Dict[str, List[TimePunch]] = defaultdict(list)
    for punch in punches:
        punches_by_employee[punch.employee_id].append(punch)

    hours: Dict[str, Dict[date, float]] = defaultdict(lambda: defaultdict(float))
    present: Dict[date, Set[str]] = defaultdict(set)

    for emp_id, emp_punches in punches_by_employee.items():
        if emp_id not in by_id:
            continue
        periods, _incomplete = parse_work_periods(emp_punches)
        for period in periods:
            if period.is_break:
                continue
            hours[emp_id][period.start_time.date()] += period.hours
            for day in date_range(period.start_time.date(), period.end_time.date()):
                present[day].add(emp_id)

    for day, row in days.items():
        for emp_id in present.get(day, ()):
            employee = by_id[emp_id]
            ctype = employee.compensation_type
            if ctype == CompensationType.HOURLY:
                worked = hours[emp_id].get(day, 0.0)
                if worked > 0:
                    row.add("hourly_cost", employee.hourly_rate * worked)
                    row.hours_worked += worked
            elif ctype == CompensationType.SALARY:
                row.add("salary_cost", calculate_employee_daily_cost(employee))
            elif ctype == CompensationType.CONTRACTOR:
                row.add("contractor_cost", calculate_employee_daily_cost(employee))
            elif ctype == CompensationType.DAILY_RATE:
                row.add("daily_rate_cost", calculate_employee_daily_cost(employee))

    daily = sorted(days.values(), key=lambda d: d.date)
    active = list(by_id.values())
    return LaborCostResult(
        breakdown=_breakdown(
            daily,
            salary_employees=sum(1 for e in active if e.compensation_type == CompensationType.SALARY),
            contractor_employees=sum(1 for e in active if e.compensation_type == CompensationType.CONTRACTOR),
            daily_rate_employees=sum(1 for e in active if e.compensation_type == CompensationType.DAILY_RATE),
            salary_days=sum(1 for d in daily if d.salary_cost > 0),
            contractor_days=sum(1 for d in daily if d.contractor_cost > 0),
        ),
        daily_costs=daily,
    )


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

def is_employee_compensation_valid(employee: Employee) -> bool:
    ctype = employee.compensation_type
    if ctype == CompensationType.HOURLY:
        return bool(employee.hourly_rate and employee.hourly_rate > 0)
    if ctype == CompensationType.SALARY:
        return bool(employee.salary_amount and employee.salary_amount > 0 and employee.pay_period_type)
    if ctype == CompensationType.CONTRACTOR:
        return bool(
            employee.contractor_payment_amount
            and employee.contractor_payment_amount > 0
            and employee.contractor_payment_interval
        )
    if ctype == CompensationType.DAILY_RATE:
        return bool(employee.daily_rate_amount and employee.daily_rate_amount > 0)
    return False


def get_employee_daily_rate_description(employee: Employee) -> str:
    """Short rate label such as ``$15.00/hr`` or ``~$142.86/day (bi-weekly)``."""
    if not is_employee_compensation_valid(employee):
        return "No rate configured"

    daily = format_currency(calculate_employee_daily_cost(employee))
    ctype = employee.compensation_type
    if ctype == CompensationType.HOURLY:
        return f"{format_currency(employee.hourly_rate)}/hr"
    if ctype == CompensationType.SALARY:
        return f"~{daily}/day ({employee.pay_period_type.value})"
    if ctype == CompensationType.CONTRACTOR:
        if _is_per_job(employee):
            return f"{format_currency(employee.contractor_payment_amount)}/job"
        return f"~{daily}/day ({employee.contractor_payment_interval.value})"
    return f"{daily}/day"
