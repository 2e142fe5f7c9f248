"""
backoffice.labor.payroll — Gross pay per employee for a pay period.

Overtime is evaluated per work week (Monday to Sunday): 45 hours in one
week and 35 in the next is 75 regular hours plus 5 overtime hours, not 80
regular hours.  Tips are carried alongside wages and never counted in
``gross_pay``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from backoffice import config
from backoffice.core.utils import days_between, round_half_up
from backoffice.domain.enums import CompensationType, ContractorInterval
from backoffice.domain.models import Employee, ManualPayment, TimePunch
from backoffice.labor.compensation import (
    calculate_daily_contractor_allocation,
    calculate_daily_rate_pay,
    calculate_daily_salary_allocation,
)
from backoffice.labor.punches import IncompleteShift, parse_work_periods

logger = logging.getLogger(__name__)


@dataclass
class EmployeePayroll:
    employee_id: str
    employee_name: str
    position: str
    compensation_type: CompensationType
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    regular_pay: int = 0
    overtime_pay: int = 0
    salary_pay: int = 0
    contractor_pay: int = 0
    daily_rate_pay: int = 0
    days_worked: int = 0
    manual_payments: List[ManualPayment] = field(default_factory=list)
    manual_payments_total: int = 0
    gross_pay: int = 0
    total_tips: int = 0
    total_pay: int = 0
    incomplete_shifts: List[IncompleteShift] = field(default_factory=list)


@dataclass
class PayrollPeriod:
    start_date: date
    end_date: date
    employees: List[EmployeePayroll]
    total_regular_hours: float = 0.0
    total_overtime_hours: float = 0.0
    total_gross_pay: int = 0
    total_tips: int = 0
    total_pay: int = 0


def calculate_regular_and_overtime_hours(
    total_hours: float,
    threshold: float = config.OVERTIME_WEEKLY_HOURS,
) -> Tuple[float, float]:
    """Split one week's hours into ``(regular, overtime)``."""
    regular = min(total_hours, threshold)
    return regular, max(total_hours - threshold, 0.0)


def _week_key(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _in_period(day: date, start: Optional[date], end: Optional[date]) -> bool:
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def calculate_employee_pay(
    employee: Employee,
    punches: Iterable[TimePunch],
    total_tips: int = 0,
    start: Optional[date] = None,
    end: Optional[date] = None,
    manual_payments: Optional[Sequence[ManualPayment]] = None,
) -> EmployeePayroll:
    """Compute one employee's pay.

    Parameters
    ----------
    employee:
        The employee being paid.
    punches:
        The employee's punches for the period.
    total_tips:
        Tips owed to the employee for the period, in cents.
    start, end:
        Inclusive pay period bounds.  Salaried and contractor pay is the
        daily allocation times the number of days in the period; when the
        bounds are omitted one full pay period (or interval) is paid.
    manual_payments:
        One-off payments (per-job contractor work, bonuses) added to gross.
    """
    manual = [
        p for p in (manual_payments or [])
        if _in_period(p.date, start, end)
    ]
    result = EmployeePayroll(
        employee_id=employee.id,
        employee_name=employee.name,
        position=employee.position,
        compensation_type=employee.compensation_type,
        manual_payments=manual,
        manual_payments_total=sum(p.amount for p in manual),
        total_tips=int(total_tips or 0),
    )

    punches = list(punches)
    periods, incomplete = parse_work_periods(punches)
    result.incomplete_shifts = incomplete
    work = [
        p for p in periods
        if not p.is_break and _in_period(p.start_time.date(), start, end)
    ]
    result.days_worked = len({p.start_time.date() for p in work})
    ctype = employee.compensation_type

    if ctype == CompensationType.HOURLY:
        weekly: Dict[date, float] = defaultdict(float)
        for period in work:
            weekly[_week_key(period.start_time.date())] += period.hours
        for hours in weekly.values():
            regular, overtime = calculate_regular_and_overtime_hours(hours)
            result.regular_hours += regular
            result.overtime_hours += overtime
        result.regular_pay = round_half_up(result.regular_hours * employee.hourly_rate)
        result.overtime_pay = round_half_up(
            result.overtime_hours * employee.hourly_rate * config.OVERTIME_MULTIPLIER
        )

    elif ctype == CompensationType.SALARY:
        if employee.salary_amount and employee.pay_period_type:
            if start is not None and end is not None:
                daily = calculate_daily_salary_allocation(employee.salary_amount, employee.pay_period_type)
                result.salary_pay = daily * days_between(start, end)
            else:
                result.salary_pay = employee.salary_amount

    elif ctype == CompensationType.CONTRACTOR:
        interval = employee.contractor_payment_interval
        if employee.contractor_payment_amount and interval and interval != ContractorInterval.PER_JOB:
            if start is not None and end is not None:
                daily = calculate_daily_contractor_allocation(employee.contractor_payment_amount, interval)
                result.contractor_pay = daily * days_between(start, end)
            else:
                result.contractor_pay = employee.contractor_payment_amount

    elif ctype == CompensationType.DAILY_RATE:
        # any punch on a day counts that day, even if the shift is incomplete
        result.days_worked = len({
            p.punch_time.date() for p in punches if _in_period(p.punch_time.date(), start, end)
        })
        result.daily_rate_pay = calculate_daily_rate_pay(employee, result.days_worked)

    result.gross_pay = (
        result.regular_pay
        + result.overtime_pay
        + result.salary_pay
        + result.contractor_pay
        + result.daily_rate_pay
        + result.manual_payments_total
    )
    result.total_pay = result.gross_pay + result.total_tips
    return result


def calculate_payroll_period(
    start: date,
    end: date,
    employees: Iterable[Employee],
    punches_by_employee: Mapping[str, List[TimePunch]],
    tips_by_employee: Optional[Mapping[str, int]] = None,
    manual_by_employee: Optional[Mapping[str, List[ManualPayment]]] = None,
) -> PayrollPeriod:
    """Payroll for every employee over ``start``..``end`` (inclusive)."""
    tips_by_employee = tips_by_employee or {}
    manual_by_employee = manual_by_employee or {}

    rows = [
        calculate_employee_pay(
            employee,
            punches_by_employee.get(employee.id, []),
            tips_by_employee.get(employee.id, 0),
            start,
            end,
            manual_by_employee.get(employee.id, []),
        )
        for employee in employees
    ]
    flagged = sum(len(r.incomplete_shifts) for r in rows)
    if flagged:
        logger.warning(
            "Payroll %s..%s: %d incomplete shift(s) excluded from pay", start, end, flagged,
        )

    return PayrollPeriod(
        start_date=start,
        end_date=end,
        employees=rows,
        total_regular_hours=sum(r.regular_hours for r in rows),
        total_overtime_hours=sum(r.overtime_hours for r in rows),
        total_gross_pay=sum(r.gross_pay for r in rows),
        total_tips=sum(r.total_tips for r in rows),
        total_pay=sum(r.total_pay for r in rows),
    )
