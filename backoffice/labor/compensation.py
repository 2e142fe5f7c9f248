"""
backoffice.labor.compensation — Per-employee compensation rules.

Converts each compensation type (hourly, salary, contractor, daily rate)
into a cost for a single day so that labor can be compared against daily
sales regardless of how people are paid.  All amounts are integer cents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from backoffice.core.constants import (
    BIWEEKLY_ANCHOR,
    CONTRACTOR_INTERVALS_PER_YEAR,
    DAYS_PER_CONTRACTOR_INTERVAL,
    DAYS_PER_PAY_PERIOD,
    DEFAULT_HOURS_PER_WEEK,
    PAY_PERIODS_PER_YEAR,
    WEEKS_PER_YEAR,
)
from backoffice.core.errors import ValidationError
from backoffice.core.utils import (
    days_between, format_currency, last_day_of_month, round_half_up, start_of_week,
)
from backoffice.domain.enums import (
    CompensationType, ContractorInterval, PayPeriodType,
)
from backoffice.domain.models import Employee

logger = logging.getLogger(__name__)


@dataclass
class DailyAllocation:
    employee_id: str
    date: date
    compensation_type: CompensationType
    allocated_amount: int
    calculation_notes: str = ""
    source_pay_period_start: Optional[date] = None
    source_pay_period_end: Optional[date] = None


@dataclass
class LaborBreakdown:
    hourly_wages: int = 0
    salary_allocations: int = 0
    contractor_payments: int = 0
    daily_rate_wages: int = 0
    total: int = 0


@dataclass
class CompensationSummary:
    compensation_type: CompensationType
    total_amount: int
    hours_worked: Optional[float] = None
    days_worked: Optional[int] = None
    effective_hourly_rate: Optional[int] = None


# ---------------------------------------------------------------------------
# Salary and contractor allocation
# ---------------------------------------------------------------------------

def calculate_daily_salary_allocation(salary_amount: int, pay_period_type: str) -> int:
    """Salary per pay period spread over the average days in that period.

    A $2,000 bi-weekly salary allocates 200000 / 14 = 14286 cents per day.
    """
    days = DAYS_PER_PAY_PERIOD[PayPeriodType(pay_period_type).value]
    return round_half_up(salary_amount / days)


def calculate_daily_contractor_allocation(payment_amount: int, interval: str) -> int:
    """Contractor payment per day; per-job contractors are never spread (0)."""
    interval = ContractorInterval(interval)
    if interval == ContractorInterval.PER_JOB:
        return 0
    return round_half_up(payment_amount / DAYS_PER_CONTRACTOR_INTERVAL[interval.value])


def calculate_effective_hourly_rate(
    amount: int,
    period: str,
    hours_per_week: float = DEFAULT_HOURS_PER_WEEK,
) -> int:
    """Annualize a salary (or contractor payment) and express it per hour.

    ``period`` is a pay period type or a contractor interval.  Per-job
    contractors have no hourly equivalent and return 0.
    """
    period = getattr(period, "value", period)
    if period in PAY_PERIODS_PER_YEAR:
        annual = amount * PAY_PERIODS_PER_YEAR[period]
    elif period in CONTRACTOR_INTERVALS_PER_YEAR:
        annual = amount * CONTRACTOR_INTERVALS_PER_YEAR[period]
    else:
        return 0
    hours_per_year = hours_per_week * WEEKS_PER_YEAR
    if hours_per_year <= 0:
        return 0
    return round_half_up(annual / hours_per_year)


# ---------------------------------------------------------------------------
# Pay periods
# ---------------------------------------------------------------------------

def get_pay_period_dates(
    day: date,
    pay_period_type: str,
    week_start: int = 0,
) -> Tuple[date, date]:
    """Return the inclusive ``(start, end)`` of the pay period containing *day*.

    Weekly periods begin on ``week_start`` (Sunday = 0).  Bi-weekly periods
    are counted in 14-day blocks from Monday 2024-01-01.  Semi-monthly
    periods are the 1st-15th and the 16th-end of month.
    """
    period = PayPeriodType(pay_period_type)
    if period == PayPeriodType.WEEKLY:
        start = start_of_week(day, week_start)
        return start, start + timedelta(days=6)
    if period == PayPeriodType.BI_WEEKLY:
        into_period = (day - date(*BIWEEKLY_ANCHOR)).days % 14
        start = day - timedelta(days=into_period)
        return start, start + timedelta(days=13)
    eom = date(day.year, day.month, last_day_of_month(day.year, day.month))
    if period == PayPeriodType.SEMI_MONTHLY:
        if day.day <= 15:
            return date(day.year, day.month, 1), date(day.year, day.month, 15)
        return date(day.year, day.month, 16), eom
    return date(day.year, day.month, 1), eom


def days_in_pay_period(start: date, end: date) -> int:
    """Actual number of days in a period, both ends inclusive."""
    return abs((end - start).days) + 1


# ---------------------------------------------------------------------------
# Daily rate
# ---------------------------------------------------------------------------

def calculate_daily_rate_from_weekly(weekly_amount: int, standard_days: int) -> int:
    """Derive a per-day rate from a reference weekly amount.

    $1,000 over 6 standard days is 16667 cents per day.
    """
    if standard_days <= 0:
        raise ValidationError("Standard days must be greater than 0")
    return round_half_up(weekly_amount / standard_days)


def calculate_daily_rate_pay(employee: Employee, days_worked: int) -> int:
    """Pay for *days_worked* days; 0 for any other compensation type."""
    if employee.compensation_type != CompensationType.DAILY_RATE:
        return 0
    return (employee.daily_rate_amount or 0) * max(days_worked, 0)


# ---------------------------------------------------------------------------
# Unified per-day cost
# ---------------------------------------------------------------------------

def calculate_daily_labor_cost(employee: Employee, hours_worked: Optional[float] = None) -> int:
    """Cost of one day of *employee*'s labor, in cents.

    Raises ``ValidationError`` when the fields that the compensation type
    depends on are missing.
    """
    ctype = employee.compensation_type
    if ctype == CompensationType.HOURLY:
        if hours_worked is None:
            raise ValidationError("Hours worked required for hourly employees")
        return round_half_up(employee.hourly_rate * hours_worked)

    if ctype == CompensationType.SALARY:
        if not employee.salary_amount or not employee.pay_period_type:
            raise ValidationError("Salary amount and pay period required for salaried employees")
        if not employee.allocate_daily:
            # recorded on the paycheck date instead
            return 0
        return calculate_daily_salary_allocation(employee.salary_amount, employee.pay_period_type)

    if ctype == CompensationType.CONTRACTOR:
        if not employee.contractor_payment_amount or not employee.contractor_payment_interval:
            raise ValidationError("Payment amount and interval required for contractors")
        return calculate_daily_contractor_allocation(
            employee.contractor_payment_amount, employee.contractor_payment_interval,
        )

    if ctype == CompensationType.DAILY_RATE:
        return employee.daily_rate_amount or 0

    return 0


def generate_daily_allocation(
    employee: Employee,
    day: date,
    hours_worked: Optional[float] = None,
) -> DailyAllocation:
    """Build the allocation record for *employee* on *day*."""
    amount = calculate_daily_labor_cost(employee, hours_worked)
    notes = ""
    period_start = period_end = None
    ctype = employee.compensation_type

    if ctype == CompensationType.HOURLY:
        hours_text = f"{hours_worked:g}"
        notes = f"{hours_text} hrs × {format_currency(employee.hourly_rate)}/hr"
    elif ctype == CompensationType.SALARY:
        period = PayPeriodType(employee.pay_period_type)
        period_start, period_end = get_pay_period_dates(day, period)
        days = DAYS_PER_PAY_PERIOD[period.value]
        notes = f"{format_currency(employee.salary_amount)}/{period.value} ÷ {days:.1f} days"
    elif ctype == CompensationType.CONTRACTOR:
        interval = ContractorInterval(employee.contractor_payment_interval)
        if interval == ContractorInterval.PER_JOB:
            notes = "Per-job payment (not daily allocated)"
        else:
            days = DAYS_PER_CONTRACTOR_INTERVAL[interval.value]
            notes = (
                f"{format_currency(employee.contractor_payment_amount)}/{interval.value} "
                f"÷ {days:.1f} days"
            )
    elif ctype == CompensationType.DAILY_RATE:
        notes = f"1 day × {format_currency(employee.daily_rate_amount or 0)}/day"

    return DailyAllocation(
        employee_id=employee.id,
        date=day,
        compensation_type=ctype,
        allocated_amount=amount,
        calculation_notes=notes,
        source_pay_period_start=period_start,
        source_pay_period_end=period_end,
    )


def calculate_labor_breakdown(allocations: Iterable[DailyAllocation]) -> LaborBreakdown:
    """Sum allocations per compensation type."""
    breakdown = LaborBreakdown()
    for alloc in allocations:
        ctype = CompensationType(alloc.compensation_type)
        if ctype == CompensationType.HOURLY:
            breakdown.hourly_wages += alloc.allocated_amount
        elif ctype == CompensationType.SALARY:
            breakdown.salary_allocations += alloc.allocated_amount
        elif ctype == CompensationType.CONTRACTOR:
            breakdown.contractor_payments += alloc.allocated_amount
        elif ctype == CompensationType.DAILY_RATE:
            breakdown.daily_rate_wages += alloc.allocated_amount
        breakdown.total += alloc.allocated_amount
    return breakdown


def generate_compensation_summary(
    employee: Employee,
    allocations: List[DailyAllocation],
    total_hours_worked: Optional[float] = None,
) -> CompensationSummary:
    total = sum(a.allocated_amount for a in allocations)
    days_worked = len(allocations)

    effective = None
    ctype = employee.compensation_type
    if ctype == CompensationType.SALARY and employee.salary_amount and employee.pay_period_type:
        effective = calculate_effective_hourly_rate(
            employee.salary_amount, PayPeriodType(employee.pay_period_type).value,
        )
    elif ctype == CompensationType.HOURLY:
        effective = employee.hourly_rate

    return CompensationSummary(
        compensation_type=ctype,
        total_amount=total,
        hours_worked=total_hours_worked,
        days_worked=days_worked or None,
        effective_hourly_rate=effective,
    )


def generate_allocations_for_range(
    employee: Employee,
    start: date,
    end: date,
    worked_days: Optional[Iterable[date]] = None,
) -> List[DailyAllocation]:
    """Daily allocations for a salaried, contractor or daily-rate employee.

    Hourly employees are costed from punches instead and yield nothing here.
    Daily-rate employees are paid per day worked, so they are allocated only
    on the ``worked_days`` that fall inside the range (none when omitted).
    """
    ctype = employee.compensation_type
    if ctype == CompensationType.HOURLY:
        return []
    if ctype == CompensationType.DAILY_RATE:
        days = sorted({d for d in (worked_days or ()) if start <= d <= end})
    else:
        days = [start + timedelta(days=offset) for offset in range(days_between(start, end))]

    out = []
    for day in days:
        alloc = generate_daily_allocation(employee, day)
        if alloc.allocated_amount:
            out.append(alloc)
    return out


# ---------------------------------------------------------------------------
# Validation and display
# ---------------------------------------------------------------------------

def validate_compensation_fields(employee: Employee | dict) -> List[str]:
    """Return human-readable problems with an employee's compensation terms.

    Accepts an ``Employee`` or a partial dict (form payload).  An empty list
    means the employee can be costed.
    """
    get = employee.get if isinstance(employee, dict) else (lambda k: getattr(employee, k, None))
    errors: List[str] = []

    ctype = get("compensation_type")
    if not ctype:
        errors.append("Compensation type is required")
        return errors
    ctype = CompensationType(ctype)

    if ctype == CompensationType.HOURLY:
        if not get("hourly_rate") or get("hourly_rate") <= 0:
            errors.append("Hourly rate must be greater than 0")
    elif ctype == CompensationType.SALARY:
        if not get("salary_amount") or get("salary_amount") <= 0:
            errors.append("Salary amount must be greater than 0")
        if not get("pay_period_type"):
            errors.append("Pay period type is required for salaried employees")
    elif ctype == CompensationType.CONTRACTOR:
        if not get("contractor_payment_amount") or get("contractor_payment_amount") <= 0:
            errors.append("Payment amount must be greater than 0")
        if not get("contractor_payment_interval"):
            errors.append("Payment interval is required for contractors")
    elif ctype == CompensationType.DAILY_RATE:
        if not get("daily_rate_amount") or get("daily_rate_amount") <= 0:
            errors.append("Daily rate must be greater than 0")

    return errors


def requires_time_punches(employee: Employee) -> bool:
    """Explicit ``requires_time_punch`` wins; otherwise only hourly staff punch."""
    if employee.requires_time_punch is not None:
        return bool(employee.requires_time_punch)
    return employee.compensation_type == CompensationType.HOURLY


def format_compensation_type(ctype: str) -> str:
    return CompensationType(ctype).label


def format_pay_period_type(period: str) -> str:
    return PayPeriodType(period).label


def format_contractor_interval(interval: str) -> str:
    return ContractorInterval(interval).label
