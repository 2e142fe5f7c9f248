"""
backoffice.domain.models — Canonical dataclass models.

These are the single source of truth for the records flowing through the
calculators.  Persistence rows and API payloads are converted into these
types at the edges (see ``backoffice.database`` and ``backoffice.api``).

All monetary values are integer cents except product unit costs (see the
inventory section).  Timestamps are aware UTC datetimes.

Import pattern::

    from backoffice.domain.models import Employee, TimePunch, Shift
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from backoffice.core.utils import parse_date, parse_timestamp
from backoffice.domain.enums import (
    CompensationType, ContractorInterval, EmployeeStatus, PayPeriodType,
    PunchType, RecurrenceEndType, RecurrenceType, ShiftStatus, SuggestionStatus,
    TimeOffStatus,
)


def _enum_or_none(enum_cls, value):
    if value is None or value == "":
        return None
    return enum_cls(value)


# ---------------------------------------------------------------------------
# Employees
# ---------------------------------------------------------------------------

@dataclass
class Employee:
    """
    An employee and the compensation terms used for labor costing and payroll.

    Only the fields relevant to ``compensation_type`` need to be set:
    hourly uses ``hourly_rate``; salary uses ``salary_amount`` and
    ``pay_period_type``; contractor uses ``contractor_payment_amount`` and
    ``contractor_payment_interval``; daily_rate uses ``daily_rate_amount``.
    """
    id: str
    name: str = ""
    position: str = ""
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    compensation_type: CompensationType = CompensationType.HOURLY

    hourly_rate: int = 0
    salary_amount: Optional[int] = None
    pay_period_type: Optional[PayPeriodType] = None
    contractor_payment_amount: Optional[int] = None
    contractor_payment_interval: Optional[ContractorInterval] = None
    daily_rate_amount: Optional[int] = None
    daily_rate_reference_weekly: Optional[int] = None
    daily_rate_reference_days: Optional[int] = None

    # Salaried and contractor cost is spread across days unless disabled
    allocate_daily: bool = True
    # None = derive from compensation type (hourly only)
    requires_time_punch: Optional[bool] = None
    tip_eligible: bool = True

    def __post_init__(self) -> None:
        self.status = EmployeeStatus(self.status)
        self.compensation_type = CompensationType(self.compensation_type)
        self.pay_period_type = _enum_or_none(PayPeriodType, self.pay_period_type)
        self.contractor_payment_interval = _enum_or_none(
            ContractorInterval, self.contractor_payment_interval,
        )

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Employee":
        return cls(
            id=str(d["id"]),
            name=d.get("name", "") or "",
            position=d.get("position", "") or "",
            status=d.get("status") or "active",
            compensation_type=d.get("compensation_type") or "hourly",
            hourly_rate=int(d.get("hourly_rate") or 0),
            salary_amount=d.get("salary_amount"),
            pay_period_type=d.get("pay_period_type"),
            contractor_payment_amount=d.get("contractor_payment_amount"),
            contractor_payment_interval=d.get("contractor_payment_interval"),
            daily_rate_amount=d.get("daily_rate_amount"),
            daily_rate_reference_weekly=d.get("daily_rate_reference_weekly"),
            daily_rate_reference_days=d.get("daily_rate_reference_days"),
            allocate_daily=bool(d.get("allocate_daily", True)),
            requires_time_punch=d.get("requires_time_punch"),
            tip_eligible=d.get("tip_eligible", True) is not False,
        )


# ---------------------------------------------------------------------------
# Time clock / scheduling
# ---------------------------------------------------------------------------

@dataclass
class TimePunch:
    employee_id: str
    punch_type: PunchType
    punch_time: datetime
    id: Optional[str] = None

    def __post_init__(self) -> None:
        self.punch_type = PunchType(self.punch_type)
        self.punch_time = parse_timestamp(self.punch_time)


@dataclass
class Shift:
    employee_id: str
    start_time: datetime
    end_time: datetime
    id: Optional[str] = None
    break_duration: int = 0            # minutes
    status: ShiftStatus = ShiftStatus.SCHEDULED
    position: str = ""

    def __post_init__(self) -> None:
        self.start_time = parse_timestamp(self.start_time)
        self.end_time = parse_timestamp(self.end_time)
        self.status = ShiftStatus(self.status)


@dataclass
class TimeOffRequest:
    employee_id: str
    start_date: date
    end_date: date
    status: TimeOffStatus = TimeOffStatus.PENDING
    id: Optional[str] = None
    reason: str = ""

    def __post_init__(self) -> None:
        self.start_date = parse_date(self.start_date)
        self.end_date = parse_date(self.end_date)
        self.status = TimeOffStatus(self.status)


@dataclass
class ManualPayment:
    """A one-off payment, used for per-job contractors."""
    employee_id: str
    date: date
    amount: int
    description: str = ""
    id: Optional[str] = None

    def __post_init__(self) -> None:
        self.date = parse_date(self.date)


# ---------------------------------------------------------------------------
# Recurrence
# ---------------------------------------------------------------------------

@dataclass
class RecurrencePattern:
    """
    How an event repeats.

    ``days_of_week`` uses Sunday = 0 ... Saturday = 6.  For monthly patterns
    either ``day_of_month`` is set, or ``week_of_month`` (1-5, where 5 means
    "last") together with a single entry in ``days_of_week``.
    """
    type: RecurrenceType
    interval: int = 1
    days_of_week: List[int] = field(default_factory=list)
    day_of_month: Optional[int] = None
    week_of_month: Optional[int] = None
    month_of_year: Optional[int] = None
    end_type: RecurrenceEndType = RecurrenceEndType.NEVER
    end_date: Optional[date] = None
    occurrences: Optional[int] = None

    def __post_init__(self) -> None:
        self.type = RecurrenceType(self.type)
        self.end_type = RecurrenceEndType(self.end_type)
        if self.end_date is not None:
            self.end_date = parse_date(self.end_date)
        self.interval = max(int(self.interval or 1), 1)
        self.days_of_week = sorted({int(d) for d in self.days_of_week})

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["type"] = self.type.value
        d["end_type"] = self.end_type.value
        d["end_date"] = self.end_date.isoformat() if self.end_date else None
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RecurrencePattern":
        return cls(
            type=d["type"],
            interval=d.get("interval") or 1,
            days_of_week=list(d.get("days_of_week") or []),
            day_of_month=d.get("day_of_month"),
            week_of_month=d.get("week_of_month"),
            month_of_year=d.get("month_of_year"),
            end_type=d.get("end_type") or "never",
            end_date=d.get("end_date"),
            occurrences=d.get("occurrences"),
        )


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
# Product costs are dollars per purchase unit; unit costs routinely carry
# fractions of a cent.

@dataclass
class Product:
    id: str
    name: str
    category: str = ""
    current_stock: float = 0.0
    cost_per_unit: float = 0.0
    uom_purchase: str = "each"
    size_value: Optional[float] = None
    size_unit: Optional[str] = None


@dataclass
class RecipeIngredient:
    product_id: str
    quantity: float
    unit: str


@dataclass
class Recipe:
    id: str
    name: str
    menu_price: Optional[float] = None
    ingredients: List[RecipeIngredient] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Banking
# ---------------------------------------------------------------------------

@dataclass
class BankTransaction:
    """A posted bank line.  ``amount_cents`` is negative for money out."""
    transaction_date: date
    description: str
    amount_cents: int
    id: Optional[str] = None
    normalized_payee: Optional[str] = None
    merchant_name: Optional[str] = None
    account_subtype: Optional[str] = None
    account_name: Optional[str] = None
    balance_cents: Optional[int] = None
    check_number: Optional[str] = None
    reference: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self) -> None:
        self.transaction_date = parse_date(self.transaction_date)

    @property
    def payee(self) -> Optional[str]:
        return self.normalized_payee or self.merchant_name


@dataclass
class OperatingCost:
    name: str
    category: str = ""
    monthly_amount: int = 0
    id: Optional[str] = None


@dataclass
class SuggestionDismissal:
    suggestion_key: str
    action: SuggestionStatus
    snoozed_until: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.action = SuggestionStatus(self.action)
        if self.snoozed_until is not None:
            self.snoozed_until = parse_timestamp(self.snoozed_until)
