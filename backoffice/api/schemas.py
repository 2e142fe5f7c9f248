"""
Restaurant back office — API request/response schemas (Pydantic).

Request bodies are validated here before anything reaches the calculators.
Responses that are plain dataclasses from the calculation modules are
serialised by FastAPI directly; only the shapes the frontend relies on
field-by-field are modelled.

Money is integer cents unless a field name says otherwise.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from backoffice.domain.enums import (
    CompensationType, ContractorInterval, EmployeeStatus, PayPeriodType,
    RecurrenceEndType, RecurrenceType, ShiftStatus, SuggestionStatus, TipShareMethod,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str
    version: str = "1.0.0"
    db: str = "ok"
    uptime_seconds: float = 0.0
    metrics: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


class SettingUpdate(BaseModel):
    """Body for updating one or more settings."""
    settings: Dict[str, Any]


# ---------------------------------------------------------------------------
# Employees
# ---------------------------------------------------------------------------

class EmployeeBase(BaseModel):
    name: Optional[str] = None
    position: Optional[str] = None
    status: Optional[EmployeeStatus] = None
    compensation_type: Optional[CompensationType] = None
    hourly_rate: Optional[int] = Field(default=None, ge=0)
    salary_amount: Optional[int] = Field(default=None, ge=0)
    pay_period_type: Optional[PayPeriodType] = None
    contractor_payment_amount: Optional[int] = Field(default=None, ge=0)
    contractor_payment_interval: Optional[ContractorInterval] = None
    daily_rate_amount: Optional[int] = Field(default=None, ge=0)
    daily_rate_reference_weekly: Optional[int] = Field(default=None, ge=0)
    daily_rate_reference_days: Optional[int] = Field(default=None, ge=0)
    allocate_daily: Optional[bool] = None
    requires_time_punch: Optional[bool] = None
    tip_eligible: Optional[bool] = None


class EmployeeCreate(EmployeeBase):
    name: str = Field(min_length=1)
    compensation_type: CompensationType = CompensationType.HOURLY


class EmployeeUpdate(EmployeeBase):
    pass


class EmployeeOut(BaseModel):
    id: int
    name: str
    position: str = ""
    status: str
    compensation_type: str
    hourly_rate: int = 0
    salary_amount: Optional[int] = None
    pay_period_type: Optional[str] = None
    contractor_payment_amount: Optional[int] = None
    contractor_payment_interval: Optional[str] = None
    daily_rate_amount: Optional[int] = None
    daily_rate_reference_weekly: Optional[int] = None
    daily_rate_reference_days: Optional[int] = None
    allocate_daily: bool = True
    requires_time_punch: Optional[bool] = None
    tip_eligible: bool = True
    rate_description: str = ""


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

class RecurrencePatternIn(BaseModel):
    type: RecurrenceType
    interval: int = Field(default=1, ge=1)
    days_of_week: List[int] = Field(default_factory=list)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    week_of_month: Optional[int] = Field(default=None, ge=1, le=5)
    month_of_year: Optional[int] = Field(default=None, ge=1, le=12)
    end_type: RecurrenceEndType = RecurrenceEndType.NEVER
    end_date: Optional[date] = None
    occurrences: Optional[int] = Field(default=None, ge=1)


class ShiftIn(BaseModel):
    employee_id: int
    start_time: datetime
    end_time: datetime
    break_duration: int = Field(default=0, ge=0)
    position: str = ""
    status: ShiftStatus = ShiftStatus.SCHEDULED


class ShiftValidateRequest(BaseModel):
    shift: ShiftIn
    exclude_shift_id: Optional[int] = None


class ShiftCreateRequest(BaseModel):
    shift: ShiftIn
    recurrence: Optional[RecurrencePatternIn] = None
    # Reject the whole request when any occurrence has a conflict
    enforce_conflicts: bool = True


class RecurrencePreviewRequest(BaseModel):
    start_date: date
    pattern: RecurrencePatternIn
    max_occurrences: int = Field(default=365, ge=1, le=1000)


class PunchIn(BaseModel):
    employee_id: int
    punch_type: str
    punch_time: datetime


# ---------------------------------------------------------------------------
# Tips
# ---------------------------------------------------------------------------

class TipParticipant(BaseModel):
    id: str
    name: str = ""
    hours: float = Field(default=0.0, ge=0)
    role: str = ""
    weight: float = Field(default=1.0, ge=0)


class TipSplitRequest(BaseModel):
    total_cents: int = Field(ge=0)
    method: TipShareMethod = TipShareMethod.HOURS
    participants: List[TipParticipant] = Field(min_length=1)


class TipShareIn(BaseModel):
    employee_id: str
    name: str = ""
    amount_cents: int = Field(ge=0)


class TipRebalanceRequest(BaseModel):
    total_cents: int = Field(ge=0)
    shares: List[TipShareIn] = Field(min_length=1)
    employee_id: str
    new_amount_cents: int = Field(ge=0)


class ServerEarningIn(BaseModel):
    employee_id: str
    name: str = ""
    earned_amount_cents: int = Field(ge=0)


class ContributionPoolIn(BaseModel):
    id: str
    name: str
    contribution_percentage: float = Field(ge=0, le=100)
    share_method: TipShareMethod = TipShareMethod.HOURS
    eligible_employee_ids: List[str] = Field(default_factory=list)
    role_weights: Dict[str, float] = Field(default_factory=dict)


class PoolWorkerIn(BaseModel):
    employee_id: str
    name: str = ""
    hours_worked: float = Field(default=0.0, ge=0)
    role: str = ""


class PoolAllocationRequest(BaseModel):
    servers: List[ServerEarningIn]
    pools: List[ContributionPoolIn]
    workers: List[PoolWorkerIn] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class DeductionPreviewRequest(BaseModel):
    recipe_quantity: float = Field(ge=0)
    recipe_unit: str
    product_name: str = ""
    purchase_unit: str
    size_value: Optional[float] = None
    size_unit: Optional[str] = None
    cost_per_unit: float = Field(default=0.0, ge=0)
    quantity_sold: float = Field(default=1.0, ge=0)


# ---------------------------------------------------------------------------
# Finance
# ---------------------------------------------------------------------------

class PeriodMetricsRequest(BaseModel):
    sales: List[Dict[str, Any]] = Field(default_factory=list)
    adjustments: List[Dict[str, Any]] = Field(default_factory=list)
    food_cost_records: List[Dict[str, Any]] = Field(default_factory=list)
    labor_cost_records: List[Dict[str, Any]] = Field(default_factory=list)


class DismissSuggestionRequest(BaseModel):
    action: SuggestionStatus = SuggestionStatus.DISMISSED
    snoozed_until: Optional[datetime] = None


class BankMappingRequest(BaseModel):
    headers: List[str] = Field(min_length=1)
    sample_rows: List[Dict[str, str]] = Field(default_factory=list)


class BankColumnMappingIn(BaseModel):
    csv_column: str
    target_field: Optional[str] = None


class BankImportRequest(BaseModel):
    csv_text: str = Field(min_length=1)
    mappings: List[BankColumnMappingIn] = Field(min_length=1)
    filename: str = ""
    skiprows: int = Field(default=0, ge=0)
    # Parse and report without saving
    dry_run: bool = False
