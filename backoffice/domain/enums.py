"""
backoffice.domain.enums — All enumerations used across the back office.

Keep this module import-clean (stdlib only).
"""

from enum import Enum


# ---------------------------------------------------------------------------
# Compensation
# ---------------------------------------------------------------------------

class CompensationType(str, Enum):
    HOURLY     = "hourly"
    SALARY     = "salary"
    CONTRACTOR = "contractor"
    DAILY_RATE = "daily_rate"

    @property
    def label(self) -> str:
        return {
            "hourly": "Hourly",
            "salary": "Salaried",
            "contractor": "Contractor",
            "daily_rate": "Per Day Worked",
        }[self.value]


class PayPeriodType(str, Enum):
    WEEKLY       = "weekly"
    BI_WEEKLY    = "bi-weekly"
    SEMI_MONTHLY = "semi-monthly"
    MONTHLY      = "monthly"

    @property
    def label(self) -> str:
        return {
            "weekly": "Weekly",
            "bi-weekly": "Bi-Weekly",
            "semi-monthly": "Semi-Monthly",
            "monthly": "Monthly",
        }[self.value]


class ContractorInterval(str, Enum):
    WEEKLY    = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY   = "monthly"
    PER_JOB   = "per-job"

    @property
    def label(self) -> str:
        return {
            "weekly": "Weekly",
            "bi-weekly": "Bi-Weekly",
            "monthly": "Monthly",
            "per-job": "Per Job",
        }[self.value]


class EmployeeStatus(str, Enum):
    ACTIVE     = "active"
    INACTIVE   = "inactive"
    TERMINATED = "terminated"


# ---------------------------------------------------------------------------
# Time clock and scheduling
# ---------------------------------------------------------------------------

class PunchType(str, Enum):
    CLOCK_IN    = "clock_in"
    CLOCK_OUT   = "clock_out"
    BREAK_START = "break_start"
    BREAK_END   = "break_end"


class ShiftStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class TimeOffStatus(str, Enum):
    PENDING  = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class IncompleteShiftType(str, Enum):
    MISSING_CLOCK_OUT = "missing_clock_out"
    MISSING_CLOCK_IN  = "missing_clock_in"
    SHIFT_TOO_LONG    = "shift_too_long"


class ConflictType(str, Enum):
    DOUBLE_BOOKING    = "double_booking"
    OVERLAPPING_SHIFT = "overlapping_shift"
    TIME_OFF_CONFLICT = "time_off_conflict"


class Severity(str, Enum):
    INFO    = "info"
    WARNING = "warning"
    ERROR   = "error"


# ---------------------------------------------------------------------------
# Recurrence
# ---------------------------------------------------------------------------

class RecurrenceType(str, Enum):
    DAILY   = "daily"
    WEEKDAY = "weekday"
    WEEKLY  = "weekly"
    MONTHLY = "monthly"
    YEARLY  = "yearly"
    CUSTOM  = "custom"


class RecurrenceEndType(str, Enum):
    NEVER = "never"
    ON    = "on"
    AFTER = "after"


# ---------------------------------------------------------------------------
# Tips
# ---------------------------------------------------------------------------

class TipShareMethod(str, Enum):
    HOURS = "hours"
    ROLE  = "role"
    EVEN  = "even"


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class ConversionMethod(str, Enum):
    ONE_TO_ONE         = "1:1"
    COUNT_TO_CONTAINER = "count_to_container"
    VOLUME_TO_VOLUME   = "volume_to_volume"
    WEIGHT_TO_WEIGHT   = "weight_to_weight"
    DENSITY_TO_WEIGHT  = "density_to_weight"
    FALLBACK           = "fallback_1:1"


class ValuationMethod(str, Enum):
    RECIPE = "recipe"
    MARKUP = "markup"


class VarianceTrend(str, Enum):
    IMPROVING = "improving"
    STABLE    = "stable"
    WORSENING = "worsening"


# ---------------------------------------------------------------------------
# Finance
# ---------------------------------------------------------------------------

class BenchmarkStatus(str, Enum):
    GOOD    = "good"
    CAUTION = "caution"
    HIGH    = "high"


class CostType(str, Enum):
    FIXED         = "fixed"
    SEMI_VARIABLE = "semi_variable"
    VARIABLE      = "variable"
    CUSTOM        = "custom"


class SuggestionStatus(str, Enum):
    DISMISSED = "dismissed"
    SNOOZED   = "snoozed"
    ACCEPTED  = "accepted"


class MappingConfidence(str, Enum):
    HIGH   = "high"
    MEDIUM = "medium"
    LOW    = "low"
    NONE   = "none"
