"""
SQLite Database Layer for the restaurant back office.
Stores staff, schedules, time clock, tips, inventory counts and banking.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    create_engine, Column, Integer, Float, String, Boolean, Date,
    DateTime, Text, Index, ForeignKey, JSON, event
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from backoffice.config import DATABASE_ECHO, DATABASE_URL
from backoffice.domain.models import (
    BankTransaction, Employee, ManualPayment, OperatingCost, Product, Recipe,
    RecipeIngredient, Shift, SuggestionDismissal, TimeOffRequest, TimePunch,
)


def _make_engine(url: str):
    if url.startswith("sqlite"):
        eng = create_engine(
            url,
            echo=DATABASE_ECHO,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # Enable WAL mode for concurrent reads during writes
        @event.listens_for(eng, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

        return eng
    return create_engine(url, echo=DATABASE_ECHO, pool_pre_ping=True)


engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False)
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class EmployeeRow(Base):
    """Staff member and compensation terms.  Money columns are cents."""
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    position = Column(String(64), default="")
    status = Column(String(16), default="active", index=True)  # active, inactive, terminated
    compensation_type = Column(String(16), nullable=False, default="hourly")

    hourly_rate = Column(Integer, default=0)
    salary_amount = Column(Integer, nullable=True)
    pay_period_type = Column(String(16), nullable=True)
    contractor_payment_amount = Column(Integer, nullable=True)
    contractor_payment_interval = Column(String(16), nullable=True)
    daily_rate_amount = Column(Integer, nullable=True)
    daily_rate_reference_weekly = Column(Integer, nullable=True)
    daily_rate_reference_days = Column(Integer, nullable=True)

    allocate_daily = Column(Boolean, default=True)
    requires_time_punch = Column(Boolean, nullable=True)
    tip_eligible = Column(Boolean, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class ShiftRow(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    break_duration = Column(Integer, default=0)   # minutes
    position = Column(String(64), default="")
    status = Column(String(16), default="scheduled")
    recurrence_pattern = Column(JSON, nullable=True)
    recurrence_parent_id = Column(Integer, nullable=True, index=True)

    __table_args__ = (
        Index("ix_shift_emp_start", "employee_id", "start_time"),
    )


class TimePunchRow(Base):
    __tablename__ = "time_punches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    punch_type = Column(String(16), nullable=False)  # clock_in, clock_out, break_start, break_end
    punch_time = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_punch_emp_time", "employee_id", "punch_time"),
    )


class TimeOffRequestRow(Base):
    __tablename__ = "time_off_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(16), default="pending")
    reason = Column(Text, default="")


class TipRow(Base):
    """Tips credited to an employee for a business day."""
    __tablename__ = "tips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    source = Column(String(16), default="manual")  # manual, pool, pos

    __table_args__ = (
        Index("ix_tip_emp_date", "employee_id", "date"),
    )


class ManualPaymentRow(Base):
    __tablename__ = "manual_payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    amount = Column(Integer, nullable=False)
    description = Column(Text, default="")


class ProductRow(Base):
    """Inventory product.  Unit cost is dollars per purchase unit."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    category = Column(String(64), default="")
    current_stock = Column(Float, default=0.0)
    cost_per_unit = Column(Float, default=0.0)
    uom_purchase = Column(String(32), default="each")
    size_value = Column(Float, nullable=True)
    size_unit = Column(String(32), nullable=True)


class RecipeRow(Base):
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    pos_item_name = Column(String(255), nullable=True, index=True)
    menu_price = Column(Float, nullable=True)

    ingredients = relationship(
        "RecipeIngredientRow", cascade="all, delete-orphan", lazy="selectin",
    )


class RecipeIngredientRow(Base):
    __tablename__ = "recipe_ingredients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String(32), nullable=False)


class ReconciliationRow(Base):
    """A stock count."""
    __tablename__ = "reconciliations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reconciliation_date = Column(Date, nullable=False, index=True)
    status = Column(String(16), default="in_progress")  # in_progress, submitted
    total_items_counted = Column(Integer, default=0)
    items_with_variance = Column(Integer, default=0)
    total_shrinkage_value = Column(Float, default=0.0)

    items = relationship(
        "ReconciliationItemRow", cascade="all, delete-orphan", lazy="selectin",
    )


class ReconciliationItemRow(Base):
    __tablename__ = "reconciliation_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reconciliation_id = Column(
        Integer, ForeignKey("reconciliations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    expected_quantity = Column(Float, default=0.0)
    actual_quantity = Column(Float, nullable=True)
    variance = Column(Float, default=0.0)
    variance_value = Column(Float, default=0.0)

    product = relationship("ProductRow", lazy="joined")


class BankTransactionRow(Base):
    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(Text, default="")
    amount_cents = Column(Integer, nullable=False)
    normalized_payee = Column(String(255), nullable=True, index=True)
    merchant_name = Column(String(255), nullable=True)
    account_subtype = Column(String(64), nullable=True)
    account_name = Column(String(255), nullable=True)
    balance_cents = Column(Integer, nullable=True)
    check_number = Column(String(32), nullable=True)
    reference = Column(String(128), nullable=True)
    category = Column(String(64), nullable=True)
    imported_at = Column(DateTime, default=_utcnow)


class OperatingCostRow(Base):
    __tablename__ = "operating_costs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    category = Column(String(64), default="")
    cost_type = Column(String(16), default="fixed")
    monthly_amount = Column(Integer, default=0)


class ExpenseSuggestionDismissalRow(Base):
    __tablename__ = "expense_suggestion_dismissals"

    suggestion_key = Column(String(255), primary_key=True)
    action = Column(String(16), nullable=False)  # dismissed, snoozed, accepted
    snoozed_until = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class Setting(Base):
    """Key-value settings store."""
    __tablename__ = "settings"

    key = Column(String(128), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# Database initialization
# ---------------------------------------------------------------------------

def init_db():
    """Create all tables if they don't exist."""
    Base.metadata.create_all(bind=engine)


def get_db() -> Session:
    """Get a database session. Caller must close it."""
    return SessionLocal()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def get_setting(db: Session, key: str, default: Any = None) -> Any:
    """Get a setting value."""
    row = db.query(Setting).filter(Setting.key == key).first()
    return row.value if row else default


def set_setting(db: Session, key: str, value: Any):
    """Set a setting value."""
    row = db.query(Setting).filter(Setting.key == key).first()
    if row:
        row.value = value
        row.updated_at = _utcnow()
    else:
        row = Setting(key=key, value=value)
        db.add(row)
    db.commit()


def get_all_settings(db: Session) -> Dict[str, Any]:
    return {row.key: row.value for row in db.query(Setting).all()}


# ---------------------------------------------------------------------------
# Row <-> domain converters
# ---------------------------------------------------------------------------

def to_naive_utc(ts: datetime) -> datetime:
    """SQLite has no timezone support; store aware timestamps as naive UTC."""
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


EMPLOYEE_FIELDS = (
    "name", "position", "status", "compensation_type", "hourly_rate",
    "salary_amount", "pay_period_type", "contractor_payment_amount",
    "contractor_payment_interval", "daily_rate_amount",
    "daily_rate_reference_weekly", "daily_rate_reference_days",
    "allocate_daily", "requires_time_punch", "tip_eligible",
)


def employee_from_row(row: EmployeeRow) -> Employee:
    data = {f: getattr(row, f) for f in EMPLOYEE_FIELDS}
    data["id"] = row.id
    return Employee.from_dict(data)


def apply_employee_fields(row: EmployeeRow, values: Dict[str, Any]) -> EmployeeRow:
    """Copy known fields onto *row*; enum members are stored by value."""
    for f in EMPLOYEE_FIELDS:
        if f in values:
            v = values[f]
            setattr(row, f, getattr(v, "value", v))
    return row


def employee_to_dict(row: EmployeeRow) -> Dict[str, Any]:
    d = {f: getattr(row, f) for f in EMPLOYEE_FIELDS}
    d["id"] = row.id
    return d


def shift_from_row(row: ShiftRow) -> Shift:
    return Shift(
        employee_id=str(row.employee_id),
        start_time=row.start_time,
        end_time=row.end_time,
        id=str(row.id),
        break_duration=row.break_duration or 0,
        status=row.status or "scheduled",
        position=row.position or "",
    )


def punch_from_row(row: TimePunchRow) -> TimePunch:
    return TimePunch(
        employee_id=str(row.employee_id),
        punch_type=row.punch_type,
        punch_time=row.punch_time,
        id=str(row.id),
    )


def time_off_from_row(row: TimeOffRequestRow) -> TimeOffRequest:
    return TimeOffRequest(
        employee_id=str(row.employee_id),
        start_date=row.start_date,
        end_date=row.end_date,
        status=row.status or "pending",
        id=str(row.id),
        reason=row.reason or "",
    )


def manual_payment_from_row(row: ManualPaymentRow) -> ManualPayment:
    return ManualPayment(
        employee_id=str(row.employee_id),
        date=row.date,
        amount=row.amount,
        description=row.description or "",
        id=str(row.id),
    )


def product_from_row(row: ProductRow) -> Product:
    return Product(
        id=str(row.id),
        name=row.name,
        category=row.category or "",
        current_stock=row.current_stock or 0.0,
        cost_per_unit=row.cost_per_unit or 0.0,
        uom_purchase=row.uom_purchase or "each",
        size_value=row.size_value,
        size_unit=row.size_unit,
    )


def recipe_from_row(row: RecipeRow) -> Recipe:
    return Recipe(
        id=str(row.id),
        name=row.name,
        menu_price=row.menu_price,
        ingredients=[
            RecipeIngredient(str(i.product_id), i.quantity, i.unit) for i in row.ingredients
        ],
    )


def reconciliation_to_dict(row: ReconciliationRow) -> Dict[str, Any]:
    """Nested shape consumed by ``inventory.variance.build_variance_report``."""
    return {
        "id": row.id,
        "reconciliation_date": row.reconciliation_date.isoformat(),
        "total_items_counted": row.total_items_counted or 0,
        "items_with_variance": row.items_with_variance or 0,
        "total_shrinkage_value": row.total_shrinkage_value or 0.0,
        "items": [
            {
                "product_id": i.product_id,
                "product_name": i.product.name if i.product else None,
                "category": i.product.category if i.product else None,
                "expected_quantity": i.expected_quantity,
                "actual_quantity": i.actual_quantity,
                "variance": i.variance,
                "variance_value": i.variance_value,
            }
            for i in row.items
        ],
    }


BANK_FIELDS = (
    "description", "amount_cents", "normalized_payee", "merchant_name",
    "account_subtype", "account_name", "balance_cents", "check_number",
    "reference", "category",
)


def bank_transaction_from_row(row: BankTransactionRow) -> BankTransaction:
    data = {f: getattr(row, f) for f in BANK_FIELDS}
    return BankTransaction(transaction_date=row.transaction_date, id=str(row.id), **data)


def bank_transaction_to_row(txn: BankTransaction) -> BankTransactionRow:
    data = {f: getattr(txn, f) for f in BANK_FIELDS}
    return BankTransactionRow(transaction_date=txn.transaction_date, **data)


def operating_cost_from_row(row: OperatingCostRow) -> OperatingCost:
    return OperatingCost(
        name=row.name,
        category=row.category or "",
        monthly_amount=row.monthly_amount or 0,
        id=str(row.id),
    )


def dismissal_from_row(row: ExpenseSuggestionDismissalRow) -> SuggestionDismissal:
    return SuggestionDismissal(
        suggestion_key=row.suggestion_key,
        action=row.action,
        snoozed_until=row.snoozed_until,
    )


# ---------------------------------------------------------------------------
# Helper queries
# ---------------------------------------------------------------------------

def _day_bounds(start: date, end: date):
    lo = datetime(start.year, start.month, start.day)
    hi = datetime(end.year, end.month, end.day, 23, 59, 59, 999999)
    return lo, hi


def get_employees(db: Session, active_only: bool = False) -> List[EmployeeRow]:
    q = db.query(EmployeeRow)
    if active_only:
        q = q.filter(EmployeeRow.status == "active")
    return q.order_by(EmployeeRow.name.asc()).all()


def get_punches_in_range(
    db: Session,
    start: date,
    end: date,
    employee_id: Optional[int] = None,
) -> List[TimePunchRow]:
    """Punches whose timestamp falls on a day in ``[start, end]`` (UTC)."""
    lo, hi = _day_bounds(start, end)
    q = db.query(TimePunchRow).filter(TimePunchRow.punch_time >= lo, TimePunchRow.punch_time <= hi)
    if employee_id is not None:
        q = q.filter(TimePunchRow.employee_id == employee_id)
    return q.order_by(TimePunchRow.punch_time.asc()).all()


def get_shifts_in_range(
    db: Session,
    start: date,
    end: date,
    employee_id: Optional[int] = None,
) -> List[ShiftRow]:
    """Shifts that start on a day in ``[start, end]`` (UTC)."""
    lo, hi = _day_bounds(start, end)
    q = db.query(ShiftRow).filter(ShiftRow.start_time >= lo, ShiftRow.start_time <= hi)
    if employee_id is not None:
        q = q.filter(ShiftRow.employee_id == employee_id)
    return q.order_by(ShiftRow.start_time.asc()).all()


def get_tips_by_employee(db: Session, start: date, end: date) -> Dict[str, int]:
    rows = db.query(TipRow).filter(TipRow.date >= start, TipRow.date <= end).all()
    totals: Dict[str, int] = {}
    for r in rows:
        totals[str(r.employee_id)] = totals.get(str(r.employee_id), 0) + (r.amount_cents or 0)
    return totals


def get_manual_payments_by_employee(db: Session, start: date, end: date) -> Dict[str, List[ManualPayment]]:
    rows = (
        db.query(ManualPaymentRow)
        .filter(ManualPaymentRow.date >= start, ManualPaymentRow.date <= end)
        .all()
    )
    out: Dict[str, List[ManualPayment]] = {}
    for r in rows:
        out.setdefault(str(r.employee_id), []).append(manual_payment_from_row(r))
    return out


def get_submitted_reconciliations(db: Session, start: date, end: date) -> List[ReconciliationRow]:
    return (
        db.query(ReconciliationRow)
        .filter(
            ReconciliationRow.status == "submitted",
            ReconciliationRow.reconciliation_date >= start,
            ReconciliationRow.reconciliation_date <= end,
        )
        .order_by(ReconciliationRow.reconciliation_date.asc())
        .all()
    )
