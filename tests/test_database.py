"""Tests for the database layer."""

from datetime import date, datetime, timedelta, timezone

import pytest

from backoffice.database import (
    BankTransactionRow,
    EmployeeRow,
    ManualPaymentRow,
    ProductRow,
    RecipeIngredientRow,
    RecipeRow,
    ReconciliationItemRow,
    ReconciliationRow,
    ShiftRow,
    TimePunchRow,
    TipRow,
    apply_employee_fields,
    bank_transaction_from_row,
    bank_transaction_to_row,
    employee_from_row,
    get_all_settings,
    get_employees,
    get_manual_payments_by_employee,
    get_punches_in_range,
    get_setting,
    get_shifts_in_range,
    get_submitted_reconciliations,
    get_tips_by_employee,
    recipe_from_row,
    reconciliation_to_dict,
    set_setting,
    shift_from_row,
    to_naive_utc,
)
from backoffice.domain.enums import CompensationType, PayPeriodType
from backoffice.domain.models import BankTransaction


def _employee(db, name="Ana", **values):
    row = apply_employee_fields(EmployeeRow(), {"name": name, **values})
    db.add(row)
    db.commit()
    return row


class TestSettings:
    def test_round_trip_json(self, db_session):
        set_setting(db_session, "role_weights", {"server": 2, "busser": 1})
        assert get_setting(db_session, "role_weights") == {"server": 2, "busser": 1}

    def test_overwrite_and_default(self, db_session):
        set_setting(db_session, "default_markup", 3.0)
        set_setting(db_session, "default_markup", 2.5)
        assert get_setting(db_session, "default_markup") == 2.5
        assert get_setting(db_session, "missing", "fallback") == "fallback"
        assert get_all_settings(db_session) == {"default_markup": 2.5}


class TestEmployees:
    def test_enum_values_stored(self, db_session):
        row = _employee(
            db_session,
            compensation_type=CompensationType.SALARY,
            salary_amount=200_000,
            pay_period_type=PayPeriodType.BI_WEEKLY,
        )
        fetched = db_session.query(EmployeeRow).get(row.id)
        assert fetched.compensation_type == "salary"
        assert fetched.pay_period_type == "bi-weekly"

        emp = employee_from_row(fetched)
        assert emp.id == str(row.id)
        assert emp.compensation_type == CompensationType.SALARY

    def test_active_filter_sorted_by_name(self, db_session):
        _employee(db_session, "Zoe")
        _employee(db_session, "Ben", status="inactive")
        _employee(db_session, "Amy")
        assert [e.name for e in get_employees(db_session)] == ["Amy", "Ben", "Zoe"]
        assert [e.name for e in get_employees(db_session, active_only=True)] == ["Amy", "Zoe"]


class TestTimeQueries:
    def test_punches_and_shifts_in_range(self, db_session):
        emp = _employee(db_session)
        other = _employee(db_session, "Bo")
        db_session.add_all([
            TimePunchRow(employee_id=emp.id, punch_type="clock_in", punch_time=datetime(2024, 1, 10, 9)),
            TimePunchRow(employee_id=emp.id, punch_type="clock_out", punch_time=datetime(2024, 1, 10, 23, 30)),
            TimePunchRow(employee_id=emp.id, punch_type="clock_in", punch_time=datetime(2024, 1, 11, 9)),
            TimePunchRow(employee_id=other.id, punch_type="clock_in", punch_time=datetime(2024, 1, 10, 8)),
            ShiftRow(employee_id=emp.id, start_time=datetime(2024, 1, 10, 9), end_time=datetime(2024, 1, 10, 17)),
        ])
        db_session.commit()

        punches = get_punches_in_range(db_session, date(2024, 1, 10), date(2024, 1, 10), emp.id)
        assert [p.punch_type for p in punches] == ["clock_in", "clock_out"]
        assert len(get_punches_in_range(db_session, date(2024, 1, 10), date(2024, 1, 11))) == 4

        [shift] = get_shifts_in_range(db_session, date(2024, 1, 10), date(2024, 1, 10))
        converted = shift_from_row(shift)
        assert converted.employee_id == str(emp.id)
        assert converted.start_time.tzinfo is not None

    def test_tips_and_manual_payments(self, db_session):
        emp = _employee(db_session)
        db_session.add_all([
            TipRow(employee_id=emp.id, date=date(2024, 1, 10), amount_cents=2_000),
            TipRow(employee_id=emp.id, date=date(2024, 1, 11), amount_cents=3_500),
            TipRow(employee_id=emp.id, date=date(2024, 2, 1), amount_cents=9_999),
            ManualPaymentRow(employee_id=emp.id, date=date(2024, 1, 12), amount=50_000, description="Deep clean"),
        ])
        db_session.commit()

        assert get_tips_by_employee(db_session, date(2024, 1, 1), date(2024, 1, 31)) == {str(emp.id): 5_500}
        payments = get_manual_payments_by_employee(db_session, date(2024, 1, 1), date(2024, 1, 31))
        assert payments[str(emp.id)][0].amount == 50_000


class TestInventoryRows:
    def test_recipe_and_reconciliation(self, db_session):
        beef = ProductRow(name="Beef", category="protein", cost_per_unit=40.0, uom_purchase="case")
        db_session.add(beef)
        db_session.flush()
        recipe = RecipeRow(name="Burger", menu_price=12.0)
        recipe.ingredients.append(RecipeIngredientRow(product_id=beef.id, quantity=4, unit="oz"))
        count = ReconciliationRow(
            reconciliation_date=date(2024, 1, 7), status="submitted",
            total_items_counted=1, items_with_variance=1, total_shrinkage_value=-80.0,
        )
        count.items.append(ReconciliationItemRow(
            product_id=beef.id, expected_quantity=5, actual_quantity=3, variance=-2, variance_value=-80.0,
        ))
        draft = ReconciliationRow(reconciliation_date=date(2024, 1, 8), status="in_progress")
        db_session.add_all([recipe, count, draft])
        db_session.commit()

        converted = recipe_from_row(recipe)
        assert converted.ingredients[0].product_id == str(beef.id)

        [submitted] = get_submitted_reconciliations(db_session, date(2024, 1, 1), date(2024, 1, 31))
        d = reconciliation_to_dict(submitted)
        assert d["reconciliation_date"] == "2024-01-07"
        assert d["items"][0]["product_name"] == "Beef"
        assert d["items"][0]["category"] == "protein"


class TestBankRows:
    def test_round_trip(self, db_session):
        txn = BankTransaction("2024-03-01", "ACH LANDLORD", -250_000, normalized_payee="Landlord LLC")
        db_session.add(bank_transaction_to_row(txn))
        db_session.commit()
        back = bank_transaction_from_row(db_session.query(BankTransactionRow).first())
        assert back.transaction_date == date(2024, 3, 1)
        assert back.amount_cents == -250_000
        assert back.payee == "Landlord LLC"


class TestTimestamps:
    def test_to_naive_utc(self):
        aware = datetime(2024, 1, 10, 9, tzinfo=timezone(timedelta(hours=-5)))
        assert to_naive_utc(aware) == datetime(2024, 1, 10, 14)
        assert to_naive_utc(datetime(2024, 1, 10)) == datetime(2024, 1, 10)
