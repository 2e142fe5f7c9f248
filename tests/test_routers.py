"""
Endpoint tests.

Route functions are called directly against the in-memory database from
``patched_db``; every query parameter is passed explicitly.
"""

import os
import sys
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from backoffice.api.routes import health_check
from backoffice.api.schemas import (
    BankColumnMappingIn, BankImportRequest, DeductionPreviewRequest, DismissSuggestionRequest,
    EmployeeCreate, EmployeeUpdate, RecurrencePatternIn, RecurrencePreviewRequest,
    SettingUpdate, ShiftCreateRequest, ShiftIn, TipParticipant, TipRebalanceRequest,
    TipShareIn, TipSplitRequest,
)
from backoffice.core.errors import NotFoundError, ValidationError
from backoffice.database import (
    BankTransactionRow, ProductRow, ReconciliationItemRow, ReconciliationRow, ShiftRow, TimePunchRow,
)
from backoffice.domain.enums import PayPeriodType
from backoffice.routers import (
    employees, finance, inventory, labor, payroll, scheduling, settings, tips,
)


def _hourly(name="Maria", rate=1800):
    return EmployeeCreate(name=name, compensation_type="hourly", hourly_rate=rate)


class TestSettingsEndpoints:

    async def test_defaults_returned_when_nothing_stored(self, patched_db):
        result = await settings.get_settings_endpoint()
        assert result["overtime_enabled"] is True
        assert result["daily_overtime_minutes"] == 480

    async def test_update_then_read(self, patched_db):
        resp = await settings.update_settings(SettingUpdate(settings={"business_name": "Bistro"}))
        assert resp == {"status": "ok", "updated": ["business_name"]}
        result = await settings.get_settings_endpoint()
        assert result["business_name"] == "Bistro"

    async def test_empty_update_rejected(self, patched_db):
        with pytest.raises(HTTPException) as exc:
            await settings.update_settings(SettingUpdate(settings={}))
        assert exc.value.status_code == 400


class TestEmployeeEndpoints:

    async def test_create_and_get(self, patched_db):
        created = await employees.create_employee(_hourly())
        assert created.name == "Maria"
        assert created.hourly_rate == 1800
        fetched = await employees.get_employee(created.id)
        assert fetched.id == created.id
        assert fetched.compensation_type == "hourly"

    async def test_invalid_compensation_rejected(self, patched_db):
        body = EmployeeCreate(name="Sam", compensation_type="salary", salary_amount=100_000)
        with pytest.raises(ValidationError) as exc:
            await employees.create_employee(body)
        assert "Pay period type is required for salaried employees" in exc.value.details

    async def test_update(self, patched_db):
        created = await employees.create_employee(_hourly())
        updated = await employees.update_employee(created.id, EmployeeUpdate(hourly_rate=2000))
        assert updated.hourly_rate == 2000
        assert updated.name == "Maria"

    async def test_update_cannot_break_compensation(self, patched_db):
        created = await employees.create_employee(_hourly())
        with pytest.raises(ValidationError):
            await employees.update_employee(
                created.id, EmployeeUpdate(compensation_type="contractor"),
            )

    async def test_delete_then_missing(self, patched_db):
        created = await employees.create_employee(_hourly())
        resp = await employees.delete_employee(created.id)
        assert resp == {"status": "ok", "deleted": created.id}
        with pytest.raises(NotFoundError):
            await employees.get_employee(created.id)

    async def test_list_active_only(self, patched_db):
        await employees.create_employee(_hourly("Active"))
        await employees.create_employee(
            EmployeeCreate(name="Gone", hourly_rate=1500, status="inactive"),
        )
        names = [e.name for e in await employees.list_employees(active_only=True)]
        assert names == ["Active"]


class TestSchedulingEndpoints:

    async def test_recurrence_preview(self, patched_db):
        body = RecurrencePreviewRequest(
            start_date=date(2024, 1, 1),
            pattern=RecurrencePatternIn(
                type="weekly", days_of_week=[1, 3], end_type="after", occurrences=4,
            ),
        )
        result = await scheduling.recurrence_preview(body)
        assert result["count"] == 4
        assert result["dates"] == [
            date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 8), date(2024, 1, 10),
        ]
        assert result["description"] == "Weekly on Monday, Wednesday, 4 times"

    async def test_create_shift_for_unknown_employee(self, patched_db):
        body = ShiftCreateRequest(shift=ShiftIn(
            employee_id=999,
            start_time=datetime(2024, 3, 4, 9, tzinfo=timezone.utc),
            end_time=datetime(2024, 3, 4, 17, tzinfo=timezone.utc),
        ))
        with pytest.raises(ValidationError):
            await scheduling.create_shifts(body)

    async def test_create_and_list_shift(self, patched_db):
        emp = await employees.create_employee(_hourly())
        body = ShiftCreateRequest(shift=ShiftIn(
            employee_id=emp.id,
            start_time=datetime(2024, 3, 4, 9, tzinfo=timezone.utc),
            end_time=datetime(2024, 3, 4, 17, tzinfo=timezone.utc),
        ))
        result = await scheduling.create_shifts(body)
        assert len(result["created"]) == 1
        listed = await scheduling.list_shifts(
            start=date(2024, 3, 1), end=date(2024, 3, 31), employee_id=emp.id,
        )
        assert len(listed) == 1
        assert listed[0].employee_id == str(emp.id)


class TestPayrollEndpoints:

    async def test_pay_period_with_explicit_week_start(self, patched_db):
        result = await payroll.pay_period(day=date(2024, 1, 10), period_type=PayPeriodType.WEEKLY, week_start=0)
        assert result == {"start": date(2024, 1, 7), "end": date(2024, 1, 13), "period_type": "weekly"}

    async def test_pay_period_reads_week_start_setting(self, patched_db):
        await settings.update_settings(SettingUpdate(settings={"work_week_start": 1}))
        result = await payroll.pay_period(day=date(2024, 1, 10), period_type=PayPeriodType.WEEKLY, week_start=None)
        assert result["start"] == date(2024, 1, 8)

    async def test_reversed_range_rejected(self, patched_db):
        with pytest.raises(ValidationError):
            await payroll.payroll_for_period(
                start=date(2024, 1, 10), end=date(2024, 1, 1), include_inactive=False,
            )


class TestTipEndpoints:

    async def test_even_split_keeps_total(self, patched_db):
        body = TipSplitRequest(
            total_cents=1000,
            method="even",
            participants=[TipParticipant(id="a"), TipParticipant(id="b"), TipParticipant(id="c")],
        )
        result = await tips.split_tips(body)
        assert result["total_display"] == "$10.00"
        assert sum(s.amount_cents for s in result["shares"]) == 1000

    async def test_rebalance_unknown_employee(self, patched_db):
        body = TipRebalanceRequest(
            total_cents=1000,
            shares=[TipShareIn(employee_id="a", amount_cents=500),
                    TipShareIn(employee_id="b", amount_cents=500)],
            employee_id="z",
            new_amount_cents=100,
        )
        with pytest.raises(ValidationError):
            await tips.rebalance(body)

    async def test_rebalance_pins_share(self, patched_db):
        body = TipRebalanceRequest(
            total_cents=1000,
            shares=[TipShareIn(employee_id="a", amount_cents=500),
                    TipShareIn(employee_id="b", amount_cents=500)],
            employee_id="a",
            new_amount_cents=700,
        )
        result = await tips.rebalance(body)
        amounts = {s.employee_id: s.amount_cents for s in result["shares"]}
        assert amounts == {"a": 700, "b": 300}


class TestFinanceEndpoints:

    async def test_check_amount_words(self, patched_db):
        result = await finance.check_amount_words(amount_cents=250_075)
        assert result["amount_display"] == "$2,500.75"
        assert result["amount_words"] == "Two Thousand Five Hundred and 75/100"


class TestHealth:

    async def test_health_ok(self, patched_db):
        result = await health_check()
        assert result.status == "ok"
        assert result.db == "ok"


# ---------------------------------------------------------------------------
# Endpoints backed by seeded rows
# ---------------------------------------------------------------------------

def _seed(session_factory, *rows):
    db = session_factory()
    try:
        db.add_all(rows)
        db.commit()
    finally:
        db.close()


def _punch(employee_id, kind, *when):
    return TimePunchRow(employee_id=employee_id, punch_type=kind, punch_time=datetime(*when))


class TestCompensationSummaryEndpoint:

    async def test_daily_rate_without_punches_costs_nothing(self, patched_db):
        emp = await employees.create_employee(
            EmployeeCreate(name="Dee", compensation_type="daily_rate", daily_rate_amount=10_000),
        )
        result = await employees.compensation_summary(
            emp.id, start=date(2024, 1, 1), end=date(2024, 1, 7),
        )
        assert result["summary"].total_amount == 0
        assert result["allocations"] == []

    async def test_daily_rate_agrees_with_payroll(self, patched_db):
        emp = await employees.create_employee(
            EmployeeCreate(name="Dee", compensation_type="daily_rate", daily_rate_amount=10_000),
        )
        _seed(
            patched_db,
            _punch(emp.id, "clock_in", 2024, 1, 2, 9),
            _punch(emp.id, "clock_out", 2024, 1, 2, 17),
            _punch(emp.id, "clock_in", 2024, 1, 5, 9),
        )
        start, end = date(2024, 1, 1), date(2024, 1, 7)

        result = await employees.compensation_summary(emp.id, start=start, end=end)
        period = await payroll.payroll_for_period(start=start, end=end, include_inactive=False)

        assert result["summary"].total_amount == 20_000
        assert result["summary"].days_worked == 2
        assert [a.date for a in result["allocations"]] == [date(2024, 1, 2), date(2024, 1, 5)]
        assert period.employees[0].gross_pay == 20_000

    async def test_hourly_costed_from_punches(self, patched_db):
        emp = await employees.create_employee(_hourly())
        _seed(
            patched_db,
            _punch(emp.id, "clock_in", 2024, 1, 2, 9),
            _punch(emp.id, "clock_out", 2024, 1, 2, 17),
        )
        result = await employees.compensation_summary(
            emp.id, start=date(2024, 1, 1), end=date(2024, 1, 7),
        )
        assert result["summary"].hours_worked == 8.0
        assert result["summary"].total_amount == 14_400

    async def test_reversed_range_rejected(self, patched_db):
        with pytest.raises(ValidationError):
            await employees.compensation_summary(1, start=date(2024, 1, 7), end=date(2024, 1, 1))


class TestLaborEndpoint:

    async def test_scheduled_against_actual(self, patched_db):
        emp = await employees.create_employee(_hourly(rate=1500))
        _seed(
            patched_db,
            ShiftRow(employee_id=emp.id, start_time=datetime(2024, 1, 10, 9),
                     end_time=datetime(2024, 1, 10, 17)),
            _punch(emp.id, "clock_in", 2024, 1, 10, 9),
            _punch(emp.id, "clock_out", 2024, 1, 10, 16),
        )
        result = await labor.labor_costs(start=date(2024, 1, 10), end=date(2024, 1, 10))
        assert result["scheduled"].breakdown["total"] == 12_000
        assert result["actual"].breakdown["total"] == 10_500
        assert result["variance"] == -1_500


class TestInventoryEndpoints:

    async def test_deduction_preview(self, patched_db):
        body = DeductionPreviewRequest(
            recipe_quantity=1, recipe_unit="each", product_name="Brioche Bun",
            purchase_unit="case", size_value=24, size_unit="each",
            cost_per_unit=12.0, quantity_sold=2,
        )
        result = await inventory.deduction_preview(body)
        assert result["purchase_unit_deduction"] == pytest.approx(2 / 24)
        assert result["cost_per_recipe_unit"] == pytest.approx(0.5)
        assert result["total_cost"] == pytest.approx(1.0)

    async def test_valuation_uses_stored_markup(self, patched_db):
        _seed(patched_db, ProductRow(name="Cheddar", category="dairy", current_stock=10, cost_per_unit=2.5))
        await settings.update_settings(SettingUpdate(settings={"markup_by_category": {"dairy": 2.0}}))

        result = await inventory.inventory_valuation()
        assert result["total_cost_value"] == 25.0
        assert result["total_retail_value"] == 50.0
        assert result["markup_valued_count"] == 1
        assert result["recipe_valued_count"] == 0

    async def test_variance_report_over_submitted_counts(self, patched_db):
        db = patched_db()
        try:
            beef = ProductRow(name="Beef", category="protein", cost_per_unit=40.0, uom_purchase="case")
            db.add(beef)
            db.flush()
            for day, actual, shrinkage in ((7, 3, -80.0), (14, 4, -40.0)):
                count = ReconciliationRow(
                    reconciliation_date=date(2024, 1, day), status="submitted",
                    total_items_counted=1, items_with_variance=1, total_shrinkage_value=shrinkage,
                )
                count.items.append(ReconciliationItemRow(
                    product_id=beef.id, expected_quantity=5, actual_quantity=actual,
                    variance=actual - 5, variance_value=shrinkage,
                ))
                db.add(count)
            db.add(ReconciliationRow(reconciliation_date=date(2024, 1, 20), status="in_progress"))
            db.commit()
        finally:
            db.close()

        result = await inventory.variance_report(start=date(2024, 1, 1), end=date(2024, 1, 31))
        summary = result["summary"]
        assert summary["total_reconciliations"] == 2
        assert summary["total_shrinkage"] == 120.0
        assert summary["most_problematic_category"] == "protein"

    async def test_variance_report_empty_window(self, patched_db):
        result = await inventory.variance_report(start=date(2024, 1, 1), end=date(2024, 1, 31))
        assert result["summary"]["total_reconciliations"] == 0
        assert result["top_variances"] == []


IMPORT_MAPPINGS = [
    BankColumnMappingIn(csv_column="Date", target_field="transaction_date"),
    BankColumnMappingIn(csv_column="Description", target_field="description"),
    BankColumnMappingIn(csv_column="Amount", target_field="amount"),
]


def _month_starts_back(count):
    """First day of this month and the ``count - 1`` months before it, oldest first."""
    first = date.today().replace(day=1)
    out = [first]
    for _ in range(count - 1):
        first = (first - timedelta(days=1)).replace(day=1)
        out.append(first)
    return list(reversed(out))


class TestFinanceDataEndpoints:

    async def test_bank_import_saves_transactions(self, patched_db):
        body = BankImportRequest(
            csv_text=(
                "Date,Description,Amount\n"
                "01/05/2024,Coffee Supplier,-45.50\n"
                "01/07/2024,Deposit,100.00\n"
            ),
            mappings=IMPORT_MAPPINGS,
            filename="checking.csv",
        )
        result = await finance.bank_import(body)
        assert result["parsed"] == 2
        assert result["saved"] == 2

        db = patched_db()
        try:
            amounts = sorted(r.amount_cents for r in db.query(BankTransactionRow).all())
        finally:
            db.close()
        assert amounts == [-4_550, 10_000]

    async def test_bank_import_dry_run_saves_nothing(self, patched_db):
        body = BankImportRequest(
            csv_text="Date,Description,Amount\n01/05/2024,Coffee Supplier,-45.50\n",
            mappings=IMPORT_MAPPINGS,
            dry_run=True,
        )
        result = await finance.bank_import(body)
        assert result["parsed"] == 1
        assert result["saved"] == 0

    async def test_bank_import_ragged_csv_rejected(self, patched_db):
        body = BankImportRequest(
            csv_text=(
                "Date,Description,Amount\n"
                "01/05/2024,Coffee Supplier,-45.50\n"
                "01/06/2024,Linen,-12.00,extra,fields\n"
            ),
            mappings=IMPORT_MAPPINGS,
        )
        with pytest.raises(ValidationError):
            await finance.bank_import(body)

    async def test_expense_suggestion_then_dismiss(self, patched_db):
        _seed(patched_db, *[
            BankTransactionRow(
                transaction_date=day, description="ACH LANDLORD", amount_cents=-250_000,
                normalized_payee="Landlord LLC", account_subtype="rent",
            )
            for day in _month_starts_back(3)
        ])

        [suggestion] = await finance.expense_suggestions(lookback_days=120)
        assert suggestion["id"] == "landlord llc:rent"
        assert suggestion["monthly_amount"] == 250_000
        assert suggestion["matched_months"] == 3

        resp = await finance.dismiss_suggestion("landlord llc:rent", DismissSuggestionRequest())
        assert resp == {"status": "ok", "suggestion_key": "landlord llc:rent", "action": "dismissed"}
        assert await finance.expense_suggestions(lookback_days=120) == []

    async def test_snooze_requires_date(self, patched_db):
        with pytest.raises(ValidationError):
            await finance.dismiss_suggestion(
                "landlord llc:rent", DismissSuggestionRequest(action="snoozed"),
            )
