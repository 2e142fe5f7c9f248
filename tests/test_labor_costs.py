"""Tests for scheduled and actual labor cost reports."""

from datetime import date

import pytest

from backoffice.domain.models import Shift, TimePunch
from backoffice.labor.costs import (
    calculate_actual_labor_cost,
    calculate_employee_daily_cost,
    calculate_employee_period_cost,
    calculate_scheduled_labor_cost,
    get_employee_daily_rate_description,
    is_employee_compensation_valid,
    shift_hours,
)


@pytest.fixture
def salaried(make_employee):
    return make_employee(
        id="s1", compensation_type="salary", salary_amount=70_000, pay_period_type="weekly",
    )


class TestDailyCost:
    def test_incomplete_terms_cost_nothing(self, make_employee):
        assert calculate_employee_daily_cost(make_employee(compensation_type="salary")) == 0

    def test_hourly_without_hours(self, make_employee):
        assert calculate_employee_daily_cost(make_employee()) == 0

    def test_per_job_contractor(self, make_employee):
        emp = make_employee(
            compensation_type="contractor",
            contractor_payment_amount=50_000,
            contractor_payment_interval="per-job",
        )
        assert calculate_employee_daily_cost(emp) == 0

    def test_period_cost_daily_rate_only_on_worked_days(self, make_employee):
        emp = make_employee(compensation_type="daily_rate", daily_rate_amount=20_000)
        hours = {date(2024, 1, 2): 6}
        assert calculate_employee_period_cost(emp, date(2024, 1, 1), date(2024, 1, 7), hours) == 20_000


class TestScheduledLaborCost:
    def test_shift_hours_net_of_break(self, utc):
        shift = Shift("e1", utc(2024, 1, 10, 9), utc(2024, 1, 10, 17), break_duration=30)
        assert shift_hours(shift) == pytest.approx(7.5)

    def test_hourly_and_salary(self, make_employee, salaried, utc):
        shifts = [Shift("e1", utc(2024, 1, 10, 9), utc(2024, 1, 10, 17), break_duration=30)]
        result = calculate_scheduled_labor_cost(
            shifts, [make_employee(), salaried], date(2024, 1, 10), date(2024, 1, 11),
        )
        assert result.breakdown["hourly"]["cost"] == 11_250
        assert result.breakdown["hourly"]["hours"] == 7.5
        assert result.breakdown["salary"]["cost"] == 20_000
        assert result.breakdown["salary"]["employees"] == 1
        assert result.breakdown["total"] == 31_250
        assert [d.salary_cost for d in result.daily_costs] == [10_000, 10_000]

    def test_daily_rate_counted_once_per_day(self, make_employee, utc):
        emp = make_employee(compensation_type="daily_rate", daily_rate_amount=20_000)
        shifts = [
            Shift("e1", utc(2024, 1, 10, 8), utc(2024, 1, 10, 11)),
            Shift("e1", utc(2024, 1, 10, 17), utc(2024, 1, 10, 21)),
        ]
        result = calculate_scheduled_labor_cost(shifts, [emp], date(2024, 1, 10), date(2024, 1, 10))
        assert result.breakdown["daily_rate"]["cost"] == 20_000
        assert result.breakdown["daily_rate"]["days_scheduled"] == 1

    def test_inactive_and_out_of_range_ignored(self, make_employee, utc):
        shifts = [
            Shift("e1", utc(2024, 1, 10, 9), utc(2024, 1, 10, 17)),
            Shift("e2", utc(2024, 1, 20, 9), utc(2024, 1, 20, 17)),
        ]
        employees = [make_employee(status="inactive"), make_employee(id="e2")]
        result = calculate_scheduled_labor_cost(shifts, employees, date(2024, 1, 10), date(2024, 1, 11))
        assert result.breakdown["total"] == 0


class TestActualLaborCost:
    def test_hourly_and_salaried_presence(self, make_employee, salaried, utc):
        punches = [
            TimePunch("e1", "clock_in", utc(2024, 1, 10, 9)),
            TimePunch("e1", "clock_out", utc(2024, 1, 10, 17)),
            TimePunch("s1", "clock_in", utc(2024, 1, 10, 8)),
            TimePunch("s1", "clock_out", utc(2024, 1, 10, 18)),
        ]
        result = calculate_actual_labor_cost(
            [make_employee(), salaried], punches, date(2024, 1, 10), date(2024, 1, 11),
        )
        assert result.breakdown["hourly"]["cost"] == 12_000
        assert result.breakdown["hourly"]["hours"] == 8.0
        assert result.breakdown["salary"]["cost"] == 10_000
        assert result.breakdown["salary"]["days_scheduled"] == 1
        assert result.daily_costs[1].total_cost == 0


class TestDescriptions:
    def test_hourly(self, make_employee):
        assert get_employee_daily_rate_description(make_employee()) == "$15.00/hr"

    def test_salary(self, make_employee):
        emp = make_employee(
            compensation_type="salary", salary_amount=200_000, pay_period_type="bi-weekly",
        )
        assert get_employee_daily_rate_description(emp) == "~$142.86/day (bi-weekly)"

    def test_per_job(self, make_employee):
        emp = make_employee(
            compensation_type="contractor",
            contractor_payment_amount=50_000,
            contractor_payment_interval="per-job",
        )
        assert get_employee_daily_rate_description(emp) == "$500.00/job"

    def test_unconfigured(self, make_employee):
        emp = make_employee(hourly_rate=0)
        assert not is_employee_compensation_valid(emp)
        assert get_employee_daily_rate_description(emp) == "No rate configured"
