"""Tests for the ledger aggregator."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from vyaya.ledger import compute_stats, derive_trip_distances
from vyaya.ledger.aggregator import (
    category_totals,
    loan_position,
    monthly_spend,
    monthly_totals,
    odometer_span,
)
from vyaya.models import PLACEHOLDER, Category, FuelStatus, LoanDirection

from tests.conftest import make_expense, make_income, make_loan, make_reading


NOW = datetime(2024, 1, 20, 10, 0)


class TestEmptyLedger:
    """An empty snapshot produces zeros and placeholders, never errors."""

    def test_all_zero(self):
        stats = compute_stats([], [], [], now=NOW)
        assert stats.current_odometer == Decimal("0")
        assert stats.total_distance == Decimal("0")
        assert stats.vehicle_spend == Decimal("0")
        assert stats.monthly_spend == Decimal("0")
        assert stats.owed_by_user == Decimal("0")
        assert stats.owed_to_user == Decimal("0")
        assert stats.needs_more_data is False

    def test_metrics_not_computable(self):
        stats = compute_stats([], [], [], now=NOW)
        assert stats.cost_per_km is None
        assert stats.average_mileage is None
        assert stats.cost_per_km_display == PLACEHOLDER


class TestVehicleStats:
    """Tests for odometer, distance, cost per km and mileage."""

    def test_fuel_and_two_readings(self):
        """One fill-up between two readings gives distance and cost per km."""
        expenses = [make_expense(amount="500", category=Category.FUEL, on=date(2024, 1, 5))]
        readings = [
            make_reading(1000, on=date(2024, 1, 1)),
            make_reading(1100, on=date(2024, 1, 5)),
        ]

        stats = compute_stats(expenses, readings, [], now=NOW)

        assert stats.total_distance == Decimal("100")
        assert stats.vehicle_spend == Decimal("500")
        assert stats.cost_per_km == Decimal("5.00")
        assert stats.cost_per_km_display == "5.00"

    def test_single_reading_needs_more_data(self):
        stats = compute_stats([], [make_reading(1000)], [], now=NOW)
        assert stats.needs_more_data is True
        assert stats.current_odometer == Decimal("1000")
        assert stats.initial_odometer == Decimal("1000")
        assert stats.total_distance == Decimal("0")
        assert stats.cost_per_km is None

    def test_span_uses_max_and_min_not_entry_order(self):
        readings = [make_reading(1500), make_reading(1000), make_reading(1200)]
        assert odometer_span(readings) == (Decimal("1500"), Decimal("1000"))

    def test_vehicle_spend_counts_vehicle_categories_only(self):
        expenses = [
            make_expense(amount="500", category=Category.FUEL),
            make_expense(amount="300", category=Category.TOLL),
            make_expense(amount="1200", category=Category.SERVICE),
            make_expense(amount="900", category=Category.GROCERIES),
        ]
        stats = compute_stats(expenses, [], [], now=NOW)
        assert stats.vehicle_spend == Decimal("2000")

    def test_average_mileage(self):
        expenses = [
            make_expense(
                amount="1000",
                category=Category.FUEL,
                fuel_price=Decimal("100"),
            ),
        ]
        readings = [make_reading(1000), make_reading(1150, on=date(2024, 1, 10))]

        stats = compute_stats(expenses, readings, [], now=NOW)

        assert stats.fuel_volume_total == Decimal("10.00")
        assert stats.average_mileage == Decimal("15.0")

    def test_mileage_needs_fuel_volume(self):
        """Fuel without price or volume contributes no litres."""
        expenses = [make_expense(amount="500", category=Category.FUEL)]
        readings = [make_reading(1000), make_reading(1100)]

        stats = compute_stats(expenses, readings, [], now=NOW)

        assert stats.fuel_volume_total == Decimal("0")
        assert stats.average_mileage is None
        assert stats.average_mileage_display == PLACEHOLDER


class TestWalletStats:
    """Tests for spend and income figures."""

    def test_monthly_spend_same_calendar_month_only(self):
        expenses = [
            make_expense(amount="100", on=date(2024, 1, 2)),
            make_expense(amount="200", on=date(2024, 1, 31)),
            make_expense(amount="400", on=date(2023, 12, 31)),
            make_expense(amount="800", on=date(2023, 1, 15)),
        ]
        assert monthly_spend(expenses, NOW) == Decimal("300")

    def test_monthly_spend_ignores_income(self):
        expenses = [
            make_expense(amount="100", on=date(2024, 1, 2)),
            make_income(amount="5000", on=date(2024, 1, 1)),
        ]
        assert monthly_spend(expenses, NOW) == Decimal("100")

    def test_totals_split_by_direction(self):
        expenses = [
            make_expense(amount="100"),
            make_expense(amount="50"),
            make_income(amount="5000"),
        ]
        stats = compute_stats(expenses, [], [], now=NOW)
        assert stats.total_expense == Decimal("150")
        assert stats.total_income == Decimal("5000")

    def test_category_totals_first_appearance_order(self):
        expenses = [
            make_expense(amount="100", category=Category.MEDICAL),
            make_expense(amount="50", category=Category.GROCERIES),
            make_expense(amount="25", category=Category.MEDICAL),
        ]
        totals = category_totals(expenses)
        assert list(totals) == ["Medical", "Groceries"]
        assert totals["Medical"] == Decimal("125")

    def test_monthly_totals_newest_first(self):
        expenses = [
            make_expense(amount="100", on=date(2023, 12, 5)),
            make_expense(amount="50", on=date(2024, 1, 5)),
            make_expense(amount="25", on=date(2023, 12, 20)),
        ]
        totals = monthly_totals(expenses)
        assert list(totals) == ["2024-01", "2023-12"]
        assert totals["2023-12"] == Decimal("125")


class TestLoanPosition:
    """Tests for owed-by / owed-to figures."""

    def test_partially_repaid_taken_loan(self):
        loan = make_loan(principal="1000", repayments=["400"])
        stats = compute_stats([], [], [loan], now=NOW)
        assert stats.owed_by_user == Decimal("600")
        assert stats.owed_to_user == Decimal("0")

    def test_settled_loan_contributes_nothing(self):
        loan = make_loan(principal="1000", repayments=["1000"])
        assert loan_position([loan]) == (Decimal("0"), Decimal("0"))

    def test_overpaid_loan_contributes_nothing(self):
        loan = make_loan(principal="1000", repayments=["1200"])
        assert loan_position([loan]) == (Decimal("0"), Decimal("0"))

    def test_net_balance(self):
        loans = [
            make_loan(principal="1000"),
            make_loan(principal="2500", direction=LoanDirection.GIVEN, source="Savings"),
        ]
        stats = compute_stats([], [], loans, now=NOW)
        assert stats.owed_by_user == Decimal("1000")
        assert stats.owed_to_user == Decimal("2500")
        assert stats.net_balance == Decimal("1500")


class TestTripDistances:
    """Trip distance is derived from the previous lower reading."""

    def test_distances(self):
        first = make_reading(1000, on=date(2024, 1, 1))
        second = make_reading(1100, on=date(2024, 1, 5))
        third = make_reading(1250, on=date(2024, 1, 9), status=FuelStatus.RESERVE)

        distances = derive_trip_distances([third, first, second])

        assert distances[first.id] == Decimal("0")
        assert distances[second.id] == Decimal("100")
        assert distances[third.id] == Decimal("150")


class TestDeterminism:
    """Same snapshot and same `now` give the same result."""

    def test_idempotent(self):
        expenses = [
            make_expense(amount="500", category=Category.FUEL, fuel_price=Decimal("100")),
            make_income(amount="5000"),
        ]
        readings = [make_reading(1000), make_reading(1100)]
        loans = [make_loan(repayments=["300"])]

        first = compute_stats(expenses, readings, loans, now=NOW)
        second = compute_stats(expenses, readings, loans, now=NOW)

        assert first == second

    def test_accepts_generators(self):
        readings = [make_reading(1000), make_reading(1100)]
        stats = compute_stats(
            (e for e in [make_expense(amount="500", category=Category.FUEL)]),
            (r for r in readings),
            iter([]),
            now=NOW,
        )
        assert stats.cost_per_km == Decimal("5.00")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
