"""Tests for the fuel-link rule."""

import pytest
from datetime import date
from decimal import Decimal

from vyaya.ledger import build_linked_odometer_record
from vyaya.models import Category, FuelStatus

from tests.conftest import make_expense


class TestBuildLinkedOdometerRecord:

    def test_fuel_entry_with_reading_and_status(self):
        """A fuel fill-up with odometer and tank status yields one reading."""
        fuel = make_expense(amount="500", category=Category.FUEL, on=date(2024, 1, 5))

        reading = build_linked_odometer_record(fuel, Decimal("1200"), FuelStatus.MAIN)

        assert reading is not None
        assert reading.odometer == Decimal("1200")
        assert reading.fuel_status == FuelStatus.MAIN
        assert reading.date == fuel.date
        assert reading.id != fuel.id

    def test_missing_status(self):
        fuel = make_expense(category=Category.FUEL)
        assert build_linked_odometer_record(fuel, Decimal("1200"), None) is None

    def test_missing_reading(self):
        fuel = make_expense(category=Category.FUEL)
        assert build_linked_odometer_record(fuel, None, FuelStatus.RESERVE) is None

    def test_non_fuel_category(self):
        toll = make_expense(category=Category.TOLL)
        assert build_linked_odometer_record(toll, Decimal("1200"), FuelStatus.MAIN) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
