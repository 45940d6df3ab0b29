"""Tests for the CSV export."""

import csv
import io

import pytest
from datetime import date
from decimal import Decimal

from vyaya.export import CSV_COLUMNS, export_history_csv
from vyaya.models import Category, FuelStatus, LoanDirection

from tests.conftest import make_expense, make_income, make_loan, make_reading


def parse(text):
    return list(csv.reader(io.StringIO(text)))


class TestExportHistoryCsv:

    def test_header_only_when_empty(self):
        assert parse(export_history_csv([], [], [])) == [CSV_COLUMNS]

    def test_rows_follow_history_order(self):
        expense = make_expense(amount="500", category=Category.FUEL, on=date(2024, 1, 5), note="full tank")
        income = make_income(amount="5000", on=date(2024, 1, 1))
        readings = [
            make_reading(1000, on=date(2024, 1, 2)),
            make_reading(1100, on=date(2024, 1, 4), status=FuelStatus.RESERVE),
        ]
        loan = make_loan(principal="1000", on=date(2024, 1, 3), name="Ravi")

        rows = parse(export_history_csv([expense, income], readings, [loan]))

        assert rows[0] == ["Type", "Date", "Details", "Amount", "Status"]
        assert rows[1] == ["Expense", "2024-01-05", "Fuel - full tank", "500", "Completed"]
        assert rows[2] == ["Odometer", "2024-01-04", "Odometer 1100 (Reserve)", "100", "Recorded"]
        assert rows[3] == ["Loan", "2024-01-03", "taken Ravi", "1000", "Open"]
        assert rows[4] == ["Odometer", "2024-01-02", "Odometer 1000 (Main)", "0", "Recorded"]
        assert rows[5] == ["Income", "2024-01-01", "Salary", "5000", "Completed"]

    def test_loan_status_matches_balance(self):
        settled = make_loan(
            principal="2000",
            direction=LoanDirection.GIVEN,
            source="Savings",
            repayments=["1500", "500"],
        )
        rows = parse(export_history_csv([], [], [settled]))
        assert rows[1][4] == "Settled"
        assert rows[1][2] == "given Ravi"

    def test_values_with_commas_are_quoted(self):
        expense = make_expense(amount="99.50", note="milk, bread")
        text = export_history_csv([expense], [], [])
        assert '"Groceries - milk, bread"' in text
        assert parse(text)[1][3] == str(Decimal("99.50"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
