"""Tests for the history compositor."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from vyaya.ledger import build_history
from vyaya.models import RecordKind

from tests.conftest import make_expense, make_loan, make_reading


class TestOrdering:
    """History is newest first across all three collections."""

    def test_sorted_by_date_descending(self):
        expense = make_expense(on=date(2024, 1, 3))
        reading = make_reading(1000, on=date(2024, 1, 5))
        loan = make_loan(on=date(2024, 1, 1))

        page = build_history([expense], [reading], [loan])

        assert [item.record.id for item in page.items] == [reading.id, expense.id, loan.id]

    def test_same_date_later_timestamp_first(self):
        morning = make_expense(on=date(2024, 1, 5), timestamp=datetime(2024, 1, 5, 8, 0))
        evening = make_expense(on=date(2024, 1, 5), timestamp=datetime(2024, 1, 5, 20, 0))

        page = build_history([morning, evening], [], [])

        assert [item.record.id for item in page.items] == [evening.id, morning.id]

    def test_full_tie_keeps_input_order(self):
        stamp = datetime(2024, 1, 5, 12, 0)
        expense = make_expense(on=date(2024, 1, 5), timestamp=stamp)
        reading = make_reading(1000, on=date(2024, 1, 5), timestamp=stamp)
        loan = make_loan(on=date(2024, 1, 5), timestamp=stamp)

        page = build_history([expense], [reading], [loan])

        assert [item.kind for item in page.items] == [
            RecordKind.EXPENSE,
            RecordKind.ODOMETER,
            RecordKind.LOAN,
        ]

    def test_odometer_items_carry_trip_distance(self):
        readings = [make_reading(1000, on=date(2024, 1, 1)), make_reading(1080, on=date(2024, 1, 4))]
        page = build_history([], readings, [])
        assert [item.trip_distance for item in page.items] == [Decimal("80"), Decimal("0")]


class TestGrouping:
    """Visible items are grouped under a formatted date."""

    def test_groups_by_formatted_date(self):
        items = [
            make_expense(on=date(2024, 1, 5)),
            make_expense(on=date(2024, 1, 5)),
            make_expense(on=date(2024, 1, 3)),
        ]
        page = build_history(items, [], [])

        assert list(page.groups) == ["05 Jan 2024", "03 Jan 2024"]
        assert len(page.groups["05 Jan 2024"]) == 2

    def test_custom_date_format(self):
        page = build_history([make_expense(on=date(2024, 1, 5))], [], [], date_format="%Y-%m-%d")
        assert list(page.groups) == ["2024-01-05"]


class TestPagination:
    """The limit slices the sorted sequence before grouping."""

    def _expenses(self, count):
        return [make_expense(on=date(2024, 1, 1 + i)) for i in range(count)]

    def test_limit_shows_newest(self):
        expenses = self._expenses(25)
        page = build_history(expenses, [], [], limit=20)

        assert page.visible_count == 20
        assert page.total_count == 25
        assert page.has_more is True
        assert page.items[0].record.date == date(2024, 1, 25)

    def test_raising_limit_only_appends(self):
        expenses = self._expenses(25)
        first = build_history(expenses, [], [], limit=20)
        second = build_history(expenses, [], [], limit=first.next_limit(20))

        assert second.visible_count == 25
        assert second.has_more is False
        assert [i.record.id for i in second.items[:20]] == [i.record.id for i in first.items]

    def test_no_limit_shows_everything(self):
        page = build_history(self._expenses(3), [], [])
        assert page.visible_count == 3
        assert page.has_more is False

    def test_empty(self):
        page = build_history([], [], [], limit=20)
        assert page.groups == {}
        assert page.total_count == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
