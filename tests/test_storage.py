"""
Tests for the storage backends.

The Google Sheets backend runs against an in-process worksheet double,
so no network calls are made.
"""

import asyncio
import json

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from gspread.utils import a1_to_rowcol

from vyaya.models import (
    AuditEventBuilder,
    Category,
    LoanDirection,
    RecordKind,
    Repayment,
)
from vyaya.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsRecordStorage,
    InMemoryAuditStorage,
    InMemoryRecordStorage,
    NotFoundError,
)
from vyaya.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    COLUMNS_BY_KIND,
    EXPENSE_COLUMNS,
    LOAN_COLUMNS,
    record_to_row,
    row_to_record,
)

from tests.conftest import make_expense, make_loan, make_reading


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, columns):
        self.rows = [list(columns)]
        self.range_updates = []

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(value) for value in row])

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)

    def update(self, range_name, values, value_input_option=None):
        self.range_updates.append(range_name)
        row, col = a1_to_rowcol(range_name.split(":")[0])
        for offset, value in enumerate(values[0]):
            self.update_cell(row, col + offset, value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:

    def __init__(self):
        self.sheets = {kind: FakeWorksheet(COLUMNS_BY_KIND[kind]) for kind in RecordKind}
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_record_sheet(self, kind):
        return self.sheets[kind]

    def get_audit_sheet(self):
        return self.audit


class TestInMemoryRecordStorage:

    def test_save_and_list(self):
        storage = InMemoryRecordStorage()
        expense = make_expense()

        asyncio.run(storage.save_record(expense))

        assert asyncio.run(storage.list_records(RecordKind.EXPENSE)) == [expense]
        assert asyncio.run(storage.list_records(RecordKind.LOAN)) == []

    def test_duplicate_save(self):
        expense = make_expense()
        storage = InMemoryRecordStorage([expense])
        with pytest.raises(DuplicateError):
            asyncio.run(storage.save_record(expense))

    def test_update_missing(self):
        storage = InMemoryRecordStorage()
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_record(make_expense()))

    def test_update_replaces(self):
        expense = make_expense(amount="100")
        storage = InMemoryRecordStorage([expense])
        edited = expense.model_copy(update={"amount": Decimal("150")})

        asyncio.run(storage.update_record(edited))

        stored = asyncio.run(storage.get_record(RecordKind.EXPENSE, expense.id))
        assert stored.amount == Decimal("150")

    def test_delete(self):
        reading = make_reading(1000)
        storage = InMemoryRecordStorage([reading])
        assert asyncio.run(storage.delete_record(RecordKind.ODOMETER, reading.id)) is True
        assert asyncio.run(storage.delete_record(RecordKind.ODOMETER, reading.id)) is False

    def test_append_repayment(self):
        loan = make_loan(principal="1000")
        storage = InMemoryRecordStorage([loan])

        updated = asyncio.run(storage.append_repayment(
            loan.id, Repayment(amount=Decimal("400"), date=date(2024, 1, 2))
        ))

        assert updated.balance == Decimal("600")
        stored = asyncio.run(storage.get_record(RecordKind.LOAN, loan.id))
        assert stored.balance == Decimal("600")

    def test_append_repayment_unknown_loan(self):
        storage = InMemoryRecordStorage()
        with pytest.raises(NotFoundError):
            asyncio.run(storage.append_repayment(
                uuid4(), Repayment(amount=Decimal("1"), date=date(2024, 1, 2))
            ))

    def test_load_snapshot(self):
        expense, reading, loan = make_expense(), make_reading(1000), make_loan()
        storage = InMemoryRecordStorage([expense, reading, loan])

        snapshot = asyncio.run(storage.load_snapshot())

        assert snapshot.expenses == (expense,)
        assert snapshot.odometer_readings == (reading,)
        assert snapshot.loans == (loan,)


class TestInMemoryAuditStorage:

    def test_events_by_correlation_id(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        asyncio.run(storage.append_event(AuditEventBuilder.csv_exported(3, correlation_id)))
        asyncio.run(storage.append_event(AuditEventBuilder.csv_exported(4, uuid4())))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))

        assert len(events) == 1
        assert events[0].details["row_count"] == 3


class TestSheetRows:
    """Row conversion for the Google Sheets backend."""

    def test_fuel_expense_row(self):
        fuel = make_expense(
            amount="500",
            category=Category.FUEL,
            fuel_price=Decimal("102.50"),
            note="full tank",
        )
        row = record_to_row(fuel)

        assert row[4] == "Fuel"
        assert row[9] == ""
        assert row_to_record(RecordKind.EXPENSE, row) == fuel

    def test_loan_row_keeps_repayments(self):
        loan = make_loan(
            principal="2000",
            direction=LoanDirection.GIVEN,
            source="Savings",
            repayments=[("500", "Savings")],
        )
        row = record_to_row(loan)

        repayments = json.loads(row[LOAN_COLUMNS.index("repayments_json")])
        assert repayments[0]["amount"] == "500"

        restored = row_to_record(RecordKind.LOAN, row)
        assert restored.repayments == loan.repayments
        assert restored.balance == Decimal("1500")

    def test_short_row_uses_defaults(self):
        reading = make_reading(1000, status=None)
        row = record_to_row(reading)[:4]
        assert row_to_record(RecordKind.ODOMETER, row).fuel_status is None


class TestGoogleSheetsRecordStorage:

    def test_save_get_and_list(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        expense = make_expense()

        asyncio.run(storage.save_record(expense))

        assert asyncio.run(storage.get_record(RecordKind.EXPENSE, expense.id)) == expense
        assert asyncio.run(storage.list_records(RecordKind.EXPENSE)) == [expense]

    def test_update_in_place(self):
        client = FakeSheetsClient()
        reading = make_reading(1000)
        storage = GoogleSheetsRecordStorage(client)
        asyncio.run(storage.save_record(reading))

        asyncio.run(storage.update_record(reading.model_copy(update={"odometer": Decimal("1010")})))

        assert len(client.sheets[RecordKind.ODOMETER].rows) == 2
        assert client.sheets[RecordKind.ODOMETER].range_updates == ["A2:E2"]
        stored = asyncio.run(storage.get_record(RecordKind.ODOMETER, reading.id))
        assert stored.odometer == Decimal("1010")

    def test_delete(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        loan = make_loan()
        asyncio.run(storage.save_record(loan))

        assert asyncio.run(storage.delete_record(RecordKind.LOAN, loan.id)) is True
        assert asyncio.run(storage.list_records(RecordKind.LOAN)) == []

    def test_append_repayment(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        loan = make_loan(principal="1000")
        asyncio.run(storage.save_record(loan))

        asyncio.run(storage.append_repayment(
            loan.id, Repayment(amount=Decimal("250"), date=date(2024, 1, 3))
        ))

        stored = asyncio.run(storage.get_record(RecordKind.LOAN, loan.id))
        assert stored.balance == Decimal("750")

    def test_malformed_rows_are_skipped(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        expense = make_expense()
        asyncio.run(storage.save_record(expense))
        client.sheets[RecordKind.EXPENSE].rows.append(["not-a-uuid", "2024-01-01"])
        client.sheets[RecordKind.EXPENSE].rows.append([])
        bad_amount = record_to_row(make_expense())
        bad_amount[EXPENSE_COLUMNS.index("amount")] = "1,200"
        client.sheets[RecordKind.EXPENSE].rows.append(bad_amount)

        assert asyncio.run(storage.list_records(RecordKind.EXPENSE)) == [expense]


class TestGoogleSheetsAuditStorage:

    def test_append_and_read_back(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()
        event = AuditEventBuilder.outflow_rejected("Salary", "3500", "3000", correlation_id)

        asyncio.run(storage.append_event(event))
        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))

        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].details["available"] == "3000"

    def test_recent_events_newest_first(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        older = AuditEventBuilder.csv_exported(1, uuid4()).model_copy(
            update={"timestamp": datetime(2024, 1, 1)}
        )
        newer = AuditEventBuilder.csv_exported(2, uuid4()).model_copy(
            update={"timestamp": datetime(2024, 1, 2)}
        )
        asyncio.run(storage.append_event(older))
        asyncio.run(storage.append_event(newer))

        events = asyncio.run(storage.get_recent_events(limit=1))

        assert [e.event_id for e in events] == [newer.event_id]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
