"""
CSV Export

Rows follow the history order exactly (newest first), one row per record.
Loan status uses the same balance formula as the dashboard, so the export
can never disagree with the on-screen totals.
"""

import csv
import io
from collections.abc import Iterable

from vyaya.ledger.history import sort_history
from vyaya.models.ledger import HistoryItem
from vyaya.models.records import (
    ExpenseRecord,
    LoanRecord,
    OdometerRecord,
    RecordKind,
)


CSV_COLUMNS = ["Type", "Date", "Details", "Amount", "Status"]


def history_item_to_row(item: HistoryItem) -> list[str]:
    """Convert one history item to a CSV row."""
    record = item.record

    if item.kind == RecordKind.EXPENSE:
        details = record.category.value
        if record.note:
            details = f"{details} - {record.note}"
        return [
            "Expense" if record.is_expense else "Income",
            record.date.isoformat(),
            details,
            str(record.amount),
            "Completed",
        ]

    if item.kind == RecordKind.LOAN:
        return [
            "Loan",
            record.date.isoformat(),
            f"{record.direction.value} {record.counterparty_name}",
            str(record.principal),
            record.status_label,
        ]

    details = f"Odometer {record.odometer}"
    if record.fuel_status:
        details = f"{details} ({record.fuel_status.value})"
    return [
        "Odometer",
        record.date.isoformat(),
        details,
        str(item.trip_distance or 0),
        "Recorded",
    ]


def export_history_csv(
    expenses: Iterable[ExpenseRecord],
    odometer_readings: Iterable[OdometerRecord],
    loans: Iterable[LoanRecord],
) -> str:
    """Render the full history as CSV text (header included)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for item in sort_history(expenses, odometer_readings, loans):
        writer.writerow(history_item_to_row(item))
    return buffer.getvalue()
