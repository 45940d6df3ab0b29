"""
History Compositor

Merges expenses, odometer readings and loans into one reverse-chronological
sequence, then groups the visible part of it by date.

Ordering:
1. Later date first
2. Same date: later creation timestamp first
3. Still tied: input order (expenses, then odometer readings, then loans)

Pagination slices the fully sorted sequence BEFORE grouping, so raising
the limit only ever appends - it never reorders what was already shown.
"""

from collections.abc import Iterable
from typing import Optional

from vyaya.ledger.aggregator import derive_trip_distances
from vyaya.models.ledger import HistoryItem, HistoryPage
from vyaya.models.records import (
    ExpenseRecord,
    LoanRecord,
    OdometerRecord,
    RecordKind,
)


DEFAULT_DATE_FORMAT = "%d %b %Y"
DEFAULT_PAGE_SIZE = 20


def sort_history(
    expenses: Iterable[ExpenseRecord],
    odometer_readings: Iterable[OdometerRecord],
    loans: Iterable[LoanRecord],
) -> list[HistoryItem]:
    """Return every record as a HistoryItem, newest first."""
    odometer_readings = list(odometer_readings)
    distances = derive_trip_distances(odometer_readings)

    items = [HistoryItem(kind=RecordKind.EXPENSE, record=e) for e in expenses]
    items.extend(
        HistoryItem(
            kind=RecordKind.ODOMETER,
            record=reading,
            trip_distance=distances.get(reading.id),
        )
        for reading in odometer_readings
    )
    items.extend(HistoryItem(kind=RecordKind.LOAN, record=loan) for loan in loans)

    # sorted() is stable with reverse=True, so full ties keep input order
    return sorted(items, key=lambda item: (item.date, item.timestamp), reverse=True)


def group_by_date(
    items: Iterable[HistoryItem],
    date_format: str = DEFAULT_DATE_FORMAT,
) -> dict[str, list[HistoryItem]]:
    groups: dict[str, list[HistoryItem]] = {}
    for item in items:
        groups.setdefault(item.date.strftime(date_format), []).append(item)
    return groups


def build_history(
    expenses: Iterable[ExpenseRecord],
    odometer_readings: Iterable[OdometerRecord],
    loans: Iterable[LoanRecord],
    limit: Optional[int] = None,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> HistoryPage:
    """
    Build the combined history.

    Args:
        limit: Number of items to show. None shows everything.
        date_format: strftime format of the group keys.
    """
    ordered = sort_history(expenses, odometer_readings, loans)
    visible = ordered if limit is None else ordered[:limit]

    return HistoryPage(
        groups=group_by_date(visible, date_format),
        items=visible,
        total_count=len(ordered),
        limit=limit,
    )
