"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the storage backend because:
1. The user can open their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for one person's ledger)
- No transactions - last write wins
- Limited query capabilities (we read whole collections and filter in Python)

One worksheet per record kind. Loan repayments are stored as a JSON column
on the loan row, so deleting a loan discards its repayments with it.
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional
from uuid import UUID

import gspread
import structlog
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from vyaya.config import get_settings
from vyaya.models.audit import AuditEvent, AuditEventType, AuditSeverity
from vyaya.models.records import (
    Category,
    EntryDirection,
    ExpenseRecord,
    FuelStatus,
    LedgerRecord,
    LoanDirection,
    LoanRecord,
    OdometerRecord,
    RecordKind,
    Repayment,
)
from vyaya.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RecordStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings, one per worksheet
EXPENSE_COLUMNS = [
    "id",
    "date",
    "timestamp",
    "amount",
    "category",
    "direction",
    "funding_source",
    "note",
    "fuel_price",
    "fuel_volume",
]

ODOMETER_COLUMNS = [
    "id",
    "date",
    "timestamp",
    "odometer",
    "fuel_status",
]

LOAN_COLUMNS = [
    "id",
    "date",
    "due_date",
    "timestamp",
    "direction",
    "counterparty_name",
    "principal",
    "funding_source",
    "note",
    "repayments_json",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

COLUMNS_BY_KIND = {
    RecordKind.EXPENSE: EXPENSE_COLUMNS,
    RecordKind.ODOMETER: ODOMETER_COLUMNS,
    RecordKind.LOAN: LOAN_COLUMNS,
}


def _optional(value) -> str:
    return "" if value is None else str(value)


def _row_getter(row: list) -> Callable[[int], str]:
    """Index into a sheet row, tolerating short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


def record_to_row(record: LedgerRecord) -> list:
    """Convert a record to a spreadsheet row."""
    if isinstance(record, ExpenseRecord):
        return [
            str(record.id),
            record.date.isoformat(),
            record.timestamp.isoformat(),
            str(record.amount),
            record.category.value,
            record.direction.value,
            record.funding_source or "",
            record.note,
            _optional(record.fuel_price),
            _optional(record.fuel_volume),
        ]
    if isinstance(record, OdometerRecord):
        return [
            str(record.id),
            record.date.isoformat(),
            record.timestamp.isoformat(),
            str(record.odometer),
            record.fuel_status.value if record.fuel_status else "",
        ]
    return [
        str(record.id),
        record.date.isoformat(),
        record.due_date.isoformat() if record.due_date else "",
        record.timestamp.isoformat(),
        record.direction.value,
        record.counterparty_name,
        str(record.principal),
        record.funding_source or "",
        record.note,
        json.dumps([r.model_dump(mode="json") for r in record.repayments]),
    ]


def row_to_record(kind: RecordKind, row: list) -> LedgerRecord:
    """Convert a spreadsheet row back to a record."""
    get = _row_getter(row)

    if kind == RecordKind.EXPENSE:
        return ExpenseRecord(
            id=UUID(get(0)),
            date=date.fromisoformat(get(1)),
            timestamp=datetime.fromisoformat(get(2)),
            amount=Decimal(get(3)),
            category=Category(get(4)),
            direction=EntryDirection(get(5)),
            funding_source=get(6) or None,
            note=get(7),
            fuel_price=Decimal(get(8)) if get(8) else None,
            fuel_volume=Decimal(get(9)) if get(9) else None,
        )

    if kind == RecordKind.ODOMETER:
        return OdometerRecord(
            id=UUID(get(0)),
            date=date.fromisoformat(get(1)),
            timestamp=datetime.fromisoformat(get(2)),
            odometer=Decimal(get(3)),
            fuel_status=FuelStatus(get(4)) if get(4) else None,
        )

    repayments_json = get(9)
    repayments = tuple(
        Repayment.model_validate(item)
        for item in (json.loads(repayments_json) if repayments_json else [])
    )
    return LoanRecord(
        id=UUID(get(0)),
        date=date.fromisoformat(get(1)),
        due_date=date.fromisoformat(get(2)) if get(2) else None,
        timestamp=datetime.fromisoformat(get(3)),
        direction=LoanDirection(get(4)),
        counterparty_name=get(5),
        principal=Decimal(get(6)),
        funding_source=get(7) or None,
        note=get(8),
        repayments=repayments,
    )


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    Constructed once and passed to the storage classes.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError as e:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_record_sheet(self, kind: RecordKind) -> gspread.Worksheet:
        titles = {
            RecordKind.EXPENSE: self._settings.expenses_sheet_name,
            RecordKind.ODOMETER: self._settings.odometer_sheet_name,
            RecordKind.LOAN: self._settings.loans_sheet_name,
        }
        return self.get_sheet(titles[kind], COLUMNS_BY_KIND[kind])

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsRecordStorage(RecordStorageInterface):
    """
    Google Sheets implementation of record storage.

    Records are stored as rows, one worksheet per record kind.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, record_id: UUID) -> Optional[tuple[int, list]]:
        """Return (1-based row index, row) for a record ID."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == str(record_id):
                return idx, row
        return None

    def _write_row(self, sheet: gspread.Worksheet, idx: int, row: list) -> None:
        """Overwrite one row in a single ranged update."""
        cells = f"{rowcol_to_a1(idx, 1)}:{rowcol_to_a1(idx, len(row))}"
        sheet.update(range_name=cells, values=[row], value_input_option="RAW")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def save_record(self, record: LedgerRecord) -> bool:
        """Append a new record row."""
        try:
            sheet = self._client.get_record_sheet(record.kind)
            if self._find_row(sheet, record.id):
                raise DuplicateError(f"{record.kind.value} already exists: {record.id}")
            sheet.append_row(record_to_row(record), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {record.kind.value}: {e}") from e

    async def update_record(self, record: LedgerRecord) -> bool:
        """Rewrite an existing record row in place."""
        try:
            sheet = self._client.get_record_sheet(record.kind)
            found = self._find_row(sheet, record.id)
            if found is None:
                raise NotFoundError(f"{record.kind.value} not found: {record.id}")
            self._write_row(sheet, found[0], record_to_row(record))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {record.kind.value}: {e}") from e

    async def get_record(
        self,
        kind: RecordKind,
        record_id: UUID,
    ) -> Optional[LedgerRecord]:
        try:
            sheet = self._client.get_record_sheet(kind)
            found = self._find_row(sheet, record_id)
            return row_to_record(kind, found[1]) if found else None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get {kind.value}: {e}") from e

    async def delete_record(self, kind: RecordKind, record_id: UUID) -> bool:
        try:
            sheet = self._client.get_record_sheet(kind)
            found = self._find_row(sheet, record_id)
            if found is None:
                return False
            sheet.delete_rows(found[0])
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {kind.value}: {e}") from e

    async def list_records(self, kind: RecordKind) -> list[LedgerRecord]:
        """Read a whole worksheet. Malformed rows are skipped and logged."""
        try:
            sheet = self._client.get_record_sheet(kind)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {kind.value} records: {e}") from e

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(row_to_record(kind, row))
            except (ValueError, InvalidOperation) as e:
                logger.warning("malformed_row_skipped", kind=kind.value, row_id=row[0], error=str(e))
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def append_repayment(
        self,
        loan_id: UUID,
        repayment: Repayment,
    ) -> LoanRecord:
        try:
            sheet = self._client.get_record_sheet(RecordKind.LOAN)
            found = self._find_row(sheet, loan_id)
            if found is None:
                raise NotFoundError(f"loan not found: {loan_id}")
            idx, row = found
            loan = row_to_record(RecordKind.LOAN, row).with_repayment(repayment)
            repayments_col = LOAN_COLUMNS.index("repayments_json") + 1
            sheet.update_cell(idx, repayments_col, record_to_row(loan)[repayments_col - 1])
            return loan
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to append repayment: {e}") from e


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        get = _row_getter(row)

        return AuditEvent(
            event_id=UUID(get(0)),
            timestamp=datetime.fromisoformat(get(1)),
            event_type=AuditEventType(get(2)),
            severity=AuditSeverity(get(3)),
            entity_type=get(4) or None,
            entity_id=UUID(get(5)) if get(5) else None,
            correlation_id=UUID(get(6)) if get(6) else None,
            description=get(7),
            details=json.loads(get(8)) if get(8) else {},
            error_message=get(9) or None,
            is_user_action=get(10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError as e:
                logger.warning("malformed_audit_row_skipped", row_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}") from e

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
