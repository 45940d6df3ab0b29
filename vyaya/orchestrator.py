"""
Main Orchestrator for Vyaya

This module ties together all the components and defines the
end-to-end flows for every ledger write and read:
1. Write (form → validate → gate → persist → fuel link → audit)
2. Read (snapshot → stats / balances / history / CSV)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No write happens when validation fails
- No outflow is written against a source that can't cover it
- Every write, and every refused write, is audited

The ledger core below this layer is pure. Storage, settings and the
audit trail are only touched here.
"""

from datetime import datetime
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from vyaya.audit import AuditLogger, create_correlation_id
from vyaya.config import AppSettings, get_settings
from vyaya.export import export_history_csv
from vyaya.ledger import (
    build_history,
    build_linked_odometer_record,
    compute_source_balances,
    compute_stats,
)
from vyaya.models.ledger import HistoryPage, Stats
from vyaya.models.records import (
    ExpenseForm,
    ExpenseRecord,
    LedgerSnapshot,
    LoanForm,
    LoanRecord,
    OdometerForm,
    OdometerRecord,
    RecordKind,
    RepaymentForm,
)
from vyaya.models.validation import ValidationResult
from vyaya.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStorage,
    InMemoryAuditStorage,
    InMemoryRecordStorage,
    RecordStorageInterface,
    StorageError,
)
from vyaya.validation import RecordValidator


logger = structlog.get_logger(__name__)


class SaveOutcome(BaseModel):
    """What happened to a submitted form."""

    saved: bool
    record: Optional[Union[ExpenseRecord, OdometerRecord, LoanRecord]] = None
    linked_odometer: Optional[OdometerRecord] = None
    validation: Optional[ValidationResult] = None
    message: str = ""
    error: Optional[str] = None


class LedgerFlow:
    """
    Orchestrates ledger writes and reads.

    Write flow:
    1. Load → Current snapshot of all three collections
    2. Validate → Two-stage validation of the form
    3. Gate → Refuse the write on any error (insufficient funds included)
    4. Persist → Create or update the record
    5. Link → Fuel entries may create a companion odometer record
    6. Audit → Log the outcome

    Reads always recompute from a fresh snapshot.
    """

    def __init__(
        self,
        record_storage: RecordStorageInterface,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = record_storage
        self._settings = settings or get_settings().app
        self._validator = validator or RecordValidator(self._settings)
        self._audit_logger = audit_logger

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _load_snapshot(self, correlation_id: UUID) -> LedgerSnapshot:
        try:
            return await self._storage.load_snapshot()
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="storage",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def _reject(
        self,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> SaveOutcome:
        """Audit a refused write and build the outcome."""
        if self._audit_logger:
            if result.rejected_outflow:
                await self._audit_logger.log_outflow_rejected(
                    source=result.rejected_outflow.source,
                    requested=result.rejected_outflow.requested,
                    available=result.rejected_outflow.available,
                    correlation_id=correlation_id,
                )
            await self._audit_logger.log_validation_failed(
                kind=result.kind.value,
                issues=[i for i in result.issues if i.severity == "error"],
                correlation_id=correlation_id,
            )

        return SaveOutcome(
            saved=False,
            validation=result,
            message=self._validator.get_user_friendly_summary(result),
        )

    async def _persist(
        self,
        record: Union[ExpenseRecord, OdometerRecord, LoanRecord],
        updating: bool,
        correlation_id: UUID,
    ) -> Optional[str]:
        """Write a record. Returns an error message instead of raising."""
        try:
            if updating:
                await self._storage.update_record(record)
            else:
                await self._storage.save_record(record)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    kind=record.kind.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return str(e)
        return None

    async def _existing(
        self,
        kind: RecordKind,
        record_id: Optional[UUID],
    ):
        if record_id is None:
            return None
        return await self._storage.get_record(kind, record_id)

    def _not_found(self, kind: RecordKind, validation: ValidationResult) -> SaveOutcome:
        return SaveOutcome(
            saved=False,
            validation=validation,
            message=f"{kind.value.capitalize()} not found",
            error="not_found",
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def save_expense(
        self,
        form: ExpenseForm,
        record_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SaveOutcome:
        """
        Create an expense/income entry, or edit one when record_id is given.

        A new Fuel entry carrying an odometer reading and tank status also
        creates an odometer record for the same date, after the expense is
        saved. Edits never create one.
        """
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self._load_snapshot(correlation_id)

        result = self._validator.validate_expense(form, snapshot, record_id)
        if not result.is_valid:
            return await self._reject(result, correlation_id)

        existing = await self._existing(RecordKind.EXPENSE, record_id)
        if record_id is not None and existing is None:
            return self._not_found(RecordKind.EXPENSE, result)

        record = form.to_record(
            record_id=record_id,
            timestamp=existing.timestamp if existing else None,
        )
        error = await self._persist(record, existing is not None, correlation_id)
        if error:
            return SaveOutcome(
                saved=False,
                validation=result,
                message="Could not save the entry. Please try again.",
                error=error,
            )

        if self._audit_logger:
            await self._audit_logger.log_record_saved(
                kind=record.kind.value,
                record_id=record.id,
                summary=f"{record.category.value} {record.amount}",
                correlation_id=correlation_id,
                updated=existing is not None,
            )

        linked = None
        message = "Entry saved"
        if existing is None:
            linked = build_linked_odometer_record(
                record, form.linked_odometer, form.fuel_status
            )
        if linked is not None:
            link_error = await self._persist(linked, False, correlation_id)
            if link_error:
                linked = None
                message = "Entry saved, but the odometer reading could not be logged"
            elif self._audit_logger:
                await self._audit_logger.log_linked_odometer(
                    odometer_id=linked.id,
                    expense_id=record.id,
                    reading=linked.odometer,
                    correlation_id=correlation_id,
                )

        return SaveOutcome(
            saved=True,
            record=record,
            linked_odometer=linked,
            validation=result,
            message=message,
        )

    async def save_odometer(
        self,
        form: OdometerForm,
        record_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SaveOutcome:
        """Create or edit an odometer reading."""
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self._load_snapshot(correlation_id)

        result = self._validator.validate_odometer(form, snapshot, record_id)
        if not result.is_valid:
            return await self._reject(result, correlation_id)

        existing = await self._existing(RecordKind.ODOMETER, record_id)
        if record_id is not None and existing is None:
            return self._not_found(RecordKind.ODOMETER, result)

        record = form.to_record(
            record_id=record_id,
            timestamp=existing.timestamp if existing else None,
        )
        error = await self._persist(record, existing is not None, correlation_id)
        if error:
            return SaveOutcome(
                saved=False,
                validation=result,
                message="Could not save the reading. Please try again.",
                error=error,
            )

        if self._audit_logger:
            await self._audit_logger.log_record_saved(
                kind=record.kind.value,
                record_id=record.id,
                summary=f"{record.odometer} km",
                correlation_id=correlation_id,
                updated=existing is not None,
            )

        return SaveOutcome(
            saved=True,
            record=record,
            validation=result,
            message="Reading saved",
        )

    async def save_loan(
        self,
        form: LoanForm,
        record_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SaveOutcome:
        """Create or edit a loan. Editing keeps the loan's repayments."""
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self._load_snapshot(correlation_id)

        result = self._validator.validate_loan(form, snapshot, record_id)
        if not result.is_valid:
            return await self._reject(result, correlation_id)

        existing = await self._existing(RecordKind.LOAN, record_id)
        if record_id is not None and existing is None:
            return self._not_found(RecordKind.LOAN, result)

        record = form.to_record(
            record_id=record_id,
            timestamp=existing.timestamp if existing else None,
            repayments=existing.repayments if existing else (),
        )
        error = await self._persist(record, existing is not None, correlation_id)
        if error:
            return SaveOutcome(
                saved=False,
                validation=result,
                message="Could not save the loan. Please try again.",
                error=error,
            )

        if self._audit_logger:
            await self._audit_logger.log_record_saved(
                kind=record.kind.value,
                record_id=record.id,
                summary=f"{record.direction.value} {record.counterparty_name} {record.principal}",
                correlation_id=correlation_id,
                updated=existing is not None,
            )

        return SaveOutcome(
            saved=True,
            record=record,
            validation=result,
            message="Loan saved",
        )

    async def record_repayment(
        self,
        loan_id: UUID,
        form: RepaymentForm,
        correlation_id: Optional[UUID] = None,
    ) -> SaveOutcome:
        """Append a repayment to a loan. The outcome carries the updated loan."""
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self._load_snapshot(correlation_id)

        result = self._validator.validate_repayment(loan_id, form, snapshot)
        if not result.is_valid:
            return await self._reject(result, correlation_id)

        repayment = form.to_repayment()
        try:
            loan = await self._storage.append_repayment(loan_id, repayment)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    kind=RecordKind.LOAN.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return SaveOutcome(
                saved=False,
                validation=result,
                message="Could not record the repayment. Please try again.",
                error=str(e),
            )

        if self._audit_logger:
            await self._audit_logger.log_repayment(
                loan_id=loan.id,
                repayment_id=repayment.id,
                amount=repayment.amount,
                remaining=loan.remaining,
                correlation_id=correlation_id,
            )

        return SaveOutcome(
            saved=True,
            record=loan,
            validation=result,
            message="Loan settled" if loan.is_settled else "Repayment recorded",
        )

    async def delete_record(
        self,
        kind: RecordKind,
        record_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete one record. Deleting a loan removes its repayments with it.

        Records are independent: deleting a fuel entry leaves the odometer
        reading it created in place.
        """
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._storage.delete_record(kind, record_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_record_deleted(
                kind=kind.value,
                record_id=record_id,
                correlation_id=correlation_id,
            )
        return deleted

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def dashboard(self, now: Optional[datetime] = None) -> Stats:
        """Wallet and vehicle statistics for the current snapshot."""
        snapshot = await self._load_snapshot(create_correlation_id())
        return compute_stats(
            snapshot.expenses,
            snapshot.odometer_readings,
            snapshot.loans,
            now=now or datetime.now(),
        )

    async def source_balances(self) -> dict:
        snapshot = await self._load_snapshot(create_correlation_id())
        return compute_source_balances(
            snapshot.expenses,
            snapshot.loans,
            credit_taken_loans=self._settings.credit_taken_loans,
        )

    async def history(self, limit: Optional[int] = None) -> HistoryPage:
        """Combined history, newest first. None shows everything."""
        snapshot = await self._load_snapshot(create_correlation_id())
        return build_history(
            snapshot.expenses,
            snapshot.odometer_readings,
            snapshot.loans,
            limit=limit,
            date_format=self._settings.history_date_format,
        )

    async def open_loans(self) -> list[LoanRecord]:
        """Loans that still have something left to repay."""
        snapshot = await self._load_snapshot(create_correlation_id())
        return [loan for loan in snapshot.loans if not loan.is_settled]

    async def export_csv(self, correlation_id: Optional[UUID] = None) -> str:
        """The full history as CSV text."""
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self._load_snapshot(correlation_id)

        csv_text = export_history_csv(
            snapshot.expenses,
            snapshot.odometer_readings,
            snapshot.loans,
        )

        if self._audit_logger:
            row_count = (
                len(snapshot.expenses)
                + len(snapshot.odometer_readings)
                + len(snapshot.loans)
            )
            await self._audit_logger.log_csv_exported(
                row_count=row_count,
                correlation_id=correlation_id,
            )

        return csv_text


def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for running without credentials.
                    Without it the ledger lives in memory only.

    Returns:
        (ledger_flow, sheets_client)
    """
    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            record_storage = GoogleSheetsRecordStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            record_storage = InMemoryRecordStorage()
            audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        record_storage = InMemoryRecordStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    ledger_flow = LedgerFlow(
        record_storage=record_storage,
        audit_logger=audit_logger,
    )

    return ledger_flow, sheets_client
