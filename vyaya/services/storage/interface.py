"""
Abstract Storage Interface

DESIGN DECISION: The ledger core never talks to storage. Storage sits behind
an abstract interface that the orchestrator is handed explicitly, which lets
us:
1. Keep Google Sheets today and swap in a document store later
2. Use in-memory storage for testing
3. Construct the client once instead of holding a module-level singleton

Every read returns a full collection snapshot. There are no incremental
diffs and no transactions - last write wins.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from vyaya.models.audit import AuditEvent
from vyaya.models.records import (
    LedgerRecord,
    LedgerSnapshot,
    LoanRecord,
    RecordKind,
    Repayment,
)


class RecordStorageInterface(ABC):
    """
    Abstract interface for ledger record storage.

    Any storage implementation (Google Sheets, a document DB, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_record(self, record: LedgerRecord) -> bool:
        """
        Save a new record to storage.

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If a record with the same ID exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_record(self, record: LedgerRecord) -> bool:
        """
        Replace an existing record (full replace of mutable fields).

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def get_record(
        self,
        kind: RecordKind,
        record_id: UUID,
    ) -> Optional[LedgerRecord]:
        """Retrieve a record by kind and ID, or None if it doesn't exist."""
        pass

    @abstractmethod
    async def delete_record(self, kind: RecordKind, record_id: UUID) -> bool:
        """
        Delete a record. Deleting a loan also discards its repayments.

        Returns:
            True if a record was deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def list_records(self, kind: RecordKind) -> list[LedgerRecord]:
        """Return the full collection for one record kind."""
        pass

    @abstractmethod
    async def append_repayment(
        self,
        loan_id: UUID,
        repayment: Repayment,
    ) -> LoanRecord:
        """
        Append a repayment to a loan.

        Returns:
            The loan as stored after the append

        Raises:
            NotFoundError: If the loan doesn't exist
        """
        pass

    async def load_snapshot(self) -> LedgerSnapshot:
        """Read all three collections."""
        return LedgerSnapshot(
            expenses=tuple(await self.list_records(RecordKind.EXPENSE)),
            odometer_readings=tuple(await self.list_records(RecordKind.ODOMETER)),
            loans=tuple(await self.list_records(RecordKind.LOAN)),
        )


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log. Returns True on success."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one user action, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
