"""
In-Memory Storage Implementation

Used by the test suite and as the fallback when Google Sheets is not
configured. Data lives only as long as the process.
"""

from typing import Optional
from uuid import UUID

from vyaya.models.audit import AuditEvent
from vyaya.models.records import (
    LedgerRecord,
    LoanRecord,
    RecordKind,
    Repayment,
)
from vyaya.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordStorageInterface,
)


class InMemoryRecordStorage(RecordStorageInterface):
    """Dict-backed record storage, one dict per collection (insertion ordered)."""

    def __init__(self, records: Optional[list[LedgerRecord]] = None):
        self._collections: dict[RecordKind, dict[UUID, LedgerRecord]] = {
            kind: {} for kind in RecordKind
        }
        for record in records or []:
            self._collections[record.kind][record.id] = record

    async def save_record(self, record: LedgerRecord) -> bool:
        collection = self._collections[record.kind]
        if record.id in collection:
            raise DuplicateError(f"{record.kind.value} already exists: {record.id}")
        collection[record.id] = record
        return True

    async def update_record(self, record: LedgerRecord) -> bool:
        collection = self._collections[record.kind]
        if record.id not in collection:
            raise NotFoundError(f"{record.kind.value} not found: {record.id}")
        collection[record.id] = record
        return True

    async def get_record(
        self,
        kind: RecordKind,
        record_id: UUID,
    ) -> Optional[LedgerRecord]:
        return self._collections[kind].get(record_id)

    async def delete_record(self, kind: RecordKind, record_id: UUID) -> bool:
        return self._collections[kind].pop(record_id, None) is not None

    async def list_records(self, kind: RecordKind) -> list[LedgerRecord]:
        return list(self._collections[kind].values())

    async def append_repayment(
        self,
        loan_id: UUID,
        repayment: Repayment,
    ) -> LoanRecord:
        loan = self._collections[RecordKind.LOAN].get(loan_id)
        if loan is None:
            raise NotFoundError(f"loan not found: {loan_id}")
        updated = loan.with_repayment(repayment)
        self._collections[RecordKind.LOAN][loan_id] = updated
        return updated


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed, append-only audit storage."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
