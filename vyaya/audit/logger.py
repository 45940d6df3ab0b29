"""
Audit Logger

DESIGN DECISION: Every write to the ledger is logged, and so is every
write the ledger refuses. This provides:
1. Traceability of balances back to the entries that produced them
2. Debugging capability when a sync goes wrong
3. A record of rejected outflows

The audit logger:
- Is async so it can share the orchestrator's event loop
- Gracefully handles failures (a failed audit write never fails a save)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from vyaya.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from vyaya.models.validation import ValidationIssue
from vyaya.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage backend (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_saved(
        self,
        kind: str,
        record_id: UUID,
        summary: str,
        correlation_id: UUID,
        updated: bool = False,
    ) -> None:
        """Log a created or edited record."""
        event = AuditEventBuilder.record_saved(
            kind=kind,
            record_id=record_id,
            summary=summary,
            correlation_id=correlation_id,
            updated=updated,
        )
        await self.log(event)

    async def log_linked_odometer(
        self,
        odometer_id: UUID,
        expense_id: UUID,
        reading: Decimal,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.linked_odometer_created(
            odometer_id=odometer_id,
            expense_id=expense_id,
            reading=str(reading),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_repayment(
        self,
        loan_id: UUID,
        repayment_id: UUID,
        amount: Decimal,
        remaining: Decimal,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.repayment_recorded(
            loan_id=loan_id,
            repayment_id=repayment_id,
            amount=str(amount),
            remaining=str(remaining),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_deleted(
        self,
        kind: str,
        record_id: UUID,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.record_deleted(
            kind=kind,
            record_id=record_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_outflow_rejected(
        self,
        source: str,
        requested: Decimal,
        available: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log an outflow refused for insufficient funds."""
        event = AuditEventBuilder.outflow_rejected(
            source=source,
            requested=str(requested),
            available=str(available),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        kind: str,
        issues: list[ValidationIssue],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            kind=kind,
            issues=[issue.model_dump(mode="json") for issue in issues],
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(
        self,
        kind: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.save_failed(
            kind=kind,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_csv_exported(
        self,
        row_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.csv_exported(
            row_count=row_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a storage backend failure."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a fuel entry).
    Pass it through all subsequent operations.
    """
    return uuid4()
