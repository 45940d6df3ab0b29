"""
Audit Models for Vyaya

Every write to the ledger, and every write the ledger refuses, is logged.
This gives:
1. A trail of what changed and when
2. Debugging information when a sync goes wrong
3. A record of rejected outflows the user may ask about later

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Records
    EXPENSE_SAVED = "expense_saved"
    EXPENSE_UPDATED = "expense_updated"
    ODOMETER_SAVED = "odometer_saved"
    ODOMETER_UPDATED = "odometer_updated"
    LINKED_ODOMETER_CREATED = "linked_odometer_created"
    LOAN_SAVED = "loan_saved"
    LOAN_UPDATED = "loan_updated"
    REPAYMENT_RECORDED = "repayment_recorded"
    RECORD_DELETED = "record_deleted"
    SAVE_FAILED = "save_failed"

    # Gate decisions
    OUTFLOW_REJECTED = "outflow_rejected"
    VALIDATION_FAILED = "validation_failed"

    # Export
    CSV_EXPORTED = "csv_exported"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Record kind (e.g., 'expense', 'odometer', 'loan')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    # Correlation - ties together the events of one user action
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a fuel entry and its odometer reading)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_saved("expense", expense_id, "Fuel", "500", cid)
        event = AuditEventBuilder.outflow_rejected("Salary", "3500", "3000", cid)
    """

    _SAVED_TYPES = {
        "expense": AuditEventType.EXPENSE_SAVED,
        "odometer": AuditEventType.ODOMETER_SAVED,
        "loan": AuditEventType.LOAN_SAVED,
    }
    _UPDATED_TYPES = {
        "expense": AuditEventType.EXPENSE_UPDATED,
        "odometer": AuditEventType.ODOMETER_UPDATED,
        "loan": AuditEventType.LOAN_UPDATED,
    }

    @staticmethod
    def record_saved(
        kind: str,
        record_id: UUID,
        summary: str,
        correlation_id: UUID,
        updated: bool = False,
    ) -> AuditEvent:
        types = AuditEventBuilder._UPDATED_TYPES if updated else AuditEventBuilder._SAVED_TYPES
        verb = "updated" if updated else "saved"
        return AuditEvent(
            event_type=types[kind],
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} {verb}: {summary}",
            details={"summary": summary},
            is_user_action=True,
        )

    @staticmethod
    def linked_odometer_created(
        odometer_id: UUID,
        expense_id: UUID,
        reading: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINKED_ODOMETER_CREATED,
            entity_type="odometer",
            entity_id=odometer_id,
            correlation_id=correlation_id,
            description=f"Odometer reading {reading} recorded from fuel entry",
            details={
                "expense_id": str(expense_id),
                "odometer": reading,
            },
        )

    @staticmethod
    def repayment_recorded(
        loan_id: UUID,
        repayment_id: UUID,
        amount: str,
        remaining: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPAYMENT_RECORDED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Repayment of {amount} recorded, {remaining} remaining",
            details={
                "repayment_id": str(repayment_id),
                "amount": amount,
                "remaining": remaining,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        kind: str,
        record_id: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def outflow_rejected(
        source: str,
        requested: str,
        available: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OUTFLOW_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="funding_source",
            correlation_id=correlation_id,
            description=f"Outflow of {requested} from {source} rejected ({available} available)",
            details={
                "source": source,
                "requested": requested,
                "available": available,
            },
        )

    @staticmethod
    def validation_failed(
        kind: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=kind,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def save_failed(
        kind: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=kind,
            correlation_id=correlation_id,
            description=f"Failed to save {kind}",
            error_message=error_message,
        )

    @staticmethod
    def csv_exported(
        row_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_EXPORTED,
            correlation_id=correlation_id,
            description=f"History exported to CSV ({row_count} rows)",
            details={"row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
