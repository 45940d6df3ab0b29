"""
Data Models Package

This package contains all Pydantic models used by Vyaya.
Records, forms and derived ledger results all conform to these schemas.
"""

from vyaya.models.records import (
    INCOME_CATEGORIES,
    VEHICLE_CATEGORIES,
    Category,
    EntryDirection,
    ExpenseForm,
    ExpenseRecord,
    FuelStatus,
    LedgerRecord,
    LedgerSnapshot,
    LoanDirection,
    LoanForm,
    LoanRecord,
    OdometerForm,
    OdometerRecord,
    RecordKind,
    Repayment,
    RepaymentForm,
)
from vyaya.models.ledger import (
    PLACEHOLDER,
    HistoryItem,
    HistoryPage,
    InsufficientFunds,
    OutflowDecision,
    OutflowOk,
    RepaymentDecision,
    RepaymentExceedsBalance,
    RepaymentOk,
    Stats,
    format_metric,
)
from vyaya.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from vyaya.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Record models
    "INCOME_CATEGORIES",
    "VEHICLE_CATEGORIES",
    "Category",
    "EntryDirection",
    "ExpenseForm",
    "ExpenseRecord",
    "FuelStatus",
    "LedgerRecord",
    "LedgerSnapshot",
    "LoanDirection",
    "LoanForm",
    "LoanRecord",
    "OdometerForm",
    "OdometerRecord",
    "RecordKind",
    "Repayment",
    "RepaymentForm",
    # Ledger models
    "PLACEHOLDER",
    "HistoryItem",
    "HistoryPage",
    "InsufficientFunds",
    "OutflowDecision",
    "OutflowOk",
    "RepaymentDecision",
    "RepaymentExceedsBalance",
    "RepaymentOk",
    "Stats",
    "format_metric",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
