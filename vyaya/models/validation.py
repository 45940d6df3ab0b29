"""
Validation Models

Results of the two-stage record validation. Errors block the write,
warnings are shown to the user but never block.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from vyaya.models.ledger import InsufficientFunds, RepaymentExceedsBalance
from vyaya.models.records import RecordKind


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'insufficient_funds', 'odometer_regression')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required fields, field combinations)
    Stage 2: Business validation (checks against the current ledger)
    """

    kind: RecordKind
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    # Stage results
    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    business_valid: bool = Field(
        ...,
        description="Did business validation pass? False if it never ran."
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    # Gate decisions that caused a rejection, kept for auditing
    rejected_outflow: Optional[InsufficientFunds] = None
    rejected_repayment: Optional[RepaymentExceedsBalance] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
