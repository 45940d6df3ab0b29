"""
Two-Stage Validation Pipeline

DESIGN DECISION: Every submitted form passes two distinct stages before
anything is written:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (funding source, counterparty)
- Field combinations (fuel details only on Fuel entries)
- Value sanity (zero amounts, future dates, absurd amounts)
This runs on the form alone.

STAGE 2 - BUSINESS VALIDATION:
- Insufficient funds in the funding source
- Odometer readings going backwards
- Repayments larger than what is still owed
This needs the current ledger snapshot.

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the orchestrator refuses the write.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from vyaya.config import AppSettings, get_settings
from vyaya.ledger import (
    compute_source_balances,
    release_principal,
    validate_outflow,
    validate_repayment,
)
from vyaya.ledger.aggregator import odometer_span
from vyaya.models.ledger import InsufficientFunds, RepaymentExceedsBalance
from vyaya.models.records import (
    Category,
    EntryDirection,
    ExpenseForm,
    LedgerSnapshot,
    LoanDirection,
    LoanForm,
    LoanRecord,
    OdometerForm,
    RecordKind,
    RepaymentForm,
)
from vyaya.models.validation import ValidationIssue, ValidationResult


class RecordValidator:
    """
    Validates submitted forms through a two-stage pipeline.

    Stage 1: Schema validation (form only)
    Stage 2: Business validation (form against a ledger snapshot)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # -------------------------------------------------------------------------
    # Shared checks
    # -------------------------------------------------------------------------

    def _check_amount(self, field: str, amount: Decimal, label: str) -> list[ValidationIssue]:
        issues = []
        if amount <= 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{label} must be greater than zero",
                severity="error",
                suggested_fix="Enter a positive amount",
            ))
        elif amount > Decimal(str(self._settings.max_amount)):
            symbol = self._settings.currency_symbol
            issues.append(ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"{label} ({symbol}{amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))
        return issues

    def _check_date(self, field: str, value: date) -> list[ValidationIssue]:
        max_future_date = date.today() + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if value > max_future_date:
            return [ValidationIssue(
                field=field,
                issue_type="future_date",
                message=f"Date ({value}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            )]
        return []

    def _check_funds(
        self,
        source: str,
        amount: Decimal,
        snapshot: LedgerSnapshot,
        replacing: Optional[LoanRecord] = None,
    ) -> tuple[list[ValidationIssue], Optional[InsufficientFunds]]:
        balances = compute_source_balances(
            snapshot.expenses,
            snapshot.loans,
            credit_taken_loans=self._settings.credit_taken_loans,
        )
        if replacing is not None:
            # The edited loan's principal is replaced, its repayments stay
            balances = release_principal(
                balances,
                replacing,
                credit_taken_loans=self._settings.credit_taken_loans,
            )
        decision = validate_outflow(source, amount, balances)
        if decision.ok:
            return [], None
        return [ValidationIssue(
            field="funding_source",
            issue_type="insufficient_funds",
            message=decision.message(self._settings.currency_symbol),
            severity="error",
            suggested_fix="Pick another funding source or record the income first",
        )], decision

    def _odometer_issue(self, field: str, message: str) -> ValidationIssue:
        rejecting = self._settings.reject_odometer_regression
        return ValidationIssue(
            field=field,
            issue_type="odometer_regression",
            message=message,
            severity="error" if rejecting else "warning",
            suggested_fix="Check the reading on the dashboard",
        )

    def _check_odometer(
        self,
        field: str,
        reading: Decimal,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        """A new reading may not be lower than the highest one logged."""
        if not snapshot.odometer_readings:
            return []
        current, _ = odometer_span(snapshot.odometer_readings)
        if reading >= current:
            return []
        return [self._odometer_issue(
            field,
            f"Odometer reading {reading} is lower than the last reading {current}",
        )]

    def _check_odometer_edit(
        self,
        field: str,
        reading: Decimal,
        on: date,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        """
        An edited reading must fit between its neighbours by date.

        Readings dated on or before it must not be higher, readings dated
        after it must not be lower.
        """
        earlier = [r.odometer for r in snapshot.odometer_readings if r.date <= on]
        later = [r.odometer for r in snapshot.odometer_readings if r.date > on]

        issues = []
        if earlier and reading < max(earlier):
            issues.append(self._odometer_issue(
                field,
                f"Odometer reading {reading} is lower than an earlier reading {max(earlier)}",
            ))
        if later and reading > min(later):
            issues.append(self._odometer_issue(
                field,
                f"Odometer reading {reading} is higher than a later reading {min(later)}",
            ))
        return issues

    def _result(
        self,
        kind: RecordKind,
        schema_issues: list[ValidationIssue],
        business_issues: Optional[list[ValidationIssue]] = None,
        rejected_outflow: Optional[InsufficientFunds] = None,
        rejected_repayment: Optional[RepaymentExceedsBalance] = None,
    ) -> ValidationResult:
        schema_valid = not any(i.severity == "error" for i in schema_issues)
        business_valid = business_issues is not None and not any(
            i.severity == "error" for i in business_issues
        )
        issues = schema_issues + (business_issues or [])
        return ValidationResult(
            kind=kind,
            schema_valid=schema_valid,
            business_valid=business_valid,
            is_valid=schema_valid and business_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
            rejected_outflow=rejected_outflow,
            rejected_repayment=rejected_repayment,
        )

    # -------------------------------------------------------------------------
    # Expense / income
    # -------------------------------------------------------------------------

    def _validate_expense_schema(self, form: ExpenseForm) -> list[ValidationIssue]:
        """
        Stage 1 for expense and income entries.

        Checks:
        - Positive amount
        - Funding source on expenses
        - Fuel details only on Fuel entries
        - Fuel volume consistent with amount / price
        - Linked odometer supplied together with the tank status
        """
        issues = self._check_amount("amount", form.amount, "Amount")
        issues += self._check_date("date", form.date)

        if form.direction == EntryDirection.EXPENSE and not form.funding_source:
            issues.append(ValidationIssue(
                field="funding_source",
                issue_type="missing",
                message="Funding source is required for expenses",
                severity="error",
                suggested_fix="Choose where the money came from",
            ))

        is_fuel = form.category == Category.FUEL
        has_fuel_details = (
            form.fuel_price is not None
            or form.fuel_volume is not None
            or form.linked_odometer is not None
        )

        if not is_fuel and has_fuel_details:
            issues.append(ValidationIssue(
                field="category",
                issue_type="ignored_fields",
                message="Fuel details are only kept for Fuel entries",
                severity="info",
            ))

        if is_fuel and form.fuel_price and form.fuel_volume and form.amount > 0:
            expected = form.amount / form.fuel_price
            gap = abs(form.fuel_volume - expected)
            if gap > expected * Decimal(str(self._settings.fuel_volume_tolerance)):
                issues.append(ValidationIssue(
                    field="fuel_volume",
                    issue_type="inconsistent",
                    message=(
                        f"Fuel volume ({form.fuel_volume} L) doesn't match "
                        f"amount / price ({expected:.2f} L)"
                    ),
                    severity="warning",
                    suggested_fix="Please verify the litres and the price per litre",
                ))

        if is_fuel and (form.linked_odometer is None) != (form.fuel_status is None):
            issues.append(ValidationIssue(
                field="linked_odometer",
                issue_type="incomplete",
                message="Odometer reading and tank status are both needed to log the reading",
                severity="warning",
                suggested_fix="Fill in both or leave both empty",
            ))

        return issues

    def validate_expense(
        self,
        form: ExpenseForm,
        snapshot: LedgerSnapshot,
        record_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Validate an expense or income entry.

        When editing, pass the record's ID so the record itself is left out
        of the balance it is checked against.
        """
        schema_issues = self._validate_expense_schema(form)
        if any(i.severity == "error" for i in schema_issues):
            return self._result(RecordKind.EXPENSE, schema_issues)

        if record_id is not None:
            snapshot = snapshot.without(record_id)

        business_issues = []
        rejected = None
        if form.direction == EntryDirection.EXPENSE:
            business_issues, rejected = self._check_funds(
                form.funding_source, form.amount, snapshot
            )

        # The linked reading is only created on a new entry
        if (
            record_id is None
            and form.category == Category.FUEL
            and form.linked_odometer is not None
            and form.fuel_status is not None
        ):
            business_issues += self._check_odometer(
                "linked_odometer", form.linked_odometer, snapshot
            )

        return self._result(
            RecordKind.EXPENSE,
            schema_issues,
            business_issues,
            rejected_outflow=rejected,
        )

    # -------------------------------------------------------------------------
    # Odometer
    # -------------------------------------------------------------------------

    def validate_odometer(
        self,
        form: OdometerForm,
        snapshot: LedgerSnapshot,
        record_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Validate an odometer reading.

        New readings may not go backwards. An edit to an older reading is
        checked against the readings around it instead.
        """
        schema_issues = self._check_date("date", form.date)

        if record_id is not None:
            business_issues = self._check_odometer_edit(
                "odometer", form.odometer, form.date, snapshot.without(record_id)
            )
        else:
            business_issues = self._check_odometer("odometer", form.odometer, snapshot)
        return self._result(RecordKind.ODOMETER, schema_issues, business_issues)

    # -------------------------------------------------------------------------
    # Loans
    # -------------------------------------------------------------------------

    def _validate_loan_schema(self, form: LoanForm) -> list[ValidationIssue]:
        issues = self._check_amount("principal", form.principal, "Principal")
        issues += self._check_date("date", form.date)

        if not form.counterparty_name:
            issues.append(ValidationIssue(
                field="counterparty_name",
                issue_type="missing",
                message="Name of the person is required",
                severity="error",
                suggested_fix="Enter who you borrowed from or lent to",
            ))

        if form.direction == LoanDirection.GIVEN and not form.funding_source:
            issues.append(ValidationIssue(
                field="funding_source",
                issue_type="missing",
                message="Funding source is required when lending money",
                severity="error",
                suggested_fix="Choose where the lent money came from",
            ))

        if form.due_date and form.due_date < form.date:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="inconsistent",
                message="Due date is before the loan date",
                severity="error",
                suggested_fix="Please verify both dates",
            ))

        return issues

    def validate_loan(
        self,
        form: LoanForm,
        snapshot: LedgerSnapshot,
        record_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Validate a loan.

        Lending money is an outflow from its funding source and must be
        covered by that source's balance. When editing, only the loan's
        principal is swapped out; repayments already credited stay in the
        balance.
        """
        schema_issues = self._validate_loan_schema(form)
        if any(i.severity == "error" for i in schema_issues):
            return self._result(RecordKind.LOAN, schema_issues)

        existing = snapshot.find_loan(record_id) if record_id is not None else None

        business_issues = []
        rejected = None
        if form.direction == LoanDirection.GIVEN:
            business_issues, rejected = self._check_funds(
                form.funding_source, form.principal, snapshot, replacing=existing
            )

        return self._result(
            RecordKind.LOAN,
            schema_issues,
            business_issues,
            rejected_outflow=rejected,
        )

    def validate_repayment(
        self,
        loan_id: UUID,
        form: RepaymentForm,
        snapshot: LedgerSnapshot,
    ) -> ValidationResult:
        """
        Validate a repayment against an existing loan.

        Repaying a debt from a named source is an outflow and is checked
        against that source's balance.
        """
        schema_issues = self._check_amount("amount", form.amount, "Repayment")
        schema_issues += self._check_date("date", form.date)
        if any(i.severity == "error" for i in schema_issues):
            return self._result(RecordKind.LOAN, schema_issues)

        loan = snapshot.find_loan(loan_id)
        if loan is None:
            return self._result(RecordKind.LOAN, schema_issues, [ValidationIssue(
                field="loan_id",
                issue_type="not_found",
                message="Loan not found",
                severity="error",
            )])

        business_issues = []
        rejected_repayment = None
        decision = validate_repayment(loan, form.amount)
        if not decision.ok:
            rejected_repayment = decision
            business_issues.append(ValidationIssue(
                field="amount",
                issue_type="exceeds_balance",
                message=decision.message(self._settings.currency_symbol),
                severity="error",
                suggested_fix="Enter at most the remaining balance",
            ))

        rejected_outflow = None
        if loan.direction == LoanDirection.TAKEN and form.funding_source:
            fund_issues, rejected_outflow = self._check_funds(
                form.funding_source, form.amount, snapshot
            )
            business_issues += fund_issues

        return self._result(
            RecordKind.LOAN,
            schema_issues,
            business_issues,
            rejected_outflow=rejected_outflow,
            rejected_repayment=rejected_repayment,
        )

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the form shows next to the save button.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This entry can't be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
