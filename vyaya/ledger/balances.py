"""
Funding-Source Balance Tracker

A funding source is a named bucket of money ("Salary", "Savings", "Cash").
Its balance is every inflow attributed to it minus every outflow.

Attribution rules:
- income entry: credits its destination (or its category)
- expense entry: debits its funding source
- money lent (given loan): debits the source it was drawn from
- money borrowed (taken loan): no effect unless `credit_taken_loans`
- repaying a debt (taken loan): debits the repayment's source
- being repaid (given loan): credits the repayment's source

IMPORTANT: The outflow check is advisory. It runs against whatever snapshot
the caller holds; two devices can both pass it against a stale balance.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Optional

from vyaya.models.ledger import (
    ZERO,
    InsufficientFunds,
    OutflowDecision,
    OutflowOk,
    RepaymentDecision,
    RepaymentExceedsBalance,
    RepaymentOk,
)
from vyaya.models.records import (
    ExpenseRecord,
    LoanDirection,
    LoanRecord,
)


def compute_source_balances(
    expenses: Iterable[ExpenseRecord],
    loans: Iterable[LoanRecord],
    credit_taken_loans: bool = False,
) -> dict[str, Decimal]:
    """
    Compute the current balance of every funding source referenced.

    Sources appear in the order they are first referenced.
    """
    balances: dict[str, Decimal] = {}

    def post(source: Optional[str], amount: Decimal) -> None:
        if not source:
            return
        balances[source] = balances.get(source, ZERO) + amount

    for expense in expenses:
        if expense.is_expense:
            post(expense.funding_source, -expense.amount)
        else:
            post(expense.credit_source, expense.amount)

    for loan in loans:
        if loan.direction == LoanDirection.GIVEN:
            post(loan.funding_source, -loan.principal)
        elif credit_taken_loans:
            post(loan.funding_source, loan.principal)

        sign = 1 if loan.direction == LoanDirection.GIVEN else -1
        for repayment in loan.repayments:
            post(repayment.funding_source, sign * repayment.amount)

    return balances


def release_principal(
    balances: Mapping[str, Decimal],
    loan: LoanRecord,
    credit_taken_loans: bool = False,
) -> dict[str, Decimal]:
    """
    Undo the principal of `loan` in a copy of `balances`.

    Repayments on the loan are left in place.
    """
    released = dict(balances)
    source = loan.funding_source
    if not source:
        return released
    if loan.direction == LoanDirection.GIVEN:
        released[source] = released.get(source, ZERO) + loan.principal
    elif credit_taken_loans:
        released[source] = released.get(source, ZERO) - loan.principal
    return released


def validate_outflow(
    source: str,
    amount: Decimal,
    balances: Mapping[str, Decimal],
) -> OutflowDecision:
    """
    Check whether `source` can cover an outflow of `amount`.

    An unknown source has a balance of zero. Never raises - the caller
    decides whether to block the submission.
    """
    available = balances.get(source, ZERO)
    if amount <= available:
        return OutflowOk(source=source, requested=amount, available=available)
    return InsufficientFunds(source=source, requested=amount, available=available)


def validate_repayment(loan: LoanRecord, amount: Decimal) -> RepaymentDecision:
    """Check that a repayment does not exceed what is still owed."""
    remaining = loan.remaining
    if amount <= remaining:
        return RepaymentOk(remaining=remaining)
    return RepaymentExceedsBalance(requested=amount, remaining=remaining)
