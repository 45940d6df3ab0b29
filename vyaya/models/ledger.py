"""
Derived Ledger Models

Read-only results computed from a LedgerSnapshot:
- Stats: dashboard figures
- HistoryItem / HistoryPage: the combined, date-grouped history
- Outflow and repayment decisions: the gate the UI consults before a write

DESIGN DECISION: A metric that cannot be computed (nothing to divide by)
is None, never NaN or Infinity. The UI renders it as a neutral
placeholder.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from vyaya.models.records import (
    ExpenseRecord,
    LoanRecord,
    OdometerRecord,
    RecordKind,
)


PLACEHOLDER = "---"

ZERO = Decimal("0")


def format_metric(value: Optional[Decimal]) -> str:
    """Render a metric, or the placeholder when it is not computable."""
    return PLACEHOLDER if value is None else str(value)


class Stats(BaseModel):
    """Aggregated figures for the wallet and vehicle dashboards."""
    model_config = ConfigDict(frozen=True)

    # Vehicle
    current_odometer: Decimal = ZERO
    initial_odometer: Decimal = ZERO
    total_distance: Decimal = ZERO
    needs_more_data: bool = False
    vehicle_spend: Decimal = ZERO
    fuel_volume_total: Decimal = ZERO
    cost_per_km: Optional[Decimal] = Field(
        default=None,
        description="Vehicle spend per km, None when no distance is known"
    )
    average_mileage: Optional[Decimal] = Field(
        default=None,
        description="km per litre, None when distance or fuel volume is zero"
    )

    # Wallet
    monthly_spend: Decimal = ZERO
    total_expense: Decimal = ZERO
    total_income: Decimal = ZERO
    category_totals: dict[str, Decimal] = Field(default_factory=dict)
    monthly_totals: dict[str, Decimal] = Field(default_factory=dict)

    # Loans
    owed_by_user: Decimal = ZERO
    owed_to_user: Decimal = ZERO
    net_balance: Decimal = ZERO

    @property
    def cost_per_km_display(self) -> str:
        return format_metric(self.cost_per_km)

    @property
    def average_mileage_display(self) -> str:
        return format_metric(self.average_mileage)


class HistoryItem(BaseModel):
    """One record in the combined history, tagged with its kind."""
    model_config = ConfigDict(frozen=True)

    kind: RecordKind
    record: Union[ExpenseRecord, OdometerRecord, LoanRecord]
    trip_distance: Optional[Decimal] = Field(
        default=None,
        description="Distance since the previous reading (odometer items only)"
    )

    @property
    def date(self) -> date:
        return self.record.date

    @property
    def timestamp(self) -> datetime:
        return self.record.timestamp


class HistoryPage(BaseModel):
    """
    The visible prefix of the sorted history, grouped by formatted date.

    Groups and the items inside them keep the overall sort order.
    """

    groups: dict[str, list[HistoryItem]] = Field(default_factory=dict)
    items: list[HistoryItem] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
    limit: Optional[int] = Field(default=None, ge=0)

    @property
    def visible_count(self) -> int:
        return len(self.items)

    @property
    def has_more(self) -> bool:
        return self.visible_count < self.total_count

    def next_limit(self, step: int = 20) -> int:
        """Limit to request for the next page."""
        return self.visible_count + step


# =============================================================================
# DECISIONS
# =============================================================================

class OutflowOk(BaseModel):
    """The source holds enough money for the outflow."""
    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True
    source: str
    requested: Decimal
    available: Decimal


class InsufficientFunds(BaseModel):
    """The source does not hold enough money. The write must not happen."""
    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    source: str
    requested: Decimal
    available: Decimal

    def message(self, currency_symbol: str = "₹") -> str:
        return (
            f"Insufficient funds in {self.source}. "
            f"Available: {currency_symbol}{self.available:,.2f}"
        )


OutflowDecision = Union[OutflowOk, InsufficientFunds]


class RepaymentOk(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True
    remaining: Decimal


class RepaymentExceedsBalance(BaseModel):
    """Repayment larger than what is still owed on the loan."""
    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    requested: Decimal
    remaining: Decimal

    def message(self, currency_symbol: str = "₹") -> str:
        return (
            f"Repayment exceeds the remaining balance. "
            f"Remaining: {currency_symbol}{self.remaining:,.2f}"
        )


RepaymentDecision = Union[RepaymentOk, RepaymentExceedsBalance]
