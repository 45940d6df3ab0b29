"""
Record Models for Vyaya

The three record collections the ledger works on:
1. ExpenseRecord - money spent or received, optionally a fuel fill-up
2. OdometerRecord - a vehicle odometer reading
3. LoanRecord - money borrowed or lent, with nested repayments

Plus one typed form per record kind. Forms are what the UI submits;
records are what the store holds.

DESIGN DECISION: Records are frozen snapshots. The ledger never mutates
them in place - edits produce new records via model_copy().

Derived values (loan balance, fuel volume, trip distance) are computed
on read rather than stored, so they can never go stale.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Supported expense/income categories.

    Income categories double as funding-source names when an income
    record does not name an explicit destination.
    """
    GROCERIES = "Groceries"
    VEGETABLES_FRUITS = "Vegetables/Fruits"
    MILK_DAIRY = "Milk & Dairy"
    DINING_OUT = "Dining Out"
    FUEL = "Fuel"
    MAINTENANCE = "Maintenance"
    SERVICE = "Service"
    INSURANCE = "Insurance"
    TOLL = "Toll"
    RENT = "Rent"
    EMI = "EMI"
    BILLS = "Bills (Elec/Water)"
    MEDICAL = "Medical"
    SHOPPING = "Shopping"
    SALARY = "Salary"
    SAVINGS = "Savings"
    BUSINESS = "Business"
    GIFT = "Gift"
    OTHER = "Other"


VEHICLE_CATEGORIES = frozenset({
    Category.FUEL,
    Category.MAINTENANCE,
    Category.SERVICE,
    Category.INSURANCE,
    Category.TOLL,
})

INCOME_CATEGORIES = frozenset({
    Category.SALARY,
    Category.SAVINGS,
    Category.BUSINESS,
    Category.GIFT,
})


class EntryDirection(str, Enum):
    """Whether an expense record takes money out or brings it in."""
    EXPENSE = "expense"
    INCOME = "income"


class LoanDirection(str, Enum):
    """
    Who owes whom.

    TAKEN: the user borrowed and is the debtor.
    GIVEN: the user lent and is the creditor.
    """
    TAKEN = "taken"
    GIVEN = "given"


class FuelStatus(str, Enum):
    """Tank state at the time of an odometer reading."""
    MAIN = "Main"
    RESERVE = "Reserve"


class RecordKind(str, Enum):
    """Tag for the three record collections."""
    EXPENSE = "expense"
    ODOMETER = "odometer"
    LOAN = "loan"


def quantize(value: Decimal, places: str) -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


# =============================================================================
# RECORDS
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    An expense or income entry.

    Fuel entries may carry the price per litre and the litres filled.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="Creation instant, used to order entries sharing a date"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
    )
    category: Category
    direction: EntryDirection = EntryDirection.EXPENSE
    funding_source: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Source debited by an expense, or credited by an income"
    )
    note: str = Field(default="", max_length=500)
    fuel_price: Optional[Decimal] = Field(default=None, gt=0)
    fuel_volume: Optional[Decimal] = Field(default=None, ge=0)

    @model_validator(mode='after')
    def validate_fields(self) -> 'ExpenseRecord':
        """Enforce direction and category specific fields."""
        if self.direction == EntryDirection.EXPENSE and not self.funding_source:
            raise ValueError("Funding source is required for expenses")

        if self.category != Category.FUEL and (
            self.fuel_price is not None or self.fuel_volume is not None
        ):
            raise ValueError("Fuel price and volume are only allowed for Fuel entries")

        return self

    @property
    def kind(self) -> RecordKind:
        return RecordKind.EXPENSE

    @property
    def is_expense(self) -> bool:
        return self.direction == EntryDirection.EXPENSE

    @property
    def credit_source(self) -> str:
        """Source an income entry credits: explicit destination, else its category."""
        return self.funding_source or self.category.value

    @property
    def effective_fuel_volume(self) -> Optional[Decimal]:
        """
        Litres filled.

        The stored volume wins. Otherwise it is derived as amount / price.
        """
        if self.category != Category.FUEL:
            return None
        if self.fuel_volume is not None:
            return self.fuel_volume
        if self.fuel_price:
            return quantize(self.amount / self.fuel_price, "0.01")
        return None


class OdometerRecord(BaseModel):
    """A single odometer reading."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    odometer: Decimal = Field(..., ge=0)
    fuel_status: Optional[FuelStatus] = None

    @property
    def kind(self) -> RecordKind:
        return RecordKind.ODOMETER


class Repayment(BaseModel):
    """A repayment against a loan. Repayments are append-only."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    date: date
    note: str = Field(default="", max_length=500)
    funding_source: Optional[str] = Field(default=None, max_length=100)


class LoanRecord(BaseModel):
    """
    Money borrowed from or lent to someone.

    A loan is settled once its repayments meet or exceed the principal.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    due_date: Optional[date] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    direction: LoanDirection
    counterparty_name: str = Field(..., min_length=1, max_length=200)
    principal: Decimal = Field(..., gt=0, decimal_places=2)
    funding_source: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Source the lent money was drawn from"
    )
    note: str = Field(default="", max_length=500)
    repayments: tuple[Repayment, ...] = ()

    @model_validator(mode='after')
    def validate_fields(self) -> 'LoanRecord':
        if self.direction == LoanDirection.GIVEN and not self.funding_source:
            raise ValueError("Funding source is required when lending money")

        if self.due_date and self.due_date < self.date:
            raise ValueError("Due date cannot be before loan date")

        return self

    @property
    def kind(self) -> RecordKind:
        return RecordKind.LOAN

    @property
    def total_paid(self) -> Decimal:
        return sum((r.amount for r in self.repayments), Decimal("0"))

    @property
    def balance(self) -> Decimal:
        return self.principal - self.total_paid

    @property
    def remaining(self) -> Decimal:
        """Balance floored at zero."""
        return max(self.balance, Decimal("0"))

    @property
    def is_settled(self) -> bool:
        return self.balance <= 0

    @property
    def progress_percent(self) -> Decimal:
        progress = self.total_paid / self.principal * 100
        return min(Decimal("100"), quantize(progress, "0.1"))

    @property
    def status_label(self) -> str:
        return "Settled" if self.is_settled else "Open"

    def with_repayment(self, repayment: Repayment) -> 'LoanRecord':
        """Return a copy of this loan with the repayment appended."""
        return self.model_copy(
            update={"repayments": self.repayments + (repayment,)}
        )


LedgerRecord = Union[ExpenseRecord, OdometerRecord, LoanRecord]


class LedgerSnapshot(BaseModel):
    """
    Point-in-time copy of all three collections.

    This is the only input the ledger core needs.
    """
    model_config = ConfigDict(frozen=True)

    expenses: tuple[ExpenseRecord, ...] = ()
    odometer_readings: tuple[OdometerRecord, ...] = ()
    loans: tuple[LoanRecord, ...] = ()

    def find_loan(self, loan_id: UUID) -> Optional[LoanRecord]:
        return next((loan for loan in self.loans if loan.id == loan_id), None)

    def without(self, record_id: UUID) -> 'LedgerSnapshot':
        """Snapshot minus one record (used when re-validating an edit)."""
        return LedgerSnapshot(
            expenses=tuple(e for e in self.expenses if e.id != record_id),
            odometer_readings=tuple(
                o for o in self.odometer_readings if o.id != record_id
            ),
            loans=tuple(loan for loan in self.loans if loan.id != record_id),
        )


# =============================================================================
# FORMS - typed input per record kind
# =============================================================================

class ExpenseForm(BaseModel):
    """
    Submitted expense/income entry.

    Fuel entries may also carry the odometer reading and tank status at
    the pump, which become a separate odometer record once saved.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: date
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    category: Category
    direction: EntryDirection = EntryDirection.EXPENSE
    funding_source: Optional[str] = None
    note: str = ""
    fuel_price: Optional[Decimal] = Field(default=None, gt=0)
    fuel_volume: Optional[Decimal] = Field(default=None, ge=0)
    linked_odometer: Optional[Decimal] = Field(default=None, ge=0)
    fuel_status: Optional[FuelStatus] = None

    def to_record(
        self,
        record_id: Optional[UUID] = None,
        timestamp: Optional[datetime] = None,
    ) -> ExpenseRecord:
        is_fuel = self.category == Category.FUEL
        return ExpenseRecord(
            id=record_id or uuid4(),
            date=self.date,
            timestamp=timestamp or datetime.utcnow(),
            amount=self.amount,
            category=self.category,
            direction=self.direction,
            funding_source=self.funding_source or None,
            note=self.note,
            fuel_price=self.fuel_price if is_fuel else None,
            fuel_volume=self.fuel_volume if is_fuel else None,
        )


class OdometerForm(BaseModel):
    """Submitted odometer reading."""

    date: date
    odometer: Decimal = Field(..., ge=0)
    fuel_status: Optional[FuelStatus] = FuelStatus.MAIN

    def to_record(
        self,
        record_id: Optional[UUID] = None,
        timestamp: Optional[datetime] = None,
    ) -> OdometerRecord:
        return OdometerRecord(
            id=record_id or uuid4(),
            date=self.date,
            timestamp=timestamp or datetime.utcnow(),
            odometer=self.odometer,
            fuel_status=self.fuel_status,
        )


class LoanForm(BaseModel):
    """Submitted loan."""
    model_config = ConfigDict(str_strip_whitespace=True)

    direction: LoanDirection = LoanDirection.TAKEN
    counterparty_name: str = ""
    principal: Decimal = Field(..., ge=0, decimal_places=2)
    date: date
    due_date: Optional[date] = None
    funding_source: Optional[str] = None
    note: str = ""

    def to_record(
        self,
        record_id: Optional[UUID] = None,
        timestamp: Optional[datetime] = None,
        repayments: tuple[Repayment, ...] = (),
    ) -> LoanRecord:
        return LoanRecord(
            id=record_id or uuid4(),
            date=self.date,
            due_date=self.due_date,
            timestamp=timestamp or datetime.utcnow(),
            direction=self.direction,
            counterparty_name=self.counterparty_name,
            principal=self.principal,
            funding_source=self.funding_source or None,
            note=self.note,
            repayments=repayments,
        )


class RepaymentForm(BaseModel):
    """Submitted repayment against an existing loan."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., ge=0, decimal_places=2)
    date: date
    note: str = ""
    funding_source: Optional[str] = None

    def to_repayment(self) -> Repayment:
        return Repayment(
            amount=self.amount,
            date=self.date,
            note=self.note,
            funding_source=self.funding_source or None,
        )
