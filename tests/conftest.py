"""Shared record builders for the test suite."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from vyaya.config import AppSettings
from vyaya.models import (
    Category,
    EntryDirection,
    ExpenseRecord,
    FuelStatus,
    LoanDirection,
    LoanRecord,
    OdometerRecord,
    Repayment,
)


def make_expense(
    amount="100",
    category=Category.GROCERIES,
    on=date(2024, 1, 5),
    source="Salary",
    direction=EntryDirection.EXPENSE,
    timestamp=None,
    **extra,
) -> ExpenseRecord:
    return ExpenseRecord(
        date=on,
        timestamp=timestamp or datetime(on.year, on.month, on.day, 12, 0),
        amount=Decimal(amount),
        category=category,
        direction=direction,
        funding_source=source,
        **extra,
    )


def make_income(amount="5000", category=Category.SALARY, on=date(2024, 1, 1), source=None, **extra):
    return make_expense(
        amount=amount,
        category=category,
        on=on,
        source=source,
        direction=EntryDirection.INCOME,
        **extra,
    )


def make_reading(odometer, on=date(2024, 1, 1), status=FuelStatus.MAIN, timestamp=None) -> OdometerRecord:
    return OdometerRecord(
        date=on,
        timestamp=timestamp or datetime(on.year, on.month, on.day, 12, 0),
        odometer=Decimal(str(odometer)),
        fuel_status=status,
    )


def make_loan(
    principal="1000",
    direction=LoanDirection.TAKEN,
    repayments=(),
    on=date(2024, 1, 1),
    source=None,
    name="Ravi",
    timestamp=None,
) -> LoanRecord:
    return LoanRecord(
        date=on,
        timestamp=timestamp or datetime(on.year, on.month, on.day, 12, 0),
        direction=direction,
        counterparty_name=name,
        principal=Decimal(principal),
        funding_source=source,
        repayments=tuple(
            Repayment(amount=Decimal(amount), date=on, funding_source=repay_source)
            for amount, repay_source in (
                r if isinstance(r, tuple) else (r, None) for r in repayments
            )
        ),
    )


@pytest.fixture
def app_settings() -> AppSettings:
    """Settings with the defaults, independent of any local .env file."""
    return AppSettings(
        _env_file=None,
        currency_symbol="₹",
        credit_taken_loans=False,
        reject_odometer_regression=True,
        max_amount=1000000.0,
        future_date_tolerance_days=1,
        fuel_volume_tolerance=0.05,
        history_page_size=20,
        history_date_format="%d %b %Y",
    )
