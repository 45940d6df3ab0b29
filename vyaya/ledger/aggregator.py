"""
Ledger Aggregator

DESIGN DECISION: Statistics are a pure reduction over the current snapshot.
Nothing is cached between calls and nothing is read from storage here -
the caller passes the three collections in and gets a fresh Stats back.

Given the same snapshot and the same `now`, the result is always identical.
"""

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Union
from uuid import UUID

from vyaya.models.ledger import ZERO, Stats
from vyaya.models.records import (
    VEHICLE_CATEGORIES,
    Category,
    ExpenseRecord,
    LoanDirection,
    LoanRecord,
    OdometerRecord,
    quantize,
)


def odometer_span(
    odometer_readings: Iterable[OdometerRecord],
) -> tuple[Decimal, Decimal]:
    """
    Return (current, initial) readings.

    Current is the highest reading, initial the lowest. Both are zero
    when there are no readings.
    """
    readings = sorted(
        (record.odometer for record in odometer_readings),
        reverse=True,
    )
    if not readings:
        return ZERO, ZERO
    return readings[0], readings[-1]


def derive_trip_distances(
    odometer_readings: Iterable[OdometerRecord],
) -> dict[UUID, Decimal]:
    """
    Distance covered since the previous (lower) reading, per record.

    The lowest reading has nothing before it and gets zero.
    """
    ordered = sorted(
        odometer_readings,
        key=lambda record: (record.odometer, record.date, record.timestamp),
    )
    distances: dict[UUID, Decimal] = {}
    previous = None
    for record in ordered:
        distances[record.id] = ZERO if previous is None else record.odometer - previous
        previous = record.odometer
    return distances


def vehicle_spend(expenses: Iterable[ExpenseRecord]) -> Decimal:
    return sum(
        (e.amount for e in expenses if e.category in VEHICLE_CATEGORIES),
        ZERO,
    )


def fuel_volume_total(expenses: Iterable[ExpenseRecord]) -> Decimal:
    total = ZERO
    for expense in expenses:
        if expense.category != Category.FUEL:
            continue
        volume = expense.effective_fuel_volume
        if volume:
            total += volume
    return total


def monthly_spend(
    expenses: Iterable[ExpenseRecord],
    now: Union[date, datetime],
) -> Decimal:
    """Total spent in the calendar month containing `now`."""
    return sum(
        (
            e.amount
            for e in expenses
            if e.is_expense
            and e.date.year == now.year
            and e.date.month == now.month
        ),
        ZERO,
    )


def category_totals(expenses: Iterable[ExpenseRecord]) -> dict[str, Decimal]:
    """Spend per category, in order of first appearance."""
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        if not expense.is_expense:
            continue
        key = expense.category.value
        totals[key] = totals.get(key, ZERO) + expense.amount
    return totals


def monthly_totals(expenses: Iterable[ExpenseRecord]) -> dict[str, Decimal]:
    """Spend per YYYY-MM, newest month first."""
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        if not expense.is_expense:
            continue
        key = expense.date.strftime("%Y-%m")
        totals[key] = totals.get(key, ZERO) + expense.amount
    return {key: totals[key] for key in sorted(totals, reverse=True)}


def loan_position(loans: Iterable[LoanRecord]) -> tuple[Decimal, Decimal]:
    """
    Return (owed_by_user, owed_to_user).

    Only positive balances count; settled loans contribute nothing.
    """
    owed_by_user = ZERO
    owed_to_user = ZERO
    for loan in loans:
        balance = loan.balance
        if balance <= 0:
            continue
        if loan.direction == LoanDirection.TAKEN:
            owed_by_user += balance
        else:
            owed_to_user += balance
    return owed_by_user, owed_to_user


def compute_stats(
    expenses: Iterable[ExpenseRecord],
    odometer_readings: Iterable[OdometerRecord],
    loans: Iterable[LoanRecord],
    now: Union[date, datetime],
) -> Stats:
    """
    Compute dashboard statistics from one snapshot of the three collections.

    Cost per km and average mileage are None when their divisor is zero.
    """
    expenses = list(expenses)
    odometer_readings = list(odometer_readings)

    current, initial = odometer_span(odometer_readings)
    total_distance = current - initial

    spend = vehicle_spend(expenses)
    volume = fuel_volume_total(expenses)

    cost_per_km = None
    if total_distance > 0:
        cost_per_km = quantize(spend / total_distance, "0.01")

    average_mileage = None
    if volume > 0 and total_distance > 0:
        average_mileage = quantize(total_distance / volume, "0.1")

    owed_by_user, owed_to_user = loan_position(loans)

    return Stats(
        current_odometer=current,
        initial_odometer=initial,
        total_distance=total_distance,
        needs_more_data=len(odometer_readings) == 1,
        vehicle_spend=spend,
        fuel_volume_total=volume,
        cost_per_km=cost_per_km,
        average_mileage=average_mileage,
        monthly_spend=monthly_spend(expenses, now),
        total_expense=sum((e.amount for e in expenses if e.is_expense), ZERO),
        total_income=sum((e.amount for e in expenses if not e.is_expense), ZERO),
        category_totals=category_totals(expenses),
        monthly_totals=monthly_totals(expenses),
        owed_by_user=owed_by_user,
        owed_to_user=owed_to_user,
        net_balance=owed_to_user - owed_by_user,
    )
