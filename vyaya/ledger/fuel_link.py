"""
Fuel-Link Rule

When a new Fuel entry is saved together with the odometer reading and tank
status at the pump, a companion odometer record is created for the same
date.

DESIGN DECISION: This is a cross-record write rule, so it lives here as an
explicit step the orchestrator runs AFTER the expense write succeeds.
The aggregator never creates records.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from vyaya.models.records import (
    Category,
    ExpenseRecord,
    FuelStatus,
    OdometerRecord,
)


def build_linked_odometer_record(
    expense: ExpenseRecord,
    linked_odometer: Optional[Decimal],
    fuel_status: Optional[FuelStatus],
    timestamp: Optional[datetime] = None,
) -> Optional[OdometerRecord]:
    """
    Return the odometer record a fuel entry implies, or None.

    Nothing is created unless the entry is Fuel and both the reading and
    the tank status were supplied.
    """
    if expense.category != Category.FUEL:
        return None
    if linked_odometer is None or fuel_status is None:
        return None

    return OdometerRecord(
        date=expense.date,
        timestamp=timestamp or datetime.utcnow(),
        odometer=linked_odometer,
        fuel_status=fuel_status,
    )
