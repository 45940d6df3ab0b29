"""Ledger computation package."""

from vyaya.ledger.aggregator import compute_stats, derive_trip_distances
from vyaya.ledger.balances import (
    compute_source_balances,
    release_principal,
    validate_outflow,
    validate_repayment,
)
from vyaya.ledger.fuel_link import build_linked_odometer_record
from vyaya.ledger.history import DEFAULT_PAGE_SIZE, build_history

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "build_history",
    "build_linked_odometer_record",
    "compute_source_balances",
    "compute_stats",
    "derive_trip_distances",
    "release_principal",
    "validate_outflow",
    "validate_repayment",
]
