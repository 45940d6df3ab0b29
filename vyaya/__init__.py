"""
Vyaya - Source Package

A personal finance and vehicle-expense ledger for one household:
expenses and income drawn from named funding sources, odometer readings,
and loans with their repayments.

DESIGN PRINCIPLES:
1. Every figure is recomputed from the stored records
2. Fail early, fail visibly
3. No silent corrections
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "0.1.0"
__author__ = "Vyaya Team"
