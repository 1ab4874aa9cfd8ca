"""
Violation mapping and the shared violation ledger.
"""

from .mapper import (
    CLASS_TO_VIOLATION,
    PlateReader,
    RandomPlateReader,
    ViolationMapper,
    violation_type_for,
)
from .ledger import ViolationLedger, DEFAULT_CAPACITY

__all__ = [
    "CLASS_TO_VIOLATION",
    "PlateReader",
    "RandomPlateReader",
    "ViolationMapper",
    "violation_type_for",
    "ViolationLedger",
    "DEFAULT_CAPACITY",
]
