"""Validation package."""

from ledger.validation.categories import is_valid, normalize
from ledger.validation.validator import ItemValidator, to_decimal

__all__ = [
    "ItemValidator",
    "is_valid",
    "normalize",
    "to_decimal",
]
