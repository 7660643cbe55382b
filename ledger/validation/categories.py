"""
Category Registry

The single canonical check for category values. Matching is exact:
no case folding, no trimming, no fallback to Category.OTHER.
"""

from typing import Any

from ledger.errors import InvalidCategoryError
from ledger.models.item import Category, ValidationIssue

CODES = frozenset(category.value for category in Category)


def is_valid(code: Any) -> bool:
    """True if ``code`` is exactly one of the stored category codes."""
    if isinstance(code, Category):
        return True
    return isinstance(code, str) and code in CODES


def normalize(raw: Any) -> Category:
    """
    Map a raw category value onto the closed set.

    Raises:
        InvalidCategoryError: If the value is not a stored code.
    """
    if not is_valid(raw):
        issue = ValidationIssue(
            field="category",
            issue_type="invalid_category",
            message=f"Unknown category: {raw!r}. Allowed: {sorted(CODES)}",
        )
        raise InvalidCategoryError(issue.message, [issue])
    return Category(raw)


_CODES_BY_LABEL = {category.label: category.value for category in Category}


def to_wire(category: Category) -> str:
    """The one-character label the desktop client stores and sends."""
    return category.label


def from_wire(raw: Any) -> Any:
    """
    Translate a stored or transmitted label back to its category code.

    Codes pass through, and so does anything unrecognized; ``normalize``
    still decides what is valid.
    """
    if isinstance(raw, str) and raw in _CODES_BY_LABEL:
        return _CODES_BY_LABEL[raw]
    return raw
