"""
Core Data Models for the Ledger

These models define the schemas for everything that flows between the
store, the backends and the aggregation engine.

DESIGN DECISION: Categories are a closed enum, not free text.
Every stored item must carry one of these codes. Adding a category is a
code change and a new release, never a data migration.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Supported ledger categories.

    The value is the stored code. ``label`` is the fixed one-character
    display label shown next to an entry.
    """
    FOOD = "Food"
    DRINK = "Drink"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    STUDY = "Study"
    TRANSPORT = "Transport"
    SERVICE = "Service"
    CLOTHES = "Clothes"
    HOUSING = "Housing"
    OTHER = "Other"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    Category.FOOD: "饭",
    Category.DRINK: "饮",
    Category.SHOPPING: "购",
    Category.ENTERTAINMENT: "娱",
    Category.STUDY: "学",
    Category.TRANSPORT: "行",
    Category.SERVICE: "充",
    Category.CLOTHES: "衣",
    Category.HOUSING: "住",
    Category.OTHER: "别",
}


# =============================================================================
# ITEM MODELS
# =============================================================================

class ItemDraft(BaseModel):
    """
    A validated set of item fields, ready to hand to a backend.

    Produced only by ItemValidator. ``created_at`` keeps its full
    precision here; it is the backend's job to store it as given.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(..., min_length=1, description="Display label")
    value: Decimal = Field(..., description="Signed amount")
    category: Category
    created_at: str = Field(..., min_length=1, description="Full timestamp")


class Item(BaseModel):
    """
    A ledger entry as returned by the store.

    ``id`` is assigned by the backend on creation and never changes.
    ``created_at`` is already normalized to day granularity.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(..., description="Backend-assigned identifier")
    name: str = Field(..., min_length=1)
    value: Decimal
    category: Category
    created_at: str


class MonthlyBudget(BaseModel):
    """Spending budget for one calendar month."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$", description="YYYY-MM")
    amount: Decimal


# =============================================================================
# SUMMARY MODELS (derived, never persisted)
# =============================================================================

class DailySummary(BaseModel):
    """Total of all items whose normalized created_at equals ``date``."""

    date: str
    total: Decimal
    by_category: Optional[dict[Category, Decimal]] = None


class MonthlySummary(BaseModel):
    """Total of all items created in ``month`` (YYYY-MM)."""

    month: str
    total: Decimal
    by_category: Optional[dict[Category, Decimal]] = None
    budget: Optional[Decimal] = None

    @property
    def remaining(self) -> Optional[Decimal]:
        """Budget left for the month, or None when no budget is set."""
        if self.budget is None:
            return None
        return self.budget - self.total


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found while validating item fields."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'invalid_category')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
