"""
Summary Aggregation

DESIGN DECISION: Summaries are DERIVED, never stored.
They are recomputed from the current item set on every call, so they can
never drift from the items themselves.

GUARANTEES:
- Every item contributes to exactly one group (no double counting, no omission)
- Sums use Decimal accumulators (no float drift across many small values)
- Output is ordered ascending by key, so repeated calls on the same items
  return identical results
"""

from decimal import Decimal
from typing import Callable, Iterable, Optional

from ledger import dates
from ledger.models.item import Category, DailySummary, Item, MonthlySummary

ZERO = Decimal("0")


def day_key(item: Item) -> str:
    """Bucketing key at day granularity."""
    return dates.normalize(item.created_at)


def month_key(item: Item) -> str:
    """
    Bucketing key at month granularity (YYYY-MM).

    A day key that is not a real date (the normalizer's lenient fallback)
    is used as-is rather than guessed at.
    """
    key = day_key(item)
    if dates.is_date_key(key):
        return key[:7]
    return key


def _group(
    items: Iterable[Item],
    key_func: Callable[[Item], str],
    by_category: bool,
) -> list[tuple[str, Decimal, Optional[dict[Category, Decimal]]]]:
    totals: dict[str, Decimal] = {}
    subtotals: dict[str, dict[Category, Decimal]] = {}

    for item in items:
        key = key_func(item)
        totals[key] = totals.get(key, ZERO) + item.value
        if by_category:
            bucket = subtotals.setdefault(key, {})
            bucket[item.category] = bucket.get(item.category, ZERO) + item.value

    groups = []
    for key in sorted(totals):
        breakdown = None
        if by_category:
            # Declaration order of the enum, not insertion order
            breakdown = {
                category: subtotals[key][category]
                for category in Category
                if category in subtotals[key]
            }
        groups.append((key, totals[key], breakdown))
    return groups


def daily_summaries(
    items: Iterable[Item],
    by_category: bool = False,
) -> list[DailySummary]:
    """
    Total value per day, oldest day first.

    Args:
        items: Items to aggregate
        by_category: Also compute per-category subtotals for each day

    Returns:
        One DailySummary per distinct day; empty list for no items
    """
    return [
        DailySummary(date=key, total=total, by_category=breakdown)
        for key, total, breakdown in _group(items, day_key, by_category)
    ]


def monthly_summaries(
    items: Iterable[Item],
    by_category: bool = False,
    budgets: Optional[dict[str, Decimal]] = None,
) -> list[MonthlySummary]:
    """
    Total value per month, oldest month first.

    Args:
        items: Items to aggregate
        by_category: Also compute per-category subtotals for each month
        budgets: Optional YYYY-MM -> budget amount, attached to matching months

    Returns:
        One MonthlySummary per distinct month; empty list for no items
    """
    budgets = budgets or {}
    return [
        MonthlySummary(
            month=key,
            total=total,
            by_category=breakdown,
            budget=budgets.get(key),
        )
        for key, total, breakdown in _group(items, month_key, by_category)
    ]
