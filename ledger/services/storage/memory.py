"""
In-Memory Backend

Process-local storage for tests and throwaway sessions. Ids come from a
counter that only moves forward, so a deleted id is never handed out again.
"""

from decimal import Decimal
from typing import Any, Optional

from ledger.errors import NotFoundError
from ledger.models.item import Category, ItemDraft
from ledger.services.storage.interface import BudgetBackend, BulkItemBackend


class InMemoryItemBackend(BulkItemBackend, BudgetBackend):
    """Dict-backed item and budget storage."""

    def __init__(self):
        self._items: dict[int, dict[str, Any]] = {}
        self._budgets: dict[str, Decimal] = {}
        self._next_id = 1

    async def list_items(self) -> list[dict[str, Any]]:
        # Insertion order is id order
        return [dict(record) for record in self._items.values()]

    async def add_item(
        self,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> int:
        item_id = self._next_id
        self._next_id += 1
        self._items[item_id] = {
            "id": item_id,
            "name": name,
            "value": value,
            "category": category.value,
            "created_at": created_at,
        }
        return item_id

    async def add_items(self, drafts: list[ItemDraft]) -> list[int]:
        return [
            await self.add_item(draft.name, draft.value, draft.category, draft.created_at)
            for draft in drafts
        ]

    async def update_item(
        self,
        item_id: int,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> None:
        if item_id not in self._items:
            raise NotFoundError(item_id)
        self._items[item_id] = {
            "id": item_id,
            "name": name,
            "value": value,
            "category": category.value,
            "created_at": created_at,
        }

    async def delete_item(self, item_id: int) -> None:
        if self._items.pop(item_id, None) is None:
            raise NotFoundError(item_id)

    async def get_monthly_budget(self, month: str) -> Optional[Decimal]:
        return self._budgets.get(month)

    async def set_monthly_budget(self, month: str, amount: Decimal) -> None:
        self._budgets[month] = amount
