"""
Abstract Item Backend Interface

DESIGN DECISION: The store talks to exactly one abstract interface,
whatever the transport. This allows us to:
1. Run the same store over REST, local invocation, SQLite or Sheets
2. Use in-memory storage for testing
3. Keep ledger rules decoupled from wire formats

Field SEMANTICS are authoritative, not wire naming. Adapters translate
their wire names (``type``, ``item_type``) to the raw record keys below.

A raw record is a dict with keys: id, name, value, category, created_at.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

from ledger.models.item import Category, ItemDraft


class ItemBackend(ABC):
    """
    Abstract interface for item persistence.

    Implementations own id allocation. They raise NotFoundError for ids
    that do not reference a live item and TransportError when the
    underlying storage cannot be reached or answers with garbage.
    """

    @abstractmethod
    async def list_items(self) -> list[dict[str, Any]]:
        """
        Fetch every live item as a raw record.

        Order must be stable for a given backend state.
        """
        pass

    @abstractmethod
    async def add_item(
        self,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> int:
        """
        Persist a new item.

        Returns:
            The id the backend assigned
        """
        pass

    @abstractmethod
    async def update_item(
        self,
        item_id: int,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> None:
        """
        Replace every field of an existing item.

        Raises:
            NotFoundError: If item_id is not a live item
        """
        pass

    @abstractmethod
    async def delete_item(self, item_id: int) -> None:
        """
        Delete an item.

        Raises:
            NotFoundError: If item_id is not a live item (including an
                item that was already deleted)
        """
        pass

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None


class BulkItemBackend(ItemBackend):
    """
    Optional capability: insert many items as one unit.

    Either every item is written or none is.
    """

    @abstractmethod
    async def add_items(self, drafts: list[ItemDraft]) -> list[int]:
        """
        Persist validated drafts together.

        Returns:
            The assigned ids, in draft order
        """
        pass


class BudgetBackend(ABC):
    """
    Optional capability: per-month spending budgets.

    Backends that can store budgets implement this alongside ItemBackend.
    """

    @abstractmethod
    async def get_monthly_budget(self, month: str) -> Optional[Decimal]:
        """
        Budget for a YYYY-MM month.

        Returns:
            The amount, or None if no budget is set for that month
        """
        pass

    @abstractmethod
    async def set_monthly_budget(self, month: str, amount: Decimal) -> None:
        """Create or replace the budget for a YYYY-MM month."""
        pass
