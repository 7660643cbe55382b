"""
SQLite Backend

Embedded single-file storage, schema-compatible with the account book
database used by the desktop client: an ``items`` table and a
``monthly_budgets`` table keyed by a unique YYYY-MM month.

TRADEOFFS:
- Amounts are REAL columns (kept for compatibility with existing files);
  values are read back through ``str`` so short decimals survive intact.
  A REAL holds about 15 significant digits; longer amounts are rounded
- Categories are stored as their one-character labels, as the desktop
  client writes them. Rows holding the English code are read too
- One connection guarded by a lock; concurrent callers are serialized
"""

import sqlite3
import threading
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import structlog

from ledger.errors import NotFoundError, TransportError
from ledger.models.item import Category, ItemDraft
from ledger.services.storage.interface import BudgetBackend, BulkItemBackend
from ledger.validation import categories

logger = structlog.get_logger(__name__)

SCHEMA = (
    """CREATE TABLE IF NOT EXISTS items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        value REAL NOT NULL,
        type TEXT NOT NULL,
        created_at TEXT NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS monthly_budgets (
        id INTEGER PRIMARY KEY,
        month TEXT NOT NULL UNIQUE,
        budget_amount REAL NOT NULL
    )""",
)

INSERT_ITEM = "INSERT INTO items (name, value, type, created_at) VALUES (?, ?, ?, ?)"


class SQLiteItemBackend(BulkItemBackend, BudgetBackend):
    """
    SQLite implementation of item and budget storage.

    The ``type`` column holds the category label.
    """

    def __init__(self, path: str = ".account_book.db"):
        self._path = path
        self._lock = threading.Lock()
        try:
            if path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(path, check_same_thread=False)
            with self._conn:
                for statement in SCHEMA:
                    self._conn.execute(statement)
        except (sqlite3.Error, OSError) as e:
            raise TransportError(f"Failed to open database {path}: {e}")

    def _execute(self, operation: str, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                with self._conn:
                    return self._conn.execute(sql, params)
            except sqlite3.Error as e:
                logger.error("sqlite_error", operation=operation, error=str(e))
                raise TransportError(f"Failed to {operation}: {e}")

    def _fetch(self, operation: str, sql: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.error("sqlite_error", operation=operation, error=str(e))
                raise TransportError(f"Failed to {operation}: {e}")

    async def list_items(self) -> list[dict[str, Any]]:
        rows = self._fetch(
            "list items",
            "SELECT id, name, value, type, created_at FROM items "
            "ORDER BY created_at DESC, id DESC",
        )
        return [
            {
                "id": row[0],
                "name": row[1],
                "value": row[2],
                "category": categories.from_wire(row[3]),
                "created_at": row[4],
            }
            for row in rows
        ]

    async def add_item(
        self,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> int:
        cursor = self._execute(
            "add item",
            INSERT_ITEM,
            (name, float(value), categories.to_wire(category), created_at),
        )
        return cursor.lastrowid

    async def add_items(self, drafts: list[ItemDraft]) -> list[int]:
        """Insert every draft in one transaction; a failure writes none."""
        with self._lock:
            try:
                with self._conn:
                    return [
                        self._conn.execute(INSERT_ITEM, (
                            draft.name,
                            float(draft.value),
                            categories.to_wire(draft.category),
                            draft.created_at,
                        )).lastrowid
                        for draft in drafts
                    ]
            except sqlite3.Error as e:
                logger.error("sqlite_error", operation="import items", error=str(e))
                raise TransportError(f"Failed to import items: {e}")

    async def update_item(
        self,
        item_id: int,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> None:
        cursor = self._execute(
            "update item",
            "UPDATE items SET name = ?, value = ?, type = ?, created_at = ? WHERE id = ?",
            (name, float(value), categories.to_wire(category), created_at, item_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(item_id)

    async def delete_item(self, item_id: int) -> None:
        cursor = self._execute(
            "delete item",
            "DELETE FROM items WHERE id = ?",
            (item_id,),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(item_id)

    async def get_monthly_budget(self, month: str) -> Optional[Decimal]:
        rows = self._fetch(
            "get budget",
            "SELECT budget_amount FROM monthly_budgets WHERE month = ?",
            (month,),
        )
        if not rows:
            return None
        return Decimal(str(rows[0][0]))

    async def set_monthly_budget(self, month: str, amount: Decimal) -> None:
        # UNIQUE(month) turns this into an upsert
        self._execute(
            "set budget",
            "INSERT OR REPLACE INTO monthly_budgets (month, budget_amount) VALUES (?, ?)",
            (month, float(amount)),
        )

    async def close(self) -> None:
        with self._lock:
            self._conn.close()
