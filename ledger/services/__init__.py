"""Services package."""

from ledger.services.storage import (
    BudgetBackend,
    BulkItemBackend,
    GoogleSheetsClient,
    GoogleSheetsItemBackend,
    HttpItemBackend,
    InMemoryItemBackend,
    InvocationItemBackend,
    ItemBackend,
    SQLiteItemBackend,
)

__all__ = [
    "BudgetBackend",
    "BulkItemBackend",
    "GoogleSheetsClient",
    "GoogleSheetsItemBackend",
    "HttpItemBackend",
    "InMemoryItemBackend",
    "InvocationItemBackend",
    "ItemBackend",
    "SQLiteItemBackend",
]
