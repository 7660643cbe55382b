"""
Storage Services Package

Provides the abstract item backend and its concrete bindings. The store only
ever sees ItemBackend; which binding sits behind it is configuration.
"""

from ledger.services.storage.interface import (
    BudgetBackend,
    BulkItemBackend,
    ItemBackend,
)
from ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsItemBackend,
)
from ledger.services.storage.http import HttpItemBackend
from ledger.services.storage.invocation import InvocationItemBackend
from ledger.services.storage.memory import InMemoryItemBackend
from ledger.services.storage.sqlite import SQLiteItemBackend

__all__ = [
    # Interfaces
    "BudgetBackend",
    "BulkItemBackend",
    "ItemBackend",
    # Bindings
    "GoogleSheetsClient",
    "GoogleSheetsItemBackend",
    "HttpItemBackend",
    "InMemoryItemBackend",
    "InvocationItemBackend",
    "SQLiteItemBackend",
]
