"""
Ledger Error Hierarchy

Every failure the ledger reports upward is one of these.

- ValidationError is raised locally, BEFORE any backend call, so an invalid
  record is never partially written.
- NotFoundError and TransportError originate from the backend and are
  surfaced unchanged in meaning.
- Nothing is retried here. Retry policy belongs above the store.
"""

from typing import Optional


class LedgerError(Exception):
    """Base error with a stable machine-readable code."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """
    Bad name, value, category, timestamp, month or amount.

    Carries the full list of issues found, so a caller can show every
    problem at once instead of one per round trip.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, issues: Optional[list] = None):
        super().__init__(message)
        self.issues = list(issues or [])


class InvalidCategoryError(ValidationError):
    """Category value is not a member of the closed category set."""

    code = "INVALID_CATEGORY"


class NotFoundError(LedgerError):
    """The referenced item id does not belong to a live item."""

    code = "NOT_FOUND"

    def __init__(self, item_id, message: Optional[str] = None):
        self.item_id = item_id
        super().__init__(message or f"Item not found: {item_id}")


class TransportError(LedgerError):
    """Backend unreachable, timed out, or returned an unexpected shape."""

    code = "TRANSPORT_ERROR"


class PartialImportError(TransportError):
    """An import failed midway and some written items could not be removed."""

    code = "PARTIAL_IMPORT"

    def __init__(self, message: str, item_ids: list[int]):
        super().__init__(message)
        self.item_ids = list(item_ids)


class UnsupportedOperationError(LedgerError):
    """The configured backend does not offer an optional capability."""

    code = "UNSUPPORTED_OPERATION"
