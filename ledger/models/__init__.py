"""
Data Models Package

This package contains all Pydantic models used by the ledger.
All data flowing between the store and its backends conforms to these schemas.
"""

from ledger.models.item import (
    Category,
    DailySummary,
    Item,
    ItemDraft,
    MonthlyBudget,
    MonthlySummary,
    ValidationIssue,
)
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Item models
    "Category",
    "DailySummary",
    "Item",
    "ItemDraft",
    "MonthlyBudget",
    "MonthlySummary",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
