"""
Audit Models for the Ledger

Every mutation of the ledger, and every write the store refuses, produces
an audit event. Events are written to the structured log so the history of
an item can be reconstructed from it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Item lifecycle
    ITEM_ADDED = "item_added"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"
    ITEMS_IMPORTED = "items_imported"

    # Rejected writes
    VALIDATION_FAILED = "validation_failed"

    # Budgets
    BUDGET_SET = "budget_set"

    # Backend failures
    BACKEND_ERROR = "backend_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    ``entity_id`` is the ledger item id where the event concerns one item.
    ``correlation_id`` ties together the events of one caller action
    (for example all items of a single import).
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'item', 'budget')"
    )
    entity_id: Optional[str] = None
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


# Names and amounts are user input of any length; descriptions are bounded.
DESCRIPTION_NAME_LIMIT = 120


def _clip(text: str, limit: int = DESCRIPTION_NAME_LIMIT) -> str:
    return text if len(text) <= limit else text[:limit - 3] + "..."


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.item_added(item_id, name, value, category)
        event = AuditEventBuilder.item_deleted(item_id)
    """

    @staticmethod
    def item_added(
        item_id: int,
        name: str,
        value: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_ADDED,
            entity_type="item",
            entity_id=str(item_id),
            correlation_id=correlation_id,
            description=f"Item added: {_clip(name)} ({category}) {_clip(value, 60)}",
            details={"name": name, "value": value, "category": category},
        )

    @staticmethod
    def item_updated(
        item_id: int,
        name: str,
        value: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_UPDATED,
            entity_type="item",
            entity_id=str(item_id),
            correlation_id=correlation_id,
            description=f"Item updated: {_clip(name)} ({category}) {_clip(value, 60)}",
            details={"name": name, "value": value, "category": category},
        )

    @staticmethod
    def item_deleted(
        item_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_DELETED,
            entity_type="item",
            entity_id=str(item_id),
            correlation_id=correlation_id,
            description=f"Item deleted: {item_id}",
        )

    @staticmethod
    def items_imported(
        item_ids: list[int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEMS_IMPORTED,
            entity_type="item",
            correlation_id=correlation_id,
            description=f"Imported {len(item_ids)} items",
            details={"item_ids": item_ids},
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="item",
            correlation_id=correlation_id,
            description=f"{operation} rejected with {len(issues)} issues",
            details={"operation": operation, "issues": issues},
        )

    @staticmethod
    def budget_set(
        month: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            entity_type="budget",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Budget for {month} set to {amount}",
            details={"month": month, "amount": amount},
        )

    @staticmethod
    def backend_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKEND_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Backend error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
