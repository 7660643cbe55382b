"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged as a structured
event, and so is every write the store refused. The log is the history:
what was added, changed or removed, and when.

The audit logger:
- Is async so it can sit in the store's call path without blocking it
- Never raises; a logging failure must not fail a ledger write
- Supports correlation IDs to tie together the events of one caller action
"""

import logging
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO", json: bool = True) -> None:
    """Configure stdlib logging and structlog once at startup."""
    logging.basicConfig(format="%(message)s", level=level.upper())

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """Central audit logging service for ledger events."""

    def __init__(self, logger_name: str = "ledger.audit"):
        self._logger = structlog.get_logger(logger_name)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event at its severity.

        Returns False if the event could not be written.
        """
        try:
            log_dict = event.to_log_dict()
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except (OSError, ValueError, TypeError):
            return False
        return True

    async def _log_built(self, build: Callable[..., AuditEvent], **fields) -> bool:
        """Build an event and log it; an event that fails to build is dropped."""
        try:
            event = build(**fields)
        except (ValueError, TypeError) as e:
            self._logger.error("audit_event_invalid", builder=build.__name__, error=str(e))
            return False
        return await self.log(event)

    async def log_item_added(
        self,
        item_id: int,
        name: str,
        value: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.item_added,
            item_id=item_id,
            name=name,
            value=value,
            category=category,
            correlation_id=correlation_id,
        )

    async def log_item_updated(
        self,
        item_id: int,
        name: str,
        value: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.item_updated,
            item_id=item_id,
            name=name,
            value=value,
            category=category,
            correlation_id=correlation_id,
        )

    async def log_item_deleted(
        self,
        item_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.item_deleted,
            item_id=item_id,
            correlation_id=correlation_id,
        )

    async def log_items_imported(
        self,
        item_ids: list[int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.items_imported,
            item_ids=item_ids,
            correlation_id=correlation_id,
        )

    async def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.validation_failed,
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        )

    async def log_budget_set(
        self,
        month: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.budget_set,
            month=month,
            amount=amount,
            correlation_id=correlation_id,
        )

    async def log_backend_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.backend_error,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a caller action (e.g., an import) and pass it
    through all subsequent operations.
    """
    return uuid4()
