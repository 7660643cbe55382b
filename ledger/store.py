"""
Item Store

This module ties the ledger together: validation in front, a backend
behind, the aggregation engine on top.

DESIGN DECISION: The store enforces the boundaries:
- Nothing reaches the backend until every field is valid
- The backend alone allocates ids; the store only forwards them
- No cache: every read reflects the backend's state at call time
- Backend failures surface as NotFoundError or TransportError, never retried
- Every change, and every refused write, is audited
"""

from datetime import timezone, tzinfo
from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, TypeVar
from uuid import UUID

from ledger import dates
from ledger.audit import AuditLogger, configure_logging, create_correlation_id
from ledger.config import Settings, get_settings
from ledger.errors import (
    LedgerError,
    NotFoundError,
    PartialImportError,
    TransportError,
    UnsupportedOperationError,
    ValidationError,
)
from ledger.models.item import (
    Category,
    DailySummary,
    Item,
    ItemDraft,
    MonthlyBudget,
    MonthlySummary,
    ValidationIssue,
)
from ledger.queries import summaries
from ledger.services.storage import (
    BudgetBackend,
    BulkItemBackend,
    GoogleSheetsClient,
    GoogleSheetsItemBackend,
    HttpItemBackend,
    InMemoryItemBackend,
    ItemBackend,
    SQLiteItemBackend,
)
from ledger.validation import ItemValidator, categories, to_decimal

T = TypeVar("T")


class ItemStore:
    """
    CRUD over ledger items plus daily and monthly summaries.

    All methods are coroutines because every binding may do I/O.
    """

    def __init__(
        self,
        backend: ItemBackend,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[ItemValidator] = None,
        tz: tzinfo = timezone.utc,
    ):
        self._backend = backend
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or ItemValidator()
        self._tz = tz

    async def __aenter__(self) -> "ItemStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._backend.close()

    def today(self) -> str:
        """Today's date in the store's reference timezone."""
        return dates.today(self._tz)

    # -------------------------------------------------------------------------
    # Backend plumbing
    # -------------------------------------------------------------------------

    async def _call(
        self,
        operation: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        correlation_id: Optional[UUID] = None,
    ) -> T:
        """Run a backend call, translating foreign failures to TransportError."""
        try:
            return await func(*args)
        except NotFoundError:
            raise
        except LedgerError as e:
            await self._audit_logger.log_backend_error(
                operation, f"{e.code}: {e.message}", correlation_id
            )
            raise
        except Exception as e:
            await self._audit_logger.log_backend_error(operation, str(e), correlation_id)
            raise TransportError(f"Backend failed during {operation}: {e}")

    @staticmethod
    def _to_item(record: Mapping[str, Any]) -> Item:
        """Build an Item from a raw backend record, normalizing created_at."""
        try:
            created_at = record["created_at"]
            if created_at is None:
                raise ValueError("created_at is missing")
            return Item(
                id=record["id"],
                name=record["name"],
                value=to_decimal(record["value"]),
                category=categories.normalize(record["category"]),
                created_at=dates.normalize(created_at),
            )
        except (KeyError, TypeError, ValueError, LedgerError) as e:
            raise TransportError(f"Backend returned a malformed item {dict(record)!r}: {e}")

    async def _validate(
        self,
        operation: str,
        name: Any,
        value: Any,
        category: Any,
        created_at: Any,
        correlation_id: Optional[UUID] = None,
    ) -> ItemDraft:
        try:
            return self._validator.validate(
                name, value, category, self._stamp(created_at)
            )
        except ValidationError as e:
            await self._audit_logger.log_validation_failed(
                operation=operation,
                issues=[issue.model_dump() for issue in e.issues],
                correlation_id=correlation_id,
            )
            raise

    def _stamp(self, created_at: Any) -> Any:
        """Default to now and move offset timestamps into the reference timezone."""
        if created_at is None or created_at == "":
            return dates.now_timestamp(self._tz)
        return dates.to_timezone(created_at, self._tz)

    @staticmethod
    def _from_draft(item_id: int, draft: ItemDraft) -> Item:
        return Item(
            id=item_id,
            name=draft.name,
            value=draft.value,
            category=draft.category,
            created_at=dates.normalize(draft.created_at),
        )

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def list_items(self) -> list[Item]:
        """
        Every live item, created_at normalized to YYYY-MM-DD.

        Order is the backend's; display ordering is the caller's business.
        """
        records = await self._call("list items", self._backend.list_items)
        if not isinstance(records, list):
            raise TransportError(f"Backend returned {type(records).__name__}, expected list")
        return [self._to_item(record) for record in records]

    async def get_item(self, item_id: int) -> Item:
        """
        Look up one item.

        Raises:
            NotFoundError: If no live item has this id
        """
        for item in await self.list_items():
            if item.id == item_id:
                return item
        raise NotFoundError(item_id)

    async def add_item(
        self,
        name: str,
        value: Any,
        category: Any,
        created_at: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> Item:
        """
        Validate and persist a new item.

        ``created_at`` defaults to now in the reference timezone.

        Returns:
            The created item, carrying the id the backend assigned

        Raises:
            InvalidCategoryError: Category not in the closed set
            ValidationError: Any other bad field; nothing is written
            TransportError: The backend failed
        """
        draft = await self._validate(
            "add item", name, value, category, created_at, correlation_id
        )
        item_id = await self._call(
            "add item",
            self._backend.add_item,
            draft.name,
            draft.value,
            draft.category,
            draft.created_at,
            correlation_id=correlation_id,
        )
        await self._audit_logger.log_item_added(
            item_id=item_id,
            name=draft.name,
            value=str(draft.value),
            category=draft.category.value,
            correlation_id=correlation_id,
        )
        return self._from_draft(item_id, draft)

    async def update_item(
        self,
        item_id: int,
        name: str,
        value: Any,
        category: Any,
        created_at: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Item:
        """
        Replace every field of an existing item. There is no partial patch.

        Raises:
            NotFoundError: If no live item has this id
            ValidationError: Bad field; nothing is written
        """
        draft = await self._validate(
            "update item", name, value, category, created_at, correlation_id
        )
        await self._call(
            "update item",
            self._backend.update_item,
            item_id,
            draft.name,
            draft.value,
            draft.category,
            draft.created_at,
            correlation_id=correlation_id,
        )
        await self._audit_logger.log_item_updated(
            item_id=item_id,
            name=draft.name,
            value=str(draft.value),
            category=draft.category.value,
            correlation_id=correlation_id,
        )
        return self._from_draft(item_id, draft)

    async def delete_item(
        self,
        item_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete an item.

        Raises:
            NotFoundError: If no live item has this id, including the
                second delete of the same id
        """
        await self._call(
            "delete item",
            self._backend.delete_item,
            item_id,
            correlation_id=correlation_id,
        )
        await self._audit_logger.log_item_deleted(item_id, correlation_id)

    async def import_items(
        self,
        records: Iterable[Mapping[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> list[int]:
        """
        Add many items at once, e.g. from an exported JSON file.

        Every record is validated before the first one is written. The
        category may be given as ``category``, ``type`` or ``item_type``;
        any ``id`` in the record is ignored since the backend assigns ids.
        Category labels (饭, 饮, ...) are accepted as exported by the desktop
        client.

        Writes are all-or-nothing as well: a bulk-capable backend inserts
        every record in one unit, and elsewhere items already written are
        deleted again when a later write fails.

        Returns:
            The assigned ids, in record order

        Raises:
            ValidationError: Any invalid record; nothing is written
            PartialImportError: A write failed and cleanup left items behind
        """
        correlation_id = correlation_id or create_correlation_id()
        drafts: list[ItemDraft] = []
        issues: list[ValidationIssue] = []

        for index, record in enumerate(records):
            category = record.get("category", record.get("type", record.get("item_type")))
            try:
                drafts.append(self._validator.validate(
                    record.get("name"),
                    record.get("value"),
                    categories.from_wire(category),
                    self._stamp(record.get("created_at")),
                ))
            except ValidationError as e:
                issues.extend(
                    issue.model_copy(update={"field": f"records[{index}].{issue.field}"})
                    for issue in e.issues
                )

        if issues:
            await self._audit_logger.log_validation_failed(
                operation="import items",
                issues=[issue.model_dump() for issue in issues],
                correlation_id=correlation_id,
            )
            raise ValidationError(
                f"{len(issues)} invalid fields in import; nothing was written",
                issues,
            )

        if isinstance(self._backend, BulkItemBackend):
            item_ids = await self._call(
                "import items",
                self._backend.add_items,
                drafts,
                correlation_id=correlation_id,
            )
        else:
            item_ids = await self._add_one_by_one(drafts, correlation_id)

        await self._audit_logger.log_items_imported(item_ids, correlation_id)
        return item_ids

    async def _add_one_by_one(
        self,
        drafts: list[ItemDraft],
        correlation_id: UUID,
    ) -> list[int]:
        """
        Import on a backend without bulk inserts.

        When a write fails, the items already written are deleted again.
        Any that cannot be deleted are reported on the raised error.
        """
        item_ids: list[int] = []
        try:
            for draft in drafts:
                item_ids.append(await self._call(
                    "import items",
                    self._backend.add_item,
                    draft.name,
                    draft.value,
                    draft.category,
                    draft.created_at,
                    correlation_id=correlation_id,
                ))
        except LedgerError as e:
            left_behind = []
            for item_id in item_ids:
                try:
                    await self._call(
                        "roll back import",
                        self._backend.delete_item,
                        item_id,
                        correlation_id=correlation_id,
                    )
                except LedgerError:
                    left_behind.append(item_id)
                else:
                    await self._audit_logger.log_item_deleted(item_id, correlation_id)
            if left_behind:
                raise PartialImportError(
                    f"Import failed and {len(left_behind)} written items could not "
                    f"be removed: {e}",
                    left_behind,
                ) from e
            raise
        return item_ids

    # -------------------------------------------------------------------------
    # Summaries
    # -------------------------------------------------------------------------

    async def daily_summaries(self, by_category: bool = False) -> list[DailySummary]:
        """Per-day totals over the current item set, oldest first."""
        return summaries.daily_summaries(await self.list_items(), by_category=by_category)

    async def monthly_summaries(
        self,
        by_category: bool = False,
        include_budgets: bool = False,
    ) -> list[MonthlySummary]:
        """
        Per-month totals over the current item set, oldest first.

        With ``include_budgets`` each month carries its budget (if one is
        set); this needs a backend that stores budgets.
        """
        items = await self.list_items()
        budgets: dict[str, Decimal] = {}
        if include_budgets:
            months = {summaries.month_key(item) for item in items}
            for month in sorted(months):
                if self._validator.is_month(month):
                    amount = await self.get_monthly_budget(month)
                    if amount is not None:
                        budgets[month] = amount
        return summaries.monthly_summaries(items, by_category=by_category, budgets=budgets)

    async def category_totals(self) -> dict[Category, Decimal]:
        """All-time total per category, in category declaration order."""
        items = await self.list_items()
        totals = {}
        for category in Category:
            matching = [item.value for item in items if item.category == category]
            if matching:
                totals[category] = sum(matching, summaries.ZERO)
        return totals

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    def _budget_backend(self) -> BudgetBackend:
        if not isinstance(self._backend, BudgetBackend):
            raise UnsupportedOperationError(
                f"{type(self._backend).__name__} does not store monthly budgets"
            )
        return self._backend

    async def get_monthly_budget(self, month: str) -> Optional[Decimal]:
        """Budget for a YYYY-MM month, or None if none is set."""
        month = self._validator.validate_month(month)
        backend = self._budget_backend()
        return await self._call("get budget", backend.get_monthly_budget, month)

    async def set_monthly_budget(
        self,
        month: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyBudget:
        """Create or replace the budget for a YYYY-MM month."""
        try:
            month, clean_amount = self._validator.validate_budget(month, amount)
        except ValidationError as e:
            await self._audit_logger.log_validation_failed(
                operation="set budget",
                issues=[issue.model_dump() for issue in e.issues],
                correlation_id=correlation_id,
            )
            raise
        backend = self._budget_backend()
        await self._call(
            "set budget",
            backend.set_monthly_budget,
            month,
            clean_amount,
            correlation_id=correlation_id,
        )
        await self._audit_logger.log_budget_set(month, str(clean_amount), correlation_id)
        return MonthlyBudget(month=month, amount=clean_amount)


def create_backend(settings: Settings) -> ItemBackend:
    """Build the backend named by LEDGER_BACKEND."""
    kind = settings.ledger.backend
    if kind == "memory":
        return InMemoryItemBackend()
    if kind == "sqlite":
        return SQLiteItemBackend(settings.sqlite.path)
    if kind == "http":
        http = settings.http
        return HttpItemBackend(http.base_url, timeout_seconds=http.timeout_seconds)
    if kind == "sheets":
        return GoogleSheetsItemBackend(GoogleSheetsClient(settings.google_sheets))
    raise UnsupportedOperationError(f"Unknown backend: {kind}")


def create_item_store(settings: Optional[Settings] = None) -> ItemStore:
    """
    Factory function to create a fully wired store from configuration.

    Args:
        settings: Settings to use; defaults to the cached environment settings

    Returns:
        An ItemStore over the configured backend
    """
    settings = settings or get_settings()
    app = settings.app
    configure_logging(app.log_level, json=app.log_json)

    return ItemStore(
        backend=create_backend(settings),
        audit_logger=AuditLogger(),
        tz=settings.ledger.tzinfo,
    )
