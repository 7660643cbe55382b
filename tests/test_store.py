"""
Tests for the ItemStore

The store runs against the in-memory backend, or against small fakes when a
backend failure has to be provoked.
"""

import pytest
from datetime import timedelta, timezone
from decimal import Decimal

from ledger.audit import AuditLogger
from ledger.config import Settings
from ledger.errors import (
    InvalidCategoryError,
    NotFoundError,
    PartialImportError,
    TransportError,
    UnsupportedOperationError,
    ValidationError,
)
from ledger.models.audit import AuditEventType
from ledger.models.item import Category
from ledger.services.storage import InMemoryItemBackend, ItemBackend, SQLiteItemBackend
from ledger.store import ItemStore, create_item_store


class RecordingAuditLogger(AuditLogger):
    """Keeps events in memory instead of writing them."""

    def __init__(self):
        super().__init__()
        self.events = []

    async def log(self, event):
        self.events.append(event)
        return True

    def types(self):
        return [event.event_type for event in self.events]


class RawBackend(ItemBackend):
    """Backend returning canned records and failures."""

    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = []

    async def list_items(self):
        self.calls.append("list")
        if self.error:
            raise self.error
        return self.records

    async def add_item(self, name, value, category, created_at):
        self.calls.append("add")
        if self.error:
            raise self.error
        return 1

    async def update_item(self, item_id, name, value, category, created_at):
        self.calls.append("update")

    async def delete_item(self, item_id):
        self.calls.append("delete")


class FailsOnSecondAdd(ItemBackend):
    """One-at-a-time backend whose second write is lost."""

    def __init__(self, deletes_fail=False):
        self.inner = InMemoryItemBackend()
        self.deletes_fail = deletes_fail
        self.adds = 0

    async def list_items(self):
        return await self.inner.list_items()

    async def add_item(self, name, value, category, created_at):
        self.adds += 1
        if self.adds == 2:
            raise ConnectionResetError("connection reset")
        return await self.inner.add_item(name, value, category, created_at)

    async def update_item(self, item_id, name, value, category, created_at):
        await self.inner.update_item(item_id, name, value, category, created_at)

    async def delete_item(self, item_id):
        if self.deletes_fail:
            raise ConnectionResetError("still down")
        await self.inner.delete_item(item_id)


IMPORT_RECORDS = [
    {"name": "tea", "value": 6, "type": "Drink", "created_at": "2024-05-01"},
    {"name": "bus", "value": 2, "type": "Transport", "created_at": "2024-05-01"},
    {"name": "rent", "value": 800, "type": "Housing", "created_at": "2024-05-01"},
]


@pytest.fixture
def audit():
    return RecordingAuditLogger()


@pytest.fixture
def store(audit):
    return ItemStore(InMemoryItemBackend(), audit_logger=audit)


class TestListAndAdd:
    """Tests for list_items / add_item."""

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        """An empty store lists nothing and summarizes to nothing."""
        assert await store.list_items() == []
        assert await store.daily_summaries() == []
        assert await store.monthly_summaries() == []

    @pytest.mark.asyncio
    async def test_add_then_list_round_trip(self, store):
        """The added item comes back once, date normalized, with a new id."""
        first = await store.add_item("Breakfast", "4.20", "Food", "2024-05-01T07:45:00")
        second = await store.add_item("Tea", 2, Category.DRINK, "2024-05-01T15:00:00")

        items = await store.list_items()
        assert len(items) == 2
        assert first.id != second.id

        stored = next(item for item in items if item.id == first.id)
        assert stored.name == "Breakfast"
        assert stored.value == Decimal("4.20")
        assert stored.category is Category.FOOD
        assert stored.created_at == "2024-05-01"
        assert stored == first

    @pytest.mark.asyncio
    async def test_add_defaults_created_at_to_now(self, store):
        """Without created_at the item is stamped today."""
        item = await store.add_item("Snack", 1, "Food")
        assert item.created_at == store.today()

    @pytest.mark.asyncio
    async def test_invalid_add_never_reaches_backend(self, audit):
        """Validation happens before the backend is called."""
        backend = RawBackend()
        store = ItemStore(backend, audit_logger=audit)

        with pytest.raises(InvalidCategoryError):
            await store.add_item("Lunch", 10, "Brunch", "2024-05-01")
        with pytest.raises(ValidationError):
            await store.add_item("", 10, "Food", "2024-05-01")

        assert backend.calls == []
        assert audit.types() == [AuditEventType.VALIDATION_FAILED] * 2

    @pytest.mark.asyncio
    async def test_add_is_audited(self, store, audit):
        item = await store.add_item("Lunch", "12.50", "Food", "2024-05-01")
        assert audit.types() == [AuditEventType.ITEM_ADDED]
        assert audit.events[0].entity_id == str(item.id)

    @pytest.mark.asyncio
    async def test_long_name_is_saved_and_audited(self, audit):
        """Names have no length limit; the audit description is clipped."""
        store = ItemStore(InMemoryItemBackend(), audit_logger=audit)
        item = await store.add_item("x" * 600, "10", "Food", "2024-05-01T10:00:00")
        assert item.name == "x" * 600
        assert len(await store.list_items()) == 1

        [event] = audit.events
        assert len(event.description) <= 500
        assert event.details["name"] == "x" * 600

    @pytest.mark.asyncio
    async def test_long_name_with_default_logger(self):
        store = ItemStore(InMemoryItemBackend())
        item = await store.add_item("y" * 600, "10", "Food", "2024-05-01")
        updated = await store.update_item(item.id, "z" * 900, "11", "Food", "2024-05-01")
        assert (await store.get_item(item.id)) == updated

    @pytest.mark.asyncio
    async def test_get_item(self, store):
        item = await store.add_item("Lunch", 9, "Food", "2024-05-01")
        assert await store.get_item(item.id) == item
        with pytest.raises(NotFoundError):
            await store.get_item(item.id + 100)


class TestReferenceTimezone:
    """Offset timestamps are stored in the store's timezone."""

    @pytest.mark.asyncio
    async def test_offset_timestamp_near_midnight(self):
        store = ItemStore(InMemoryItemBackend(), tz=timezone.utc)
        item = await store.add_item("late dinner", 30, "Food", "2024-05-01T23:30:00-05:00")
        assert item.created_at == "2024-05-02"

        [record] = await store._backend.list_items()
        assert record["created_at"] == "2024-05-02T04:30:00+00:00"
        [summary] = await store.daily_summaries()
        assert summary.date == "2024-05-02"

    @pytest.mark.asyncio
    async def test_utc_timestamp_in_western_zone(self):
        store = ItemStore(InMemoryItemBackend(), tz=timezone(timedelta(hours=-5)))
        item = await store.add_item("taxi", 15, "Transport", "2024-05-02T03:00:00Z")
        assert item.created_at == "2024-05-01"

    @pytest.mark.asyncio
    async def test_naive_timestamp_is_kept(self):
        store = ItemStore(InMemoryItemBackend(), tz=timezone(timedelta(hours=8)))
        item = await store.add_item("tea", 5, "Drink", "2024-05-01T23:30:00")
        assert item.created_at == "2024-05-01"

    @pytest.mark.asyncio
    async def test_import_converts_offsets(self):
        store = ItemStore(InMemoryItemBackend(), tz=timezone.utc)
        await store.import_items([
            {"name": "a", "value": 1, "type": "Food",
             "created_at": "2024-05-01T23:30:00.123456789-05:00"},
        ])
        [item] = await store.list_items()
        assert item.created_at == "2024-05-02"


class TestUpdateAndDelete:
    """Tests for update_item / delete_item."""

    @pytest.mark.asyncio
    async def test_update_replaces_all_fields(self, store):
        """Update is full replacement; the id stays."""
        item = await store.add_item("Lunch", 9, "Food", "2024-05-01T12:00:00")
        updated = await store.update_item(
            item.id, "Cinema", "25", "Entertainment", "2024-05-03T20:00:00"
        )

        assert updated.id == item.id
        [stored] = await store.list_items()
        assert stored == updated
        assert stored.category is Category.ENTERTAINMENT
        assert stored.created_at == "2024-05-03"

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, store):
        """Unknown id: update and then delete both fail with NotFoundError."""
        with pytest.raises(NotFoundError):
            await store.update_item(42, "Lunch", 9, "Food", "2024-05-01")
        with pytest.raises(NotFoundError):
            await store.delete_item(42)

    @pytest.mark.asyncio
    async def test_update_validates_first(self, store):
        item = await store.add_item("Lunch", 9, "Food", "2024-05-01")
        with pytest.raises(InvalidCategoryError):
            await store.update_item(item.id, "Lunch", 9, "food", "2024-05-01")
        assert (await store.get_item(item.id)).category is Category.FOOD

    @pytest.mark.asyncio
    async def test_double_delete(self, store, audit):
        """First delete succeeds, the second fails."""
        item = await store.add_item("Lunch", 9, "Food", "2024-05-01")
        await store.delete_item(item.id)
        with pytest.raises(NotFoundError):
            await store.delete_item(item.id)
        assert await store.list_items() == []
        assert AuditEventType.ITEM_DELETED in audit.types()

    @pytest.mark.asyncio
    async def test_ids_are_not_reused(self, store):
        first = await store.add_item("A", 1, "Other", "2024-05-01")
        await store.delete_item(first.id)
        second = await store.add_item("B", 1, "Other", "2024-05-01")
        assert second.id != first.id


class TestBackendFailures:
    """Tests for error translation at the backend boundary."""

    @pytest.mark.asyncio
    async def test_foreign_exception_becomes_transport_error(self, audit):
        store = ItemStore(RawBackend(error=ConnectionRefusedError("refused")), audit_logger=audit)
        with pytest.raises(TransportError):
            await store.list_items()
        with pytest.raises(TransportError):
            await store.add_item("Lunch", 1, "Food", "2024-05-01")
        assert audit.types() == [AuditEventType.BACKEND_ERROR] * 2

    @pytest.mark.asyncio
    async def test_ledger_errors_are_audited_with_their_code(self, audit):
        store = ItemStore(RawBackend(error=TransportError("server down")), audit_logger=audit)
        with pytest.raises(TransportError):
            await store.list_items()
        assert audit.events[0].error_message == "TRANSPORT_ERROR: server down"

    @pytest.mark.asyncio
    async def test_malformed_record_is_transport_error(self, audit):
        records = [{"id": 1, "name": "Lunch", "value": "abc", "category": "Food",
                    "created_at": "2024-05-01"}]
        store = ItemStore(RawBackend(records=records), audit_logger=audit)
        with pytest.raises(TransportError):
            await store.list_items()

    @pytest.mark.asyncio
    async def test_unknown_stored_category_is_transport_error(self, audit):
        records = [{"id": 1, "name": "Lunch", "value": 3, "category": "Brunch",
                    "created_at": "2024-05-01"}]
        store = ItemStore(RawBackend(records=records), audit_logger=audit)
        with pytest.raises(TransportError):
            await store.list_items()

    @pytest.mark.asyncio
    async def test_float_values_keep_their_decimal_digits(self, audit):
        records = [{"id": 1, "name": "Tea", "value": 0.1, "category": "Drink",
                    "created_at": "2024-05-01 10:00:00"}]
        store = ItemStore(RawBackend(records=records), audit_logger=audit)
        [item] = await store.list_items()
        assert item.value == Decimal("0.1")
        assert item.created_at == "2024-05-01"


class TestImport:
    """Tests for import_items."""

    @pytest.mark.asyncio
    async def test_import_accepts_wire_names(self, store, audit):
        ids = await store.import_items([
            {"id": 99, "name": "Lunch", "value": 10, "type": "Food",
             "created_at": "2024-05-01T12:00:00"},
            {"name": "Bus", "value": 2, "item_type": "Transport",
             "created_at": "2024-05-02T08:00:00"},
            {"name": "Rent", "value": 800, "category": "Housing",
             "created_at": "2024-05-03"},
        ])
        assert len(ids) == 3
        assert 99 not in ids
        items = await store.list_items()
        assert {item.category for item in items} == {
            Category.FOOD, Category.TRANSPORT, Category.HOUSING,
        }
        assert audit.types()[-1] == AuditEventType.ITEMS_IMPORTED

    @pytest.mark.asyncio
    async def test_import_is_all_or_nothing(self, store):
        with pytest.raises(ValidationError) as exc_info:
            await store.import_items([
                {"name": "Lunch", "value": 10, "type": "Food", "created_at": "2024-05-01"},
                {"name": "Bad", "value": 2, "type": "Nope", "created_at": "2024-05-01"},
            ])
        assert exc_info.value.issues[0].field == "records[1].category"
        assert await store.list_items() == []


    @pytest.mark.asyncio
    async def test_import_accepts_labels(self, store):
        """Exported desktop records carry the one-character label."""
        await store.import_items([
            {"id": 1, "name": "noodles", "value": 12.5, "type": "饭",
             "created_at": "2024-05-20T12:34:56+00:00"},
            {"id": 2, "name": "milk tea", "value": 15, "type": "饮",
             "created_at": "2024-05-20T15:00:00+00:00"},
        ])
        assert await store.category_totals() == {
            Category.FOOD: Decimal("12.5"),
            Category.DRINK: Decimal("15"),
        }

    @pytest.mark.asyncio
    async def test_failed_write_removes_earlier_items(self, audit):
        backend = FailsOnSecondAdd()
        store = ItemStore(backend, audit_logger=audit)
        with pytest.raises(TransportError) as exc_info:
            await store.import_items(IMPORT_RECORDS)

        assert not isinstance(exc_info.value, PartialImportError)
        assert await store.list_items() == []
        assert AuditEventType.ITEM_DELETED in audit.types()
        assert AuditEventType.ITEMS_IMPORTED not in audit.types()

    @pytest.mark.asyncio
    async def test_failed_cleanup_reports_written_ids(self, audit):
        backend = FailsOnSecondAdd(deletes_fail=True)
        store = ItemStore(backend, audit_logger=audit)
        with pytest.raises(PartialImportError) as exc_info:
            await store.import_items(IMPORT_RECORDS)

        [written] = await store.list_items()
        assert exc_info.value.item_ids == [written.id]
        assert isinstance(exc_info.value, TransportError)


class TestStoreSummaries:
    """Tests for the summary shortcuts on the store."""

    @pytest.mark.asyncio
    async def test_daily_summaries(self, store):
        await store.add_item("a", 10, "Food", "2024-05-01T09:00:00")
        await store.add_item("b", 5, "Drink", "2024-05-01T10:00:00")
        await store.add_item("c", 7, "Food", "2024-05-02T11:00:00")

        result = await store.daily_summaries()
        assert [(s.date, s.total) for s in result] == [
            ("2024-05-01", Decimal("15")),
            ("2024-05-02", Decimal("7")),
        ]
        assert result == await store.daily_summaries()

    @pytest.mark.asyncio
    async def test_summaries_reflect_deletes(self, store):
        """No cache: a delete shows up in the next summary."""
        item = await store.add_item("a", 10, "Food", "2024-05-01")
        await store.add_item("b", 5, "Food", "2024-05-01")
        await store.delete_item(item.id)
        [summary] = await store.daily_summaries()
        assert summary.total == Decimal("5")

    @pytest.mark.asyncio
    async def test_monthly_summaries_with_budgets(self, store):
        await store.add_item("a", 100, "Housing", "2024-05-01")
        await store.add_item("b", 20, "Food", "2024-06-01")
        await store.set_monthly_budget("2024-05", "150")

        may, june = await store.monthly_summaries(include_budgets=True)
        assert may.budget == Decimal("150")
        assert may.remaining == Decimal("50")
        assert june.budget is None

    @pytest.mark.asyncio
    async def test_category_totals(self, store):
        await store.add_item("a", 10, "Food", "2024-05-01")
        await store.add_item("b", 4, "Drink", "2024-05-02")
        await store.add_item("c", 6, "Food", "2024-06-01")
        assert await store.category_totals() == {
            Category.FOOD: Decimal("16"),
            Category.DRINK: Decimal("4"),
        }


class TestBudgets:
    """Tests for monthly budgets."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, store, audit):
        assert await store.get_monthly_budget("2024-05") is None
        budget = await store.set_monthly_budget("2024-05", "300.50")
        assert budget.amount == Decimal("300.50")
        assert await store.get_monthly_budget("2024-05") == Decimal("300.50")
        await store.set_monthly_budget("2024-05", 200)
        assert await store.get_monthly_budget("2024-05") == Decimal("200")
        assert AuditEventType.BUDGET_SET in audit.types()

    @pytest.mark.asyncio
    async def test_bad_month(self, store):
        with pytest.raises(ValidationError):
            await store.set_monthly_budget("May", 10)
        with pytest.raises(ValidationError):
            await store.get_monthly_budget("2024-5")

    @pytest.mark.asyncio
    async def test_unsupported_backend(self, audit):
        store = ItemStore(RawBackend(), audit_logger=audit)
        with pytest.raises(UnsupportedOperationError):
            await store.get_monthly_budget("2024-05")
        with pytest.raises(UnsupportedOperationError):
            await store.set_monthly_budget("2024-05", 1)

    @pytest.mark.asyncio
    async def test_summaries_without_budgets_need_no_budget_backend(self, audit):
        records = [{"id": 1, "name": "a", "value": 1, "category": "Food",
                    "created_at": "2024-05-01"}]
        store = ItemStore(RawBackend(records=records), audit_logger=audit)
        [may] = await store.monthly_summaries()
        assert may.budget is None
        with pytest.raises(UnsupportedOperationError):
            await store.monthly_summaries(include_budgets=True)


class TestFactory:
    """Tests for create_item_store."""

    @pytest.mark.asyncio
    async def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("LEDGER_BACKEND", "memory")
        monkeypatch.setenv("LEDGER_TIMEZONE", "Asia/Shanghai")
        store = create_item_store(Settings())
        assert isinstance(store._backend, InMemoryItemBackend)
        await store.add_item("a", 1, "Food")
        assert len(await store.list_items()) == 1

    @pytest.mark.asyncio
    async def test_sqlite_backend(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LEDGER_BACKEND", "sqlite")
        monkeypatch.setenv("LEDGER_SQLITE_PATH", str(tmp_path / "ledger.db"))
        async with create_item_store(Settings()) as store:
            assert isinstance(store._backend, SQLiteItemBackend)
            assert await store.list_items() == []

    def test_bad_timezone(self, monkeypatch):
        monkeypatch.setenv("LEDGER_TIMEZONE", "Mars/Olympus")
        with pytest.raises(ValueError):
            create_item_store(Settings())
