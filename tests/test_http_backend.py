"""
Tests for the REST backend

Requests are answered by an httpx.MockTransport; no server is started.
"""

import json

import httpx
import pytest
from decimal import Decimal

from ledger.errors import NotFoundError, TransportError
from ledger.models.item import Category
from ledger.services.storage import HttpItemBackend
from ledger.store import ItemStore

BASE_URL = "http://ledger.test"


class FakeItemsServer:
    """Minimal in-memory /items resource speaking the wire format."""

    def __init__(self):
        self.items = {}
        self.next_id = 1
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/items" and request.method == "GET":
            return httpx.Response(200, json=list(self.items.values()))
        if path == "/items" and request.method == "POST":
            body = json.loads(request.content)
            body["id"] = self.next_id
            self.items[self.next_id] = body
            self.next_id += 1
            return httpx.Response(201, json=body)

        item_id = int(path.rsplit("/", 1)[-1])
        if item_id not in self.items:
            return httpx.Response(404, json={"error": "Item not found"})
        if request.method == "PUT":
            self.items[item_id] = json.loads(request.content)
            return httpx.Response(200, json=self.items[item_id])
        del self.items[item_id]
        return httpx.Response(200, json={"message": "Item deleted"})


def make_backend(handler) -> HttpItemBackend:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return HttpItemBackend(BASE_URL, client=client)


@pytest.fixture
def server():
    return FakeItemsServer()


class TestHttpItems:
    """CRUD over the wire format."""

    @pytest.mark.asyncio
    async def test_round_trip_through_store(self, server):
        async with ItemStore(make_backend(server)) as store:
            item = await store.add_item("Coffee", "3.5", "Drink", "2024-05-01T09:00:00")
            [listed] = await store.list_items()

        assert listed == item
        assert listed.category is Category.DRINK

        sent = json.loads(server.requests[0].content)
        assert sent == {
            "name": "Coffee",
            "value": 3.5,
            "type": "饮",
            "created_at": "2024-05-01T09:00:00",
        }

    @pytest.mark.asyncio
    async def test_update_sends_id_in_path_and_body(self, server):
        backend = make_backend(server)
        item_id = await backend.add_item("Lunch", Decimal("9"), Category.FOOD, "2024-05-01")
        await backend.update_item(item_id, "Dinner", Decimal("12"), Category.FOOD, "2024-05-01")

        request = server.requests[-1]
        assert request.method == "PUT"
        assert request.url.path == f"/items/{item_id}"
        assert json.loads(request.content)["id"] == item_id
        await backend.close()

    @pytest.mark.asyncio
    async def test_unknown_id_is_not_found(self, server):
        backend = make_backend(server)
        with pytest.raises(NotFoundError) as exc_info:
            await backend.delete_item(7)
        assert exc_info.value.item_id == 7
        with pytest.raises(NotFoundError):
            await backend.update_item(7, "x", Decimal("1"), Category.OTHER, "2024-05-01")
        await backend.close()

    @pytest.mark.asyncio
    async def test_double_delete(self, server):
        backend = make_backend(server)
        item_id = await backend.add_item("Lunch", Decimal("9"), Category.FOOD, "2024-05-01")
        await backend.delete_item(item_id)
        with pytest.raises(NotFoundError):
            await backend.delete_item(item_id)
        await backend.close()

    @pytest.mark.asyncio
    async def test_reads_labels_from_desktop_server(self):
        """Records written by the desktop front end carry labels."""
        rows = [{"id": 4, "name": "noodles", "value": 12.5, "type": "饭",
                 "created_at": "2024-05-20T12:34:56+00:00"}]
        async with ItemStore(make_backend(lambda request: httpx.Response(200, json=rows))) as store:
            [item] = await store.list_items()
        assert item.category is Category.FOOD
        assert item.created_at == "2024-05-20"

    @pytest.mark.asyncio
    async def test_null_list_is_empty(self):
        backend = make_backend(lambda request: httpx.Response(200, content=b"null"))
        assert await backend.list_items() == []
        await backend.close()


class TestHttpFailures:
    """Transport problems surface as TransportError."""

    @pytest.mark.asyncio
    async def test_server_error_carries_detail(self):
        backend = make_backend(
            lambda request: httpx.Response(500, json={"error": "database is locked"})
        )
        with pytest.raises(TransportError, match="database is locked"):
            await backend.list_items()
        await backend.close()

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend = make_backend(refuse)
        with pytest.raises(TransportError):
            await backend.add_item("Lunch", Decimal("1"), Category.FOOD, "2024-05-01")
        await backend.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def stall(request):
            raise httpx.ReadTimeout("timed out", request=request)

        backend = make_backend(stall)
        with pytest.raises(TransportError, match="timed out"):
            await backend.list_items()
        await backend.close()

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        backend = make_backend(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(TransportError):
            await backend.list_items()
        await backend.close()

    @pytest.mark.asyncio
    async def test_create_without_id(self):
        backend = make_backend(lambda request: httpx.Response(201, json={"name": "x"}))
        with pytest.raises(TransportError):
            await backend.add_item("x", Decimal("1"), Category.OTHER, "2024-05-01")
        await backend.close()

    @pytest.mark.asyncio
    async def test_404_on_collection_is_transport_error(self):
        """Only a 404 for a specific id means NotFound."""
        backend = make_backend(lambda request: httpx.Response(404, text="no route"))
        with pytest.raises(TransportError):
            await backend.list_items()
        await backend.close()
