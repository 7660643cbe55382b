"""
REST Backend

Binds the item backend contract onto an HTTP resource:

    GET    /items         -> [ {id, name, value, type, created_at}, ... ]
    POST   /items         -> created record (with its new id)
    PUT    /items/{id}    -> 404 when the id is unknown
    DELETE /items/{id}    -> 404 when the id is unknown

The category travels as ``type`` on the wire, carrying its one-character
label the way the desktop client sends it; English codes are accepted on
read. Amounts travel as JSON numbers, so values beyond about 15
significant digits are rounded.

DESIGN DECISION: The base URL and timeout are given to this adapter when it
is built. No shared client defaults are mutated, so two backends pointed at
different servers can live in one process.
"""

from decimal import Decimal
from typing import Any, Optional

import httpx
import structlog

from ledger.errors import NotFoundError, TransportError
from ledger.models.item import Category
from ledger.services.storage.interface import ItemBackend
from ledger.validation import categories

logger = structlog.get_logger(__name__)

ITEMS_PATH = "/items"


class HttpItemBackend(ItemBackend):
    """httpx-based REST implementation of item storage."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def __aenter__(self) -> "HttpItemBackend":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _payload(
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> dict[str, Any]:
        return {
            "name": name,
            "value": float(value),
            "type": categories.to_wire(category),
            "created_at": created_at,
        }

    async def _request(
        self,
        method: str,
        path: str,
        item_id: Optional[int] = None,
        json: Optional[dict] = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.error("http_backend_timeout", method=method, path=path)
            raise TransportError(f"{method} {path} timed out: {e}")
        except httpx.HTTPError as e:
            logger.error("http_backend_unreachable", method=method, path=path, error=str(e))
            raise TransportError(f"{method} {path} failed: {e}")

        if response.status_code == 404 and item_id is not None:
            raise NotFoundError(item_id)
        if response.is_error:
            detail = self._error_detail(response)
            logger.error(
                "http_backend_error",
                method=method,
                path=path,
                status=response.status_code,
                detail=detail,
            )
            raise TransportError(
                f"{method} {path} returned {response.status_code}: {detail}"
            )
        return response

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and "error" in body:
            return str(body["error"])
        return str(body)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise TransportError(f"Backend returned non-JSON body: {response.text[:200]!r}")

    async def list_items(self) -> list[dict[str, Any]]:
        body = self._json(await self._request("GET", ITEMS_PATH))
        # An empty collection may be serialized as null
        if body is None:
            return []
        if not isinstance(body, list):
            raise TransportError(f"Expected a list of items, got {type(body).__name__}")

        records = []
        for entry in body:
            if not isinstance(entry, dict):
                raise TransportError(f"Expected an item object, got {entry!r}")
            records.append({
                "id": entry.get("id"),
                "name": entry.get("name"),
                "value": entry.get("value"),
                "category": categories.from_wire(entry.get("type")),
                "created_at": entry.get("created_at"),
            })
        return records

    async def add_item(
        self,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> int:
        response = await self._request(
            "POST",
            ITEMS_PATH,
            json=self._payload(name, value, category, created_at),
        )
        body = self._json(response)
        try:
            return int(body["id"])
        except (KeyError, TypeError, ValueError):
            raise TransportError(f"Create response carries no item id: {body!r}")

    async def update_item(
        self,
        item_id: int,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> None:
        payload = self._payload(name, value, category, created_at)
        payload["id"] = item_id
        await self._request(
            "PUT",
            f"{ITEMS_PATH}/{item_id}",
            item_id=item_id,
            json=payload,
        )

    async def delete_item(self, item_id: int) -> None:
        await self._request(
            "DELETE",
            f"{ITEMS_PATH}/{item_id}",
            item_id=item_id,
        )
