"""
Local Invocation Backend

Binds the item backend contract onto named commands executed in-process
(for example by a desktop shell hosting the database):

    get_items()                        -> [ {id, name, value, type, created_at} ]
    add_item(request)                  -> new id
    update_item(id, request)           -> None
    delete_item(id)                    -> None
    get_monthly_budget(month)          -> amount | None
    set_monthly_budget(month, amount)  -> None

``request`` is {name, value, item_type, created_at}. Note the casing split:
requests carry ``item_type`` while returned records carry ``type``. Both
hold the category label (饭, 饮, ...); English codes are accepted on read.
Amounts are sent as floats, so values beyond about 15 significant digits
are rounded.

Commands report failure by raising; the message is the only signal. A
message listed in ``not_found_messages`` means the id does not exist.
"""

from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, Optional

import structlog

from ledger.errors import NotFoundError, TransportError
from ledger.models.item import Category
from ledger.services.storage.interface import BudgetBackend, ItemBackend
from ledger.validation import categories

logger = structlog.get_logger(__name__)

Invoker = Callable[[str, dict[str, Any]], Awaitable[Any]]

DEFAULT_NOT_FOUND_MESSAGES = frozenset({"记录不存在", "record not found"})


class InvocationItemBackend(ItemBackend, BudgetBackend):
    """Named-command implementation of item and budget storage."""

    def __init__(
        self,
        invoke: Invoker,
        not_found_messages: Iterable[str] = DEFAULT_NOT_FOUND_MESSAGES,
    ):
        self._invoke = invoke
        self._not_found_messages = frozenset(not_found_messages)

    async def _call(
        self,
        command: str,
        args: dict[str, Any],
        item_id: Optional[int] = None,
    ) -> Any:
        try:
            return await self._invoke(command, args)
        except Exception as e:
            message = str(e)
            if item_id is not None and message in self._not_found_messages:
                raise NotFoundError(item_id)
            logger.error("invocation_failed", command=command, error=message)
            raise TransportError(f"Command {command} failed: {message}")

    @staticmethod
    def _request(
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> dict[str, Any]:
        return {
            "name": name,
            "value": float(value),
            "item_type": categories.to_wire(category),
            "created_at": created_at,
        }

    async def list_items(self) -> list[dict[str, Any]]:
        result = await self._call("get_items", {})
        if not isinstance(result, list):
            raise TransportError(f"get_items returned {type(result).__name__}, expected list")

        records = []
        for entry in result:
            if not isinstance(entry, dict):
                raise TransportError(f"Expected an item record, got {entry!r}")
            records.append({
                "id": entry.get("id"),
                "name": entry.get("name"),
                "value": entry.get("value"),
                "category": categories.from_wire(entry.get("type", entry.get("item_type"))),
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
        result = await self._call(
            "add_item",
            {"request": self._request(name, value, category, created_at)},
        )
        if isinstance(result, bool) or not isinstance(result, int):
            raise TransportError(f"add_item returned {result!r}, expected an id")
        return result

    async def update_item(
        self,
        item_id: int,
        name: str,
        value: Decimal,
        category: Category,
        created_at: str,
    ) -> None:
        await self._call(
            "update_item",
            {"id": item_id, "request": self._request(name, value, category, created_at)},
            item_id=item_id,
        )

    async def delete_item(self, item_id: int) -> None:
        await self._call("delete_item", {"id": item_id}, item_id=item_id)

    async def get_monthly_budget(self, month: str) -> Optional[Decimal]:
        result = await self._call("get_monthly_budget", {"month": month})
        if result is None:
            return None
        return Decimal(str(result))

    async def set_monthly_budget(self, month: str, amount: Decimal) -> None:
        await self._call("set_monthly_budget", {"month": month, "amount": float(amount)})
