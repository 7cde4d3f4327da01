"""Flat JSON file stores.

Each collection is one JSON array on disk (``orders.json``, ``shops.json``,
``users.json``, ``messages.json``). Writes replace the whole file
atomically and are serialized per file, so concurrent updates to the
collection are applied one after another instead of overwriting each other.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from hidden_haven.database.base import (
    MessageStore,
    OrderMutator,
    OrderStore,
    ShopStore,
    Stores,
    UserStore,
    bounded,
)
from hidden_haven.exceptions import StoreUnavailableError
from hidden_haven.models.notification import Message
from hidden_haven.models.order import OrderInDB
from hidden_haven.models.user import ShopInDB, UserInDB
from hidden_haven.utils.helpers import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_id(value: Any) -> Optional[str]:
    """Stored ids may be numbers in older files; null stays null."""
    return None if value is None else str(value)


class JsonCollection:
    """A JSON array file with serialized read-modify-write cycles."""

    def __init__(self, path: Path, timeout: float) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self._lock = asyncio.Lock()

    def _read_sync(self) -> list[dict[str, Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in file %s: %s", self.path, e)
            raise StoreUnavailableError(f"Corrupt data file: {self.path.name}") from e

        if not isinstance(data, list):
            raise StoreUnavailableError(f"Data file {self.path.name} must contain a JSON array")
        return data

    def _write_sync(self, records: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    async def read(self) -> list[dict[str, Any]]:
        return await bounded(asyncio.to_thread(self._read_sync), self.timeout, f"read {self.path.name}")

    async def write(self, records: list[dict[str, Any]]) -> None:
        """Replace the file with ``records``.

        A worker thread cannot be cancelled, so a write that outlives the
        timeout is awaited to completion. The caller keeps the file lock until
        the file has been replaced and is only told about failed writes.
        """
        task = asyncio.ensure_future(asyncio.to_thread(self._write_sync, records))
        try:
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Write to %s exceeded %.1fs, waiting for it to finish", self.path.name, self.timeout
                )
                await task
        except OSError as e:
            logger.error("Write to %s failed: %s", self.path.name, e)
            raise StoreUnavailableError(f"Store operation write {self.path.name} failed: {e}") from e

    async def modify(self, change: Callable[[list[dict[str, Any]]], tuple[bool, T]]) -> T:
        """Run ``change`` on the current records under the file lock.

        ``change`` returns ``(dirty, result)``; the records are written back
        only when ``dirty`` is true.
        """
        await bounded(self._lock.acquire(), self.timeout, f"lock {self.path.name}")
        try:
            records = await self.read()
            dirty, result = change(records)
            if dirty:
                await self.write(records)
            return result
        finally:
            self._lock.release()


class JsonOrderStore(OrderStore):
    def __init__(self, collection: JsonCollection) -> None:
        self.collection = collection

    async def create(self, order: OrderInDB) -> OrderInDB:
        def change(records):
            if any(str(r.get("id")) == order.id for r in records):
                raise ValueError(f"Order with id '{order.id}' already exists")
            records.append(order.to_document())
            return True, order

        return await self.collection.modify(change)

    async def get(self, order_id: str) -> Optional[OrderInDB]:
        for record in await self.collection.read():
            if str(record.get("id")) == order_id:
                return OrderInDB.model_validate(record)
        return None

    async def update(self, order_id: str, mutator: OrderMutator) -> Optional[OrderInDB]:
        def change(records):
            for index, record in enumerate(records):
                if str(record.get("id")) == order_id:
                    current = OrderInDB.model_validate(record)
                    version = current.version
                    updated = mutator(current)
                    updated.version = version + 1
                    records[index] = updated.to_document()
                    return True, updated
            return False, None

        return await self.collection.modify(change)

    async def delete(self, order_id: str) -> bool:
        def change(records):
            remaining = [r for r in records if str(r.get("id")) != order_id]
            removed = len(remaining) != len(records)
            records[:] = remaining
            return removed, removed

        return await self.collection.modify(change)

    async def list_by_shop(self, shop_id: str) -> list[OrderInDB]:
        return [
            OrderInDB.model_validate(r)
            for r in await self.collection.read()
            if str(r.get("shopId")) == shop_id
        ]

    async def list_by_customer(self, customer: str) -> list[OrderInDB]:
        return [
            OrderInDB.model_validate(r)
            for r in await self.collection.read()
            if customer in (_as_id(r.get("customerId")), r.get("customerEmail"))
        ]


class JsonShopStore(ShopStore):
    def __init__(self, collection: JsonCollection) -> None:
        self.collection = collection

    async def create(self, shop: ShopInDB) -> ShopInDB:
        def change(records):
            records[:] = [r for r in records if str(r.get("id")) != shop.id]
            records.append(shop.model_dump(mode="json"))
            return True, shop

        return await self.collection.modify(change)

    async def get(self, shop_id: str) -> Optional[ShopInDB]:
        for record in await self.collection.read():
            if str(record.get("id")) == shop_id:
                return ShopInDB.model_validate(record)
        return None

    async def list_by_owner(self, owner_id: str) -> list[ShopInDB]:
        return [
            ShopInDB.model_validate(r)
            for r in await self.collection.read()
            if str(r.get("ownerId")) == owner_id
        ]


class JsonUserStore(UserStore):
    def __init__(self, collection: JsonCollection) -> None:
        self.collection = collection

    async def create(self, user: UserInDB) -> UserInDB:
        def change(records):
            records[:] = [r for r in records if str(r.get("id")) != user.id]
            records.append(user.model_dump(mode="json"))
            return True, user

        return await self.collection.modify(change)

    async def get(self, user_id: str) -> Optional[UserInDB]:
        for record in await self.collection.read():
            if str(record.get("id")) == user_id:
                return UserInDB.model_validate(record)
        return None


class JsonMessageStore(MessageStore):
    def __init__(self, collection: JsonCollection) -> None:
        self.collection = collection

    async def add(self, message: Message) -> Message:
        def change(records):
            records.append(message.model_dump(mode="json"))
            return True, message

        return await self.collection.modify(change)

    async def list_for_user(self, user_id: str, unread_only: bool = False) -> list[Message]:
        return [
            Message.model_validate(r)
            for r in await self.collection.read()
            if str(r.get("receiverId")) == user_id and not (unread_only and r.get("read"))
        ]

    async def get(self, message_id: str) -> Optional[Message]:
        for record in await self.collection.read():
            if _as_id(record.get("id")) == message_id:
                return Message.model_validate(record)
        return None

    async def mark_read(self, message_id: str) -> Optional[Message]:
        def change(records):
            for index, record in enumerate(records):
                if _as_id(record.get("id")) == message_id:
                    message = Message.model_validate(record)
                    message.read = True
                    message.updatedAt = utcnow()
                    records[index] = message.model_dump(mode="json")
                    return True, message
            return False, None

        return await self.collection.modify(change)


def create_json_stores(data_dir: Path, timeout: float) -> Stores:
    """Build stores backed by JSON files in ``data_dir``."""
    data_dir = Path(data_dir)
    logger.info("Using JSON file storage in %s", data_dir)
    return Stores(
        orders=JsonOrderStore(JsonCollection(data_dir / "orders.json", timeout)),
        shops=JsonShopStore(JsonCollection(data_dir / "shops.json", timeout)),
        users=JsonUserStore(JsonCollection(data_dir / "users.json", timeout)),
        messages=JsonMessageStore(JsonCollection(data_dir / "messages.json", timeout)),
        backend="json",
    )
