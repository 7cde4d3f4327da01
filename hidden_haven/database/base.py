"""Store interfaces shared by every persistence backend."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from hidden_haven.exceptions import StoreUnavailableError
from hidden_haven.models.notification import Message
from hidden_haven.models.order import OrderInDB
from hidden_haven.models.user import ShopInDB, UserInDB

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Receives the stored order and returns the order to write back.
OrderMutator = Callable[[OrderInDB], OrderInDB]


async def bounded(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Await a store operation, turning timeouts and I/O failures into StoreUnavailableError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("Store operation %s timed out after %.1fs", operation, timeout)
        raise StoreUnavailableError(f"Store operation {operation} timed out")
    except (OSError, ConnectionError) as e:
        logger.error("Store operation %s failed: %s", operation, e)
        raise StoreUnavailableError(f"Store operation {operation} failed: {e}") from e


class KeyedLock:
    """One asyncio lock per key; entries are dropped once nobody holds or waits on them."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


class OrderStore(ABC):
    """Durable CRUD over orders keyed by id.

    ``update`` must be atomic per order: concurrent updates to the same order
    are either serialized or rejected, never lost.
    """

    @abstractmethod
    async def create(self, order: OrderInDB) -> OrderInDB:
        """Persist a new order and return the stored record."""

    @abstractmethod
    async def get(self, order_id: str) -> Optional[OrderInDB]:
        """Get order by id, or None."""

    @abstractmethod
    async def update(self, order_id: str, mutator: OrderMutator) -> Optional[OrderInDB]:
        """Apply ``mutator`` to the stored order and persist it; None if missing."""

    @abstractmethod
    async def delete(self, order_id: str) -> bool:
        """Hard delete; False if the order did not exist."""

    @abstractmethod
    async def list_by_shop(self, shop_id: str) -> list[OrderInDB]:
        """Orders placed at a shop."""

    @abstractmethod
    async def list_by_customer(self, customer: str) -> list[OrderInDB]:
        """Orders whose customerId or customerEmail equals ``customer``."""


class ShopStore(ABC):
    """Read access to shops (plus create, used for seeding)."""

    @abstractmethod
    async def create(self, shop: ShopInDB) -> ShopInDB: ...

    @abstractmethod
    async def get(self, shop_id: str) -> Optional[ShopInDB]: ...

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[ShopInDB]: ...


class UserStore(ABC):
    """Read access to users (plus create, used for seeding)."""

    @abstractmethod
    async def create(self, user: UserInDB) -> UserInDB: ...

    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserInDB]: ...


class MessageStore(ABC):
    """Inbox messages written by the notification dispatcher."""

    @abstractmethod
    async def add(self, message: Message) -> Message: ...

    @abstractmethod
    async def list_for_user(self, user_id: str, unread_only: bool = False) -> list[Message]: ...

    @abstractmethod
    async def get(self, message_id: str) -> Optional[Message]: ...

    @abstractmethod
    async def mark_read(self, message_id: str) -> Optional[Message]:
        """Flag a message as read; None if it does not exist."""


class Stores:
    """The set of stores one backend provides."""

    def __init__(
        self,
        orders: OrderStore,
        shops: ShopStore,
        users: UserStore,
        messages: MessageStore,
        backend: str,
    ) -> None:
        self.orders = orders
        self.shops = shops
        self.users = users
        self.messages = messages
        self.backend = backend

    async def connect(self) -> None:
        """Open backend connections, if any."""

    async def disconnect(self) -> None:
        """Close backend connections, if any."""

    def status(self) -> str:
        return "connected"
