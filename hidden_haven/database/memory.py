"""In-memory stores, used for tests and local development."""

from typing import Optional

from hidden_haven.database.base import (
    KeyedLock,
    MessageStore,
    OrderMutator,
    OrderStore,
    ShopStore,
    Stores,
    UserStore,
)
from hidden_haven.models.notification import Message
from hidden_haven.models.order import OrderInDB
from hidden_haven.models.user import ShopInDB, UserInDB
from hidden_haven.utils.helpers import utcnow


class InMemoryOrderStore(OrderStore):
    """Orders held in a dict; callers always receive copies."""

    def __init__(self) -> None:
        self._orders: dict[str, OrderInDB] = {}
        self._locks = KeyedLock()

    async def create(self, order: OrderInDB) -> OrderInDB:
        if order.id in self._orders:
            raise ValueError(f"Order with id '{order.id}' already exists")
        self._orders[order.id] = order.model_copy(deep=True)
        return order.model_copy(deep=True)

    async def get(self, order_id: str) -> Optional[OrderInDB]:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    async def update(self, order_id: str, mutator: OrderMutator) -> Optional[OrderInDB]:
        async with self._locks.hold(order_id):
            current = self._orders.get(order_id)
            if current is None:
                return None
            updated = mutator(current.model_copy(deep=True))
            updated.version = current.version + 1
            self._orders[order_id] = updated.model_copy(deep=True)
            return updated

    async def delete(self, order_id: str) -> bool:
        async with self._locks.hold(order_id):
            return self._orders.pop(order_id, None) is not None

    async def list_by_shop(self, shop_id: str) -> list[OrderInDB]:
        return [o.model_copy(deep=True) for o in self._orders.values() if o.shopId == shop_id]

    async def list_by_customer(self, customer: str) -> list[OrderInDB]:
        return [
            o.model_copy(deep=True)
            for o in self._orders.values()
            if customer in (o.customerId, o.customerEmail)
        ]


class InMemoryShopStore(ShopStore):
    def __init__(self) -> None:
        self._shops: dict[str, ShopInDB] = {}

    async def create(self, shop: ShopInDB) -> ShopInDB:
        self._shops[shop.id] = shop
        return shop

    async def get(self, shop_id: str) -> Optional[ShopInDB]:
        return self._shops.get(shop_id)

    async def list_by_owner(self, owner_id: str) -> list[ShopInDB]:
        return [s for s in self._shops.values() if s.ownerId == owner_id]


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self._users: dict[str, UserInDB] = {}

    async def create(self, user: UserInDB) -> UserInDB:
        self._users[user.id] = user
        return user

    async def get(self, user_id: str) -> Optional[UserInDB]:
        return self._users.get(user_id)


class InMemoryMessageStore(MessageStore):
    def __init__(self) -> None:
        self._messages: list[Message] = []

    async def add(self, message: Message) -> Message:
        self._messages.append(message)
        return message

    async def list_for_user(self, user_id: str, unread_only: bool = False) -> list[Message]:
        return [
            m for m in self._messages
            if m.receiverId == user_id and not (unread_only and m.read)
        ]

    async def get(self, message_id: str) -> Optional[Message]:
        return next((m for m in self._messages if m.id == message_id), None)

    async def mark_read(self, message_id: str) -> Optional[Message]:
        message = await self.get(message_id)
        if message is not None:
            message.read = True
            message.updatedAt = utcnow()
        return message


def create_memory_stores() -> Stores:
    """Build a fresh, empty set of in-memory stores."""
    return Stores(
        orders=InMemoryOrderStore(),
        shops=InMemoryShopStore(),
        users=InMemoryUserStore(),
        messages=InMemoryMessageStore(),
        backend="memory",
    )
