"""MongoDB database connection and stores."""

import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from hidden_haven.config import Settings
from hidden_haven.database.base import (
    MessageStore,
    OrderMutator,
    OrderStore,
    ShopStore,
    Stores,
    UserStore,
    bounded,
)
from hidden_haven.exceptions import ConcurrentUpdateError, StoreUnavailableError
from hidden_haven.models.notification import Message
from hidden_haven.models.order import OrderInDB
from hidden_haven.models.user import ShopInDB, UserInDB
from hidden_haven.utils.helpers import utcnow

logger = logging.getLogger(__name__)

_NO_ID = {"_id": 0}


def version_filter(order_id: str, expected_version: int) -> dict[str, Any]:
    """Match the order only while it still holds ``expected_version``.

    Documents written without a ``version`` field count as version 0.
    """
    if expected_version == 0:
        return {
            "id": order_id,
            "$or": [{"version": 0}, {"version": {"$exists": False}}],
        }
    return {"id": order_id, "version": expected_version}


class MongoDB:
    """MongoDB connection manager."""

    def __init__(self, settings: Settings) -> None:
        """Initialize MongoDB connection settings."""
        self.settings = settings
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Connect to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(
                self.settings.mongodb_url,
                maxPoolSize=self.settings.mongodb_max_pool_size,
                minPoolSize=self.settings.mongodb_min_pool_size,
                serverSelectionTimeoutMS=int(self.settings.store_timeout_seconds * 1000),
                tz_aware=True,
            )
            self.db = self.client[self.settings.mongodb_database]

            # Test connection
            await self.client.admin.command("ping")
            logger.info("Connected to MongoDB: %s", self.settings.mongodb_database)

            # Create indexes
            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB: %s", e)
            raise

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create database indexes."""
        if self.db is None:
            return
        s = self.settings
        orders = self.db[s.mongodb_order_collection]
        await orders.create_index("id", unique=True, name="id_unique")
        await orders.create_index("shopId", name="shopId_index")
        await orders.create_index("customerId", name="customerId_index")
        await orders.create_index("customerEmail", name="customerEmail_index")
        await self.db[s.mongodb_shop_collection].create_index("id", unique=True, name="id_unique")
        await self.db[s.mongodb_shop_collection].create_index("ownerId", name="ownerId_index")
        await self.db[s.mongodb_user_collection].create_index("id", unique=True, name="id_unique")
        await self.db[s.mongodb_message_collection].create_index("id", unique=True, name="id_unique")
        await self.db[s.mongodb_message_collection].create_index(
            [("receiverId", 1), ("createdAt", DESCENDING)], name="receiver_created_index"
        )
        logger.info("MongoDB indexes created")

    def collection(self, name: str):
        if self.db is None:
            raise StoreUnavailableError("Database not connected")
        return self.db[name]


class _MongoStore:
    """Shared plumbing: collection lookup and bounded calls."""

    def __init__(self, mongodb: MongoDB, collection_name: str) -> None:
        self.mongodb = mongodb
        self.collection_name = collection_name

    @property
    def _collection(self):
        return self.mongodb.collection(self.collection_name)

    async def _call(self, awaitable, operation: str) -> Any:
        try:
            return await bounded(awaitable, self.mongodb.settings.store_timeout_seconds, operation)
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            logger.error("MongoDB %s failed: %s", operation, e)
            raise StoreUnavailableError(f"MongoDB {operation} failed") from e


class MongoOrderStore(_MongoStore, OrderStore):
    """Orders collection with optimistic concurrency on ``version``."""

    async def create(self, order: OrderInDB) -> OrderInDB:
        try:
            await self._call(self._collection.insert_one(order.to_document()), "insert order")
        except DuplicateKeyError:
            raise ValueError(f"Order with id '{order.id}' already exists")
        return order

    async def get(self, order_id: str) -> Optional[OrderInDB]:
        doc = await self._call(self._collection.find_one({"id": order_id}, _NO_ID), "find order")
        return OrderInDB.model_validate(doc) if doc else None

    async def update(self, order_id: str, mutator: OrderMutator) -> Optional[OrderInDB]:
        current = await self.get(order_id)
        if current is None:
            return None

        expected_version = current.version
        updated = mutator(current)
        updated.version = expected_version + 1

        result = await self._call(
            self._collection.replace_one(
                version_filter(order_id, expected_version), updated.to_document()
            ),
            "replace order",
        )
        if result.matched_count == 0:
            logger.warning("Version conflict updating order %s (expected v%d)", order_id, expected_version)
            if await self.get(order_id) is None:
                return None
            raise ConcurrentUpdateError(order_id)
        return updated

    async def delete(self, order_id: str) -> bool:
        result = await self._call(self._collection.delete_one({"id": order_id}), "delete order")
        return result.deleted_count > 0

    async def _find(self, query: dict, operation: str) -> list[OrderInDB]:
        cursor = self._collection.find(query, _NO_ID)
        docs = await self._call(cursor.to_list(length=None), operation)
        return [OrderInDB.model_validate(doc) for doc in docs]

    async def list_by_shop(self, shop_id: str) -> list[OrderInDB]:
        return await self._find({"shopId": shop_id}, "list orders by shop")

    async def list_by_customer(self, customer: str) -> list[OrderInDB]:
        return await self._find(
            {"$or": [{"customerId": customer}, {"customerEmail": customer}]},
            "list orders by customer",
        )


class MongoShopStore(_MongoStore, ShopStore):
    async def create(self, shop: ShopInDB) -> ShopInDB:
        await self._call(
            self._collection.replace_one({"id": shop.id}, shop.model_dump(mode="json"), upsert=True),
            "upsert shop",
        )
        return shop

    async def get(self, shop_id: str) -> Optional[ShopInDB]:
        doc = await self._call(self._collection.find_one({"id": shop_id}, _NO_ID), "find shop")
        return ShopInDB.model_validate(doc) if doc else None

    async def list_by_owner(self, owner_id: str) -> list[ShopInDB]:
        cursor = self._collection.find({"ownerId": owner_id}, _NO_ID)
        docs = await self._call(cursor.to_list(length=None), "list shops by owner")
        return [ShopInDB.model_validate(doc) for doc in docs]


class MongoUserStore(_MongoStore, UserStore):
    async def create(self, user: UserInDB) -> UserInDB:
        await self._call(
            self._collection.replace_one({"id": user.id}, user.model_dump(mode="json"), upsert=True),
            "upsert user",
        )
        return user

    async def get(self, user_id: str) -> Optional[UserInDB]:
        doc = await self._call(self._collection.find_one({"id": user_id}, _NO_ID), "find user")
        return UserInDB.model_validate(doc) if doc else None


class MongoMessageStore(_MongoStore, MessageStore):
    async def add(self, message: Message) -> Message:
        await self._call(self._collection.insert_one(message.model_dump(mode="json")), "insert message")
        return message

    async def list_for_user(self, user_id: str, unread_only: bool = False) -> list[Message]:
        query: dict[str, Any] = {"receiverId": user_id}
        if unread_only:
            query["read"] = False
        cursor = self._collection.find(query, _NO_ID).sort("createdAt", 1)
        docs = await self._call(cursor.to_list(length=None), "list messages")
        return [Message.model_validate(doc) for doc in docs]

    async def get(self, message_id: str) -> Optional[Message]:
        doc = await self._call(self._collection.find_one({"id": message_id}, _NO_ID), "find message")
        return Message.model_validate(doc) if doc else None

    async def mark_read(self, message_id: str) -> Optional[Message]:
        doc = await self._call(
            self._collection.find_one_and_update(
                {"id": message_id},
                {"$set": {"read": True, "updatedAt": utcnow().isoformat()}},
                projection=_NO_ID,
                return_document=ReturnDocument.AFTER,
            ),
            "mark message read",
        )
        return Message.model_validate(doc) if doc else None


class MongoStores(Stores):
    """Stores sharing one MongoDB connection."""

    def __init__(self, mongodb: MongoDB) -> None:
        s = mongodb.settings
        super().__init__(
            orders=MongoOrderStore(mongodb, s.mongodb_order_collection),
            shops=MongoShopStore(mongodb, s.mongodb_shop_collection),
            users=MongoUserStore(mongodb, s.mongodb_user_collection),
            messages=MongoMessageStore(mongodb, s.mongodb_message_collection),
            backend="mongodb",
        )
        self.mongodb = mongodb

    async def connect(self) -> None:
        await self.mongodb.connect()

    async def disconnect(self) -> None:
        await self.mongodb.disconnect()

    def status(self) -> str:
        return "connected" if self.mongodb.db is not None else "disconnected"
