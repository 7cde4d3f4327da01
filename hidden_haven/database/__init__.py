"""Database package."""

from hidden_haven.config import Settings
from hidden_haven.database.base import (
    KeyedLock,
    MessageStore,
    OrderStore,
    ShopStore,
    Stores,
    UserStore,
    bounded,
)
from hidden_haven.database.json_store import create_json_stores
from hidden_haven.database.memory import create_memory_stores
from hidden_haven.database.mongodb import MongoDB, MongoStores


def create_stores(settings: Settings) -> Stores:
    """Build the stores for the configured storage backend."""
    if settings.storage_backend == "memory":
        return create_memory_stores()
    if settings.storage_backend == "json":
        return create_json_stores(settings.json_data_dir, settings.store_timeout_seconds)
    if settings.storage_backend == "mongodb":
        return MongoStores(MongoDB(settings))
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


__all__ = [
    "create_stores",
    "create_memory_stores",
    "create_json_stores",
    "bounded",
    "KeyedLock",
    "Stores",
    "OrderStore",
    "ShopStore",
    "UserStore",
    "MessageStore",
    "MongoDB",
    "MongoStores",
]
