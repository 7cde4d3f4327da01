"""Database initialization script.

Seeds the configured store with sample users and shops so the order API can
be exercised locally.

Usage:
    python -m scripts.init_db
"""

import asyncio
import logging

from hidden_haven.config import get_settings
from hidden_haven.database import create_stores
from hidden_haven.models.user import ShopInDB, UserInDB
from hidden_haven.utils.logger import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


SAMPLE_USERS = [
    UserInDB(
        id="user_001",
        username="haven_owner",
        email="owner@example.com",
        emailConfirmed=True,
        emailNotifications=True,
    ),
    UserInDB(
        id="user_002",
        username="jane_buyer",
        email="jane@example.com",
        emailConfirmed=True,
        emailNotifications=False,
    ),
    UserInDB(
        id="user_003",
        username="bob_buyer",
        email="bob@example.com",
    ),
]

SAMPLE_SHOPS = [
    ShopInDB(id="shop_001", ownerId="user_001", name="Midnight Market"),
    ShopInDB(id="shop_002", ownerId="user_001", name="Quiet Corner"),
]


async def init_databases():
    """Initialize the store and create sample users and shops."""
    settings = get_settings()
    stores = create_stores(settings)
    try:
        logger.info("Initializing %s store...", settings.storage_backend)
        await stores.connect()

        for user in SAMPLE_USERS:
            await stores.users.create(user)
            logger.info("Created user: %s", user.id)

        for shop in SAMPLE_SHOPS:
            await stores.shops.create(shop)
            logger.info("Created shop: %s (owner %s)", shop.id, shop.ownerId)

        logger.info("Database initialization completed successfully")

    except Exception as e:
        logger.error("Error initializing databases: %s", e)
        raise

    finally:
        await stores.disconnect()


if __name__ == "__main__":
    asyncio.run(init_databases())
