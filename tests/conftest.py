import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from hidden_haven.config import Settings
from hidden_haven.database.memory import create_memory_stores
from hidden_haven.main import create_app
from hidden_haven.models.order import OrderCreate
from hidden_haven.models.user import ShopInDB, UserInDB
from hidden_haven.services.order_service import OrderService

OWNER_ID = "owner_1"
CUSTOMER_ID = "customer_1"
SHOP_ID = "shop_1"


class FakeClock:
    """Deterministic clock for status timestamps."""

    def __init__(self, start: datetime = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeEmailService:
    """Records emails instead of sending them."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.fail = fail

    async def send_order_email(self, recipient_email, title, message, order=None, link_path="/orders"):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append({"to": recipient_email, "title": title, "message": message, "order": order})
        return True


def make_order_payload(**overrides) -> OrderCreate:
    data = {
        "shopId": SHOP_ID,
        "customerId": CUSTOMER_ID,
        "customerEmail": "buyer@example.com",
        "items": [{"id": "item_1", "name": "Widget", "price": 29.99, "cartQuantity": 1}],
        "total": 29.99,
        "paymentMethod": "bitcoin",
        "deliveryOption": "Deaddrop",
        "deliveryCity": "Berlin",
    }
    data.update(overrides)
    return OrderCreate(**data)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stores():
    stores = create_memory_stores()

    async def seed():
        await stores.users.create(
            UserInDB(
                id=OWNER_ID,
                email="owner@example.com",
                emailConfirmed=True,
                emailNotifications=True,
            )
        )
        await stores.users.create(
            UserInDB(
                id=CUSTOMER_ID,
                email="buyer@example.com",
                emailConfirmed=True,
                emailNotifications=True,
            )
        )
        await stores.shops.create(ShopInDB(id=SHOP_ID, ownerId=OWNER_ID, name="Midnight Market"))

    asyncio.run(seed())
    return stores


@pytest.fixture
def order_service(stores, clock):
    return OrderService(stores.orders, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        storage_backend="memory",
        smtp_enabled=False,
        rate_limit_requests=1000,
        log_format="text",
    )


@pytest.fixture
def client(settings, stores):
    app = create_app(settings, stores=stores)
    with TestClient(app) as client:
        yield client
