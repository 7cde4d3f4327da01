import asyncio
import json
import time

import pytest

from hidden_haven.database.base import KeyedLock, bounded
from hidden_haven.database.json_store import create_json_stores
from hidden_haven.database.memory import create_memory_stores
from hidden_haven.database.mongodb import version_filter
from hidden_haven.exceptions import StoreUnavailableError
from hidden_haven.models.notification import Message, MessageType
from hidden_haven.models.user import ShopInDB, UserInDB
from hidden_haven.services.order_service import OrderService

from tests.conftest import make_order_payload


@pytest.fixture(params=["memory", "json"])
def backend(request, tmp_path):
    if request.param == "memory":
        return create_memory_stores()
    return create_json_stores(tmp_path, timeout=5.0)


def test_get_twice_returns_equal_records(backend, clock):
    service = OrderService(backend.orders, clock=clock)
    order = asyncio.run(service.create(make_order_payload())).order

    first = asyncio.run(backend.orders.get(order.id))
    second = asyncio.run(backend.orders.get(order.id))

    assert first.model_dump() == second.model_dump() == order.model_dump()


def test_returned_orders_are_copies(backend, clock):
    service = OrderService(backend.orders, clock=clock)
    order = asyncio.run(service.create(make_order_payload())).order

    fetched = asyncio.run(backend.orders.get(order.id))
    fetched.status = "tampered"

    assert asyncio.run(backend.orders.get(order.id)).status == "pending"


def test_update_and_delete_missing_order(backend):
    assert asyncio.run(backend.orders.get("missing")) is None
    assert asyncio.run(backend.orders.update("missing", lambda o: o)) is None
    assert asyncio.run(backend.orders.delete("missing")) is False


def test_update_increments_version(backend, clock):
    service = OrderService(backend.orders, clock=clock)
    order = asyncio.run(service.create(make_order_payload())).order

    updated = asyncio.run(service.transition(order.id, "accepted")).order

    assert updated.version == order.version + 1
    assert asyncio.run(backend.orders.get(order.id)).version == updated.version


def test_concurrent_transitions_are_not_lost(backend, clock):
    service = OrderService(backend.orders, clock=clock)
    order = asyncio.run(service.create(make_order_payload())).order
    statuses = ["accepted", "preparing", "delivering", "delivered", "cancelled"] * 4

    async def run_all():
        await asyncio.gather(*(service.transition(order.id, s) for s in statuses))

    asyncio.run(run_all())

    stored = asyncio.run(backend.orders.get(order.id))
    assert len(stored.statusHistory) == len(statuses) + 1
    assert sorted(e.status for e in stored.statusHistory[1:]) == sorted(statuses)
    assert stored.status == stored.statusHistory[-1].status
    assert stored.version == len(statuses)


def test_shops_users_and_messages(backend):
    asyncio.run(backend.shops.create(ShopInDB(id="s1", ownerId="u1", name="One")))
    asyncio.run(backend.shops.create(ShopInDB(id="s2", ownerId="u1", name="Two")))
    asyncio.run(backend.users.create(UserInDB(id="u1", email="u1@example.com")))
    asyncio.run(backend.messages.add(
        Message(receiverId="u1", content="hello", type=MessageType.ORDER_NOTIFICATION)
    ))
    asyncio.run(backend.messages.add(
        Message(receiverId="u1", content="seen", type=MessageType.ORDER_NOTIFICATION, read=True)
    ))

    assert {s.id for s in asyncio.run(backend.shops.list_by_owner("u1"))} == {"s1", "s2"}
    assert asyncio.run(backend.shops.get("s2")).name == "Two"
    assert asyncio.run(backend.users.get("u1")).email == "u1@example.com"
    assert len(asyncio.run(backend.messages.list_for_user("u1"))) == 2
    assert [m.content for m in asyncio.run(backend.messages.list_for_user("u1", unread_only=True))] == ["hello"]


def test_json_store_reads_original_order_records(tmp_path):
    record = {
        "id": "1712345678901",
        "shopId": "1712000000000",
        "customerId": None,
        "customerEmail": "anon@example.com",
        "items": [{"id": 17, "name": "Lamp", "price": 12.5, "cartQuantity": 2, "image": "lamp.png"}],
        "total": 25,
        "paymentMethod": "cash",
        "deliveryOption": "Ship2",
        "deliveryAddress": "1 Hidden Way",
        "status": "pending",
        "shopName": "Lamps",
        "createdAt": "2024-04-05T10:00:00.000Z",
        "updatedAt": "2024-04-05T10:00:00.000Z",
    }
    (tmp_path / "orders.json").write_text(json.dumps([record]))
    stores = create_json_stores(tmp_path, timeout=5.0)

    order = asyncio.run(stores.orders.get("1712345678901"))
    assert order.statusHistory == []
    assert order.items[0].id == "17"

    service = OrderService(stores.orders)
    asyncio.run(service.transition(order.id, "accepted"))

    saved = json.loads((tmp_path / "orders.json").read_text())[0]
    assert saved["shopName"] == "Lamps"
    assert saved["items"][0]["image"] == "lamp.png"
    assert [e["status"] for e in saved["statusHistory"]] == ["pending", "accepted"]
    assert saved["status"] == "accepted"


def test_json_store_missing_file_is_empty(tmp_path):
    stores = create_json_stores(tmp_path / "nothing-yet", timeout=5.0)

    assert asyncio.run(stores.orders.list_by_shop("any")) == []


def test_json_store_corrupt_file_raises_store_unavailable(tmp_path):
    (tmp_path / "orders.json").write_text("{not json")
    stores = create_json_stores(tmp_path, timeout=5.0)

    with pytest.raises(StoreUnavailableError):
        asyncio.run(stores.orders.get("x"))


def test_bounded_turns_timeout_into_store_unavailable():
    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(StoreUnavailableError):
        asyncio.run(bounded(slow(), timeout=0.01, operation="slow read"))


def test_bounded_turns_os_error_into_store_unavailable():
    async def failing():
        raise OSError("disk full")

    with pytest.raises(StoreUnavailableError):
        asyncio.run(bounded(failing(), timeout=1, operation="write"))


def test_keyed_lock_serializes_per_key_and_cleans_up():
    lock = KeyedLock()
    log = []

    async def worker(key, n):
        async with lock.hold(key):
            log.append((key, n, "in"))
            await asyncio.sleep(0.01)
            log.append((key, n, "out"))

    async def run():
        await asyncio.gather(worker("a", 1), worker("a", 2), worker("b", 1))

    asyncio.run(run())

    a_events = [e for e in log if e[0] == "a"]
    assert [e[2] for e in a_events] == ["in", "out", "in", "out"]
    assert len(lock) == 0


def test_guest_orders_are_not_listed_under_a_customer_id(backend, clock):
    service = OrderService(backend.orders, clock=clock)
    asyncio.run(service.create(make_order_payload(customerId=None, customerEmail="guest@example.com")))

    assert asyncio.run(backend.orders.list_by_customer("None")) == []
    assert len(asyncio.run(backend.orders.list_by_customer("guest@example.com"))) == 1


def test_mark_message_read(backend):
    message = asyncio.run(backend.messages.add(
        Message(receiverId="u1", content="hello", type=MessageType.ORDER_NOTIFICATION)
    ))

    updated = asyncio.run(backend.messages.mark_read(message.id))

    assert updated.read is True
    assert asyncio.run(backend.messages.get(message.id)).read is True
    assert asyncio.run(backend.messages.list_for_user("u1", unread_only=True)) == []
    assert asyncio.run(backend.messages.mark_read("missing")) is None
    assert asyncio.run(backend.messages.get("missing")) is None


def test_json_store_slow_write_keeps_later_updates(tmp_path, clock, monkeypatch):
    stores = create_json_stores(tmp_path, timeout=0.2)
    service = OrderService(stores.orders, clock=clock)
    order = asyncio.run(service.create(make_order_payload())).order

    collection = stores.orders.collection
    write = collection._write_sync
    calls = []

    def slow_first_write(records):
        calls.append(records)
        if len(calls) == 1:
            time.sleep(0.6)
        write(records)

    monkeypatch.setattr(collection, "_write_sync", slow_first_write)

    accepted = asyncio.run(service.transition(order.id, "accepted")).order
    preparing = asyncio.run(service.transition(order.id, "preparing")).order

    assert accepted.status == "accepted"
    assert preparing.status == "preparing"
    stored = asyncio.run(stores.orders.get(order.id))
    assert [e.status for e in stored.statusHistory] == ["pending", "accepted", "preparing"]


def test_json_store_writer_blocked_by_slow_write_changes_nothing(tmp_path, clock, monkeypatch):
    stores = create_json_stores(tmp_path, timeout=0.2)
    service = OrderService(stores.orders, clock=clock)
    order = asyncio.run(service.create(make_order_payload())).order

    collection = stores.orders.collection
    write = collection._write_sync
    calls = []

    def slow_first_write(records):
        calls.append(records)
        if len(calls) == 1:
            time.sleep(0.6)
        write(records)

    monkeypatch.setattr(collection, "_write_sync", slow_first_write)

    async def run():
        first = asyncio.create_task(service.transition(order.id, "accepted"))
        await asyncio.sleep(0.05)
        second = asyncio.create_task(service.transition(order.id, "preparing"))
        return await asyncio.gather(first, second, return_exceptions=True)

    first, second = asyncio.run(run())

    assert first.order.status == "accepted"
    assert isinstance(second, StoreUnavailableError)
    stored = asyncio.run(stores.orders.get(order.id))
    assert [e.status for e in stored.statusHistory] == ["pending", "accepted"]


def test_version_filter_matches_unversioned_documents():
    assert version_filter("o1", 0) == {
        "id": "o1",
        "$or": [{"version": 0}, {"version": {"$exists": False}}],
    }
    assert version_filter("o1", 3) == {"id": "o1", "version": 3}
