import asyncio

import pytest

from hidden_haven.exceptions import InvalidStatusError, OrderNotFoundError
from hidden_haven.models.notification import OrderEventType
from hidden_haven.models.order import OrderInDB, StatusEntry
from hidden_haven.services.order_service import calculate_delivery_time, resolve_status

from tests.conftest import CUSTOMER_ID, SHOP_ID, make_order_payload


def create(service, **overrides):
    return asyncio.run(service.create(make_order_payload(**overrides))).order


def transition(service, order_id, status, custom_status=None, note=None):
    return asyncio.run(service.transition(order_id, status, custom_status=custom_status, note=note))


def test_create_starts_pending_with_seeded_history(order_service, clock):
    order = create(order_service)

    assert order.status == "pending"
    assert order.total == 29.99
    assert [e.status for e in order.statusHistory] == ["pending"]
    assert order.statusHistory[0].timestamp == clock.now
    assert order.createdAt == order.updatedAt == clock.now
    assert order.deliveryTime is None
    assert order.items[0].name == "Widget"


def test_create_emits_created_event(order_service):
    result = asyncio.run(order_service.create(make_order_payload()))

    assert len(result.events) == 1
    event = result.events[0]
    assert event.type == OrderEventType.CREATED
    assert event.orderId == result.order.id
    assert event.shopId == SHOP_ID
    assert event.customerId == CUSTOMER_ID


def test_create_guest_order_uses_placeholder_email(order_service):
    order = create(order_service, customerId=None, customerEmail=None)

    assert order.customerId is None
    assert order.customerEmail == order_service.default_customer_email


def test_create_does_not_reject_total_mismatch(order_service):
    order = create(order_service, total=5.0)

    assert order.total == 5.0


def test_order_ids_are_unique(order_service):
    ids = {create(order_service).id for _ in range(20)}

    assert len(ids) == 20


def test_accepted_then_delivered_computes_delivery_time(order_service, clock):
    order = create(order_service)
    transition(order_service, order.id, "accepted")
    clock.advance(hours=2, minutes=15, seconds=59)

    updated = transition(order_service, order.id, "delivered").order

    assert updated.status == "delivered"
    assert updated.deliveryTime == "2h 15m"


def test_delivered_without_accepted_has_no_delivery_time(order_service, clock):
    order = create(order_service)
    clock.advance(hours=1)

    updated = transition(order_service, order.id, "delivered").order

    assert updated.status == "delivered"
    assert updated.deliveryTime is None


def test_delivery_time_uses_most_recent_accepted(order_service, clock):
    order = create(order_service)
    transition(order_service, order.id, "accepted")
    clock.advance(hours=5)
    transition(order_service, order.id, "pending")
    transition(order_service, order.id, "accepted")
    clock.advance(minutes=45)

    updated = transition(order_service, order.id, "delivered").order

    assert updated.deliveryTime == "0h 45m"


def test_delivery_time_is_kept_after_later_transitions(order_service, clock):
    order = create(order_service)
    transition(order_service, order.id, "accepted")
    clock.advance(hours=1, minutes=30)
    transition(order_service, order.id, "delivered")
    clock.advance(hours=3)

    refused = transition(order_service, order.id, "refused").order
    assert refused.deliveryTime == "1h 30m"

    redelivered = transition(order_service, order.id, "delivered").order
    assert redelivered.deliveryTime == "1h 30m"


def test_custom_status_is_stored_verbatim(order_service):
    order = create(order_service)

    updated = transition(order_service, order.id, None, custom_status="awaiting customs").order

    assert updated.status == "awaiting customs"
    assert updated.statusHistory[-1].status == "awaiting customs"


def test_custom_status_takes_precedence_over_status(order_service):
    order = create(order_service)

    updated = transition(order_service, order.id, "accepted", custom_status="Held at border").order

    assert updated.status == "Held at border"


def test_unknown_status_is_rejected_and_order_unchanged(order_service):
    order = create(order_service)

    with pytest.raises(InvalidStatusError):
        transition(order_service, order.id, "bogus")

    stored = asyncio.run(order_service.get(order.id))
    assert stored.model_dump() == order.model_dump()


def test_blank_custom_status_falls_back_to_status_validation(order_service):
    order = create(order_service)

    with pytest.raises(InvalidStatusError):
        transition(order_service, order.id, "bogus", custom_status="   ")


def test_transition_missing_order_raises_not_found(order_service):
    with pytest.raises(OrderNotFoundError):
        transition(order_service, "missing", "accepted")


def test_any_status_may_follow_any_other(order_service):
    order = create(order_service)

    for status in ["delivered", "pending", "cancelled", "preparing", "refused", "delivering"]:
        assert transition(order_service, order.id, status).order.status == status


def test_history_grows_by_one_per_transition_and_matches_status(order_service, clock):
    order = create(order_service)
    statuses = ["accepted", "preparing", "delivering", "delivered", "custom one"]
    previous = [e.model_dump() for e in order.statusHistory]

    for n, status in enumerate(statuses, start=1):
        clock.advance(minutes=10)
        if status.startswith("custom"):
            updated = transition(order_service, order.id, None, custom_status=status).order
        else:
            updated = transition(order_service, order.id, status).order

        assert len(updated.statusHistory) == n + 1
        assert [e.model_dump() for e in updated.statusHistory[: len(previous)]] == previous
        assert updated.status == updated.statusHistory[-1].status
        assert updated.updatedAt == clock.now
        previous = [e.model_dump() for e in updated.statusHistory]


def test_delivery_time_only_on_delivered(order_service, clock):
    order = create(order_service)

    for status in ["accepted", "preparing", "delivering", "cancelled"]:
        clock.advance(minutes=5)
        assert transition(order_service, order.id, status).order.deliveryTime is None


def test_transition_note_is_recorded(order_service):
    order = create(order_service)

    updated = transition(order_service, order.id, "preparing", note="Packing today").order

    assert updated.statusHistory[-1].note == "Packing today"


def test_transition_emits_status_changed_event(order_service):
    order = create(order_service)

    result = transition(order_service, order.id, "accepted")

    assert [e.type for e in result.events] == [OrderEventType.STATUS_CHANGED]
    event = result.events[0]
    assert event.oldStatus == "pending"
    assert event.newStatus == "accepted"
    assert event.customerId == CUSTOMER_ID


def test_legacy_order_without_history_is_backfilled(stores, order_service, clock):
    legacy = OrderInDB(
        id="1700000000000",
        shopId=SHOP_ID,
        customerEmail="old@example.com",
        items=[{"id": 1, "name": "Old", "price": 10, "cartQuantity": 2}],
        total=20,
        paymentMethod="cash",
        deliveryOption="Ship2",
        status="accepted",
        createdAt=clock.now,
        updatedAt=clock.now,
    )
    asyncio.run(stores.orders.create(legacy))
    clock.advance(hours=3, minutes=5)

    updated = transition(order_service, legacy.id, "delivered").order

    assert [e.status for e in updated.statusHistory] == ["accepted", "delivered"]
    assert updated.deliveryTime == "3h 5m"


def test_delete_removes_order(order_service):
    order = create(order_service)

    result = asyncio.run(order_service.delete(order.id))

    assert result.events[0].type == OrderEventType.DELETED
    with pytest.raises(OrderNotFoundError):
        asyncio.run(order_service.get(order.id))
    with pytest.raises(OrderNotFoundError):
        asyncio.run(order_service.delete(order.id))


def test_list_by_shop_and_customer(order_service, clock):
    first = create(order_service)
    clock.advance(minutes=1)
    second = create(order_service, customerId=None, customerEmail="guest@example.com")
    clock.advance(minutes=1)
    other = create(order_service, shopId="other_shop", customerId="customer_2", customerEmail="c2@example.com")

    by_shop = asyncio.run(order_service.list_by_shop(SHOP_ID))
    assert [o.id for o in by_shop] == [second.id, first.id]

    assert [o.id for o in asyncio.run(order_service.list_by_customer(CUSTOMER_ID))] == [first.id]
    assert [o.id for o in asyncio.run(order_service.list_by_customer("guest@example.com"))] == [second.id]
    assert [o.id for o in asyncio.run(order_service.list_by_customer("customer_2"))] == [other.id]


def test_resolve_status():
    assert resolve_status("accepted") == "accepted"
    assert resolve_status(None, "on hold") == "on hold"
    with pytest.raises(InvalidStatusError):
        resolve_status(None)
    with pytest.raises(InvalidStatusError):
        resolve_status("Accepted")


def test_calculate_delivery_time_without_delivered_entry(clock):
    history = [StatusEntry(status="accepted", timestamp=clock.now)]

    assert calculate_delivery_time(history) is None
