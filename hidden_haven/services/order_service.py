"""Order lifecycle: creation, status transitions and status history."""

import logging
from typing import Callable, Optional

from pydantic import BaseModel, Field

from hidden_haven.database.base import OrderStore
from hidden_haven.exceptions import InvalidStatusError, OrderNotFoundError
from hidden_haven.models.notification import OrderEvent, OrderEventType
from hidden_haven.models.order import OrderCreate, OrderInDB, OrderStatus, StatusEntry
from hidden_haven.utils.helpers import format_duration, generate_uuid, utcnow

logger = logging.getLogger(__name__)


class OrderResult(BaseModel):
    """An order after a lifecycle operation, with the events it produced."""

    order: OrderInDB
    events: list[OrderEvent] = Field(default_factory=list)


def resolve_status(new_status: Optional[str], custom_status: Optional[str] = None) -> str:
    """Return the status to apply.

    A non-blank custom status wins and is used verbatim. Otherwise the
    requested status must be one of the known ``OrderStatus`` values.
    """
    if custom_status is not None and custom_status.strip():
        return custom_status
    try:
        return OrderStatus(new_status).value
    except ValueError:
        raise InvalidStatusError(new_status)


def calculate_delivery_time(history: list[StatusEntry]) -> Optional[str]:
    """Time between the latest ``delivered`` entry and the ``accepted`` entry before it.

    Returns None when either entry is missing.
    """
    delivered_index = next(
        (i for i in range(len(history) - 1, -1, -1) if history[i].status == OrderStatus.DELIVERED.value),
        None,
    )
    if delivered_index is None:
        return None

    accepted = next(
        (e for e in reversed(history[:delivered_index]) if e.status == OrderStatus.ACCEPTED.value),
        None,
    )
    if accepted is None:
        return None

    return format_duration(history[delivered_index].timestamp - accepted.timestamp)


def _event(event_type: OrderEventType, order: OrderInDB, **extra) -> OrderEvent:
    return OrderEvent(
        type=event_type,
        orderId=order.id,
        shopId=order.shopId,
        customerId=order.customerId,
        customerEmail=order.customerEmail,
        **extra,
    )


class OrderService:
    """Creates orders and applies status transitions through an ``OrderStore``.

    The service does not check who is asking; ownership is verified by the
    caller. Any status may follow any other: only the status value itself is
    validated.
    """

    def __init__(
        self,
        orders: OrderStore,
        clock: Callable = utcnow,
        default_customer_email: str = "guest@hiddenhaven.pro",
    ) -> None:
        self.orders = orders
        self.clock = clock
        self.default_customer_email = default_customer_email

    async def create(self, payload: OrderCreate) -> OrderResult:
        """Create a pending order from a checkout payload."""
        now = self.clock()
        items_total = round(sum(item.price * item.cartQuantity for item in payload.items), 2)
        if round(payload.total, 2) != items_total:
            logger.warning(
                "Order total %.2f differs from line items total %.2f for shop %s",
                payload.total,
                items_total,
                payload.shopId,
            )

        order = OrderInDB(
            id=generate_uuid(),
            shopId=payload.shopId,
            customerId=payload.customerId,
            customerEmail=payload.customerEmail or self.default_customer_email,
            items=payload.items,
            total=payload.total,
            paymentMethod=payload.paymentMethod,
            deliveryOption=payload.deliveryOption,
            deliveryCity=payload.deliveryCity,
            deliveryAddress=payload.deliveryAddress,
            cryptoWallet=payload.cryptoWallet,
            status=OrderStatus.PENDING.value,
            statusHistory=[StatusEntry(status=OrderStatus.PENDING.value, timestamp=now)],
            createdAt=now,
            updatedAt=now,
        )
        stored = await self.orders.create(order)
        logger.info("Created order %s for shop %s", stored.id, stored.shopId)
        return OrderResult(
            order=stored,
            events=[_event(OrderEventType.CREATED, stored, newStatus=stored.status)],
        )

    async def get(self, order_id: str) -> OrderInDB:
        order = await self.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def transition(
        self,
        order_id: str,
        new_status: Optional[str],
        custom_status: Optional[str] = None,
        note: Optional[str] = None,
    ) -> OrderResult:
        """Apply a status change and record it in the order's history.

        Raises InvalidStatusError before touching the store when the status
        is unknown and no custom status was given, and OrderNotFoundError
        when the order does not exist.
        """
        status = resolve_status(new_status, custom_status)
        previous: dict[str, str] = {}

        def apply(order: OrderInDB) -> OrderInDB:
            now = self.clock()
            previous["status"] = order.status
            if not order.statusHistory:
                # Records written before history tracking start with their current status.
                order.statusHistory.append(StatusEntry(status=order.status, timestamp=order.updatedAt))
            order.statusHistory.append(StatusEntry(status=status, timestamp=now, note=note))
            order.status = status
            order.updatedAt = now
            if status == OrderStatus.DELIVERED.value and order.deliveryTime is None:
                order.deliveryTime = calculate_delivery_time(order.statusHistory)
            return order

        updated = await self.orders.update(order_id, apply)
        if updated is None:
            raise OrderNotFoundError(order_id)

        logger.info("Order %s status %s -> %s", order_id, previous["status"], status)
        return OrderResult(
            order=updated,
            events=[
                _event(
                    OrderEventType.STATUS_CHANGED,
                    updated,
                    oldStatus=previous["status"],
                    newStatus=status,
                )
            ],
        )

    async def delete(self, order_id: str) -> OrderResult:
        """Hard delete an order."""
        order = await self.get(order_id)
        if not await self.orders.delete(order_id):
            raise OrderNotFoundError(order_id)
        logger.info("Deleted order %s from shop %s", order_id, order.shopId)
        return OrderResult(
            order=order,
            events=[_event(OrderEventType.DELETED, order, oldStatus=order.status)],
        )

    async def list_by_shop(self, shop_id: str) -> list[OrderInDB]:
        """Orders placed at a shop, newest first."""
        orders = await self.orders.list_by_shop(shop_id)
        return sorted(orders, key=lambda o: o.createdAt, reverse=True)

    async def list_by_customer(self, customer: str) -> list[OrderInDB]:
        """Orders for a customer id or customer email, newest first."""
        orders = await self.orders.list_by_customer(customer)
        return sorted(orders, key=lambda o: o.createdAt, reverse=True)
