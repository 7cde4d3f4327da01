"""Fans order lifecycle events out to inbox messages and email."""

import logging
from typing import Optional

from hidden_haven.database.base import MessageStore, ShopStore, UserStore
from hidden_haven.models.notification import Message, MessageType, OrderEvent, OrderEventType
from hidden_haven.models.order import STATUS_DESCRIPTIONS, OrderInDB, OrderStatus
from hidden_haven.services.email_service import EmailService

logger = logging.getLogger(__name__)

# Status changes that raise a browser notification for the customer.
BROWSER_NOTIFY_STATUSES = frozenset(
    {
        OrderStatus.ACCEPTED.value,
        OrderStatus.PREPARING.value,
        OrderStatus.DELIVERING.value,
        OrderStatus.DELIVERED.value,
    }
)


class NotificationService:
    """Delivers notifications for order events.

    Delivery is best effort: failures are logged and never reach the caller,
    and nothing is retried.
    """

    def __init__(
        self,
        shops: ShopStore,
        users: UserStore,
        messages: MessageStore,
        email: EmailService,
    ) -> None:
        self.shops = shops
        self.users = users
        self.messages = messages
        self.email = email

    async def dispatch(self, events: list[OrderEvent], order: Optional[OrderInDB] = None) -> None:
        """Handle each event; ``order`` is the order snapshot used for email details."""
        for event in events:
            try:
                if event.type == OrderEventType.CREATED:
                    await self._notify_owner_new_order(event, order)
                elif event.type == OrderEventType.STATUS_CHANGED:
                    await self._notify_customer_status(event, order)
                else:
                    logger.info("Order %s event %s", event.orderId, event.type.value)
            except Exception as e:
                logger.error(
                    "Failed to dispatch %s for order %s: %s", event.type.value, event.orderId, e
                )

    async def _notify_owner_new_order(self, event: OrderEvent, order: Optional[OrderInDB]) -> None:
        shop = await self.shops.get(event.shopId)
        if shop is None:
            logger.warning("Shop %s not found, no owner to notify for order %s", event.shopId, event.orderId)
            return
        owner = await self.users.get(shop.ownerId)
        if owner is None:
            logger.warning("Owner %s of shop %s not found", shop.ownerId, shop.id)
            return

        await self.messages.add(
            Message(
                receiverId=owner.id,
                content=f"New order #{event.orderId} received",
                type=MessageType.ORDER_NOTIFICATION,
                metadata={
                    "orderId": event.orderId,
                    "shopId": event.shopId,
                    "notificationType": event.type.value,
                },
            )
        )

        if owner.wants_email:
            await self.email.send_order_email(
                owner.email,
                f"New Order #{event.orderId}",
                f'You have received a new order for your shop "{shop.name}".',
                order,
                link_path="/order-management",
            )

    async def _notify_customer_status(self, event: OrderEvent, order: Optional[OrderInDB]) -> None:
        if not event.customerId:
            logger.debug("Order %s is a guest order, no customer notification", event.orderId)
            return
        customer = await self.users.get(event.customerId)
        if customer is None:
            logger.warning("Customer %s of order %s not found", event.customerId, event.orderId)
            return

        title = f"Order #{event.orderId} is now {event.newStatus}"
        if event.newStatus in BROWSER_NOTIFY_STATUSES and customer.browserNotifications:
            await self.messages.add(
                Message(
                    receiverId=customer.id,
                    content=title,
                    type=MessageType.BROWSER_NOTIFICATION,
                    metadata={
                        "orderId": event.orderId,
                        "status": event.newStatus,
                        "type": "order-update",
                    },
                )
            )

        if customer.wants_email:
            try:
                description = STATUS_DESCRIPTIONS[OrderStatus(event.newStatus)]
            except ValueError:
                description = f"Your order status changed to: {event.newStatus}"
            await self.email.send_order_email(customer.email, title, description, order)
