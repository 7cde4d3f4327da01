"""Dashboard order summary for shop owners."""

import logging

from hidden_haven.database.base import OrderStore, ShopStore
from hidden_haven.models.order import OrderInDB, OrderStatus, OrderSummary

logger = logging.getLogger(__name__)


class SummaryService:
    """Computes the orders rollup shown on an owner's dashboard."""

    def __init__(self, orders: OrderStore, shops: ShopStore, recent_limit: int = 5) -> None:
        self.orders = orders
        self.shops = shops
        self.recent_limit = recent_limit

    async def get_summary(self, user_id: str) -> OrderSummary:
        """Pending count, total count and most recent orders across the user's shops.

        Never raises: any lookup failure yields an empty summary.
        """
        try:
            shops = await self.shops.list_by_owner(user_id)
            if not shops:
                return OrderSummary()

            orders: dict[str, OrderInDB] = {}
            for shop in shops:
                for order in await self.orders.list_by_shop(shop.id):
                    orders[order.id] = order

            recent = sorted(orders.values(), key=lambda o: o.createdAt, reverse=True)
            return OrderSummary(
                pendingOrders=sum(1 for o in orders.values() if o.status == OrderStatus.PENDING.value),
                totalOrders=len(orders),
                recentOrders=recent[: self.recent_limit],
            )
        except Exception as e:
            logger.error("Error building order summary for user %s: %s", user_id, e)
            return OrderSummary()
