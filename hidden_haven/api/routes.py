"""API routes for orders, summaries and notifications."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Response, status

from hidden_haven.api.dependencies import (
    get_notification_service,
    get_order_service,
    get_stores,
    get_summary_service,
)
from hidden_haven.config import get_settings
from hidden_haven.database.base import Stores
from hidden_haven.exceptions import ForbiddenError, MessageNotFoundError, ShopNotFoundError
from hidden_haven.models.notification import Message
from hidden_haven.models.order import (
    STATUS_DESCRIPTIONS,
    OrderCreate,
    OrderInDB,
    OrderSummary,
    StatusDescription,
    StatusUpdate,
)
from hidden_haven.models.request import ErrorResponse, HealthResponse
from hidden_haven.services.notification_service import NotificationService
from hidden_haven.services.order_service import OrderService
from hidden_haven.services.summary_service import SummaryService

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix=settings.api_prefix)

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


async def _require_shop_owner(stores: Stores, shop_id: str, user_id: str) -> None:
    shop = await stores.shops.get(shop_id)
    if shop is None:
        raise ShopNotFoundError(shop_id)
    if shop.ownerId != user_id:
        logger.warning("User %s is not the owner of shop %s", user_id, shop_id)
        raise ForbiddenError("Only the shop owner can manage this order")


@router.get("/health", response_model=HealthResponse)
async def health_check(stores: Stores = Depends(get_stores)) -> HealthResponse:
    """Health check endpoint."""
    store_status = stores.status()
    return HealthResponse(
        status="healthy" if store_status == "connected" else "degraded",
        version=settings.app_version,
        services={
            "store": store_status,
            "backend": stores.backend,
            "smtp": "enabled" if settings.smtp_enabled else "disabled",
        },
    )


@router.post(
    "/orders",
    response_model=OrderInDB,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_order(
    payload: OrderCreate,
    background_tasks: BackgroundTasks,
    stores: Stores = Depends(get_stores),
    orders: OrderService = Depends(get_order_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> OrderInDB:
    """Place an order at a shop (checkout)."""
    if await stores.shops.get(payload.shopId) is None:
        raise ShopNotFoundError(payload.shopId)

    result = await orders.create(payload)
    background_tasks.add_task(notifications.dispatch, result.events, result.order)
    return result.order


@router.get("/orders/statuses", response_model=list[StatusDescription])
async def list_statuses() -> list[StatusDescription]:
    """Known order statuses and their descriptions."""
    return [
        StatusDescription(status=s, description=description)
        for s, description in STATUS_DESCRIPTIONS.items()
    ]


@router.get("/orders/shop/{shop_id}", response_model=list[OrderInDB])
async def list_shop_orders(
    shop_id: str, orders: OrderService = Depends(get_order_service)
) -> list[OrderInDB]:
    """Orders placed at a shop."""
    return await orders.list_by_shop(shop_id)


@router.get("/orders/customer/{customer}", response_model=list[OrderInDB])
async def list_customer_orders(
    customer: str, orders: OrderService = Depends(get_order_service)
) -> list[OrderInDB]:
    """Orders of a customer, looked up by customer id or email."""
    return await orders.list_by_customer(customer)


@router.get("/orders/user/{user_id}/summary", response_model=OrderSummary)
async def get_order_summary(
    user_id: str, summaries: SummaryService = Depends(get_summary_service)
) -> OrderSummary:
    """Dashboard rollup of orders across the user's shops."""
    return await summaries.get_summary(user_id)


@router.get("/orders/{order_id}", response_model=OrderInDB, responses=_ERRORS)
async def get_order(order_id: str, orders: OrderService = Depends(get_order_service)) -> OrderInDB:
    """Get order by ID."""
    return await orders.get(order_id)


@router.put("/orders/{order_id}/status", response_model=OrderInDB, responses=_ERRORS)
async def update_order_status(
    order_id: str,
    payload: StatusUpdate,
    background_tasks: BackgroundTasks,
    user_id: str = Header(..., alias="X-User-ID"),
    stores: Stores = Depends(get_stores),
    orders: OrderService = Depends(get_order_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> OrderInDB:
    """Change an order's status.

    Headers:
        X-User-ID: Must be the owner of the order's shop

    Body:
        status: One of the known statuses
        customStatus: Optional free-text status, used instead of `status`
        note: Optional note stored with the history entry
    """
    order = await orders.get(order_id)
    await _require_shop_owner(stores, order.shopId, user_id)

    result = await orders.transition(
        order_id, payload.status, custom_status=payload.customStatus, note=payload.note
    )
    background_tasks.add_task(notifications.dispatch, result.events, result.order)
    return result.order


@router.delete(
    "/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_ERRORS
)
async def delete_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    user_id: str = Header(..., alias="X-User-ID"),
    stores: Stores = Depends(get_stores),
    orders: OrderService = Depends(get_order_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> Response:
    """Permanently delete an order. Only the shop owner may do this."""
    order = await orders.get(order_id)
    await _require_shop_owner(stores, order.shopId, user_id)

    result = await orders.delete(order_id)
    background_tasks.add_task(notifications.dispatch, result.events, result.order)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/notifications/{user_id}", response_model=list[Message])
async def list_notifications(
    user_id: str,
    unread_only: bool = False,
    stores: Stores = Depends(get_stores),
) -> list[Message]:
    """Inbox messages produced by order notifications."""
    return await stores.messages.list_for_user(user_id, unread_only=unread_only)


@router.put("/notifications/{message_id}/read", response_model=Message, responses=_ERRORS)
async def mark_notification_read(
    message_id: str,
    user_id: str = Header(..., alias="X-User-ID"),
    stores: Stores = Depends(get_stores),
) -> Message:
    """Mark an inbox message as read. Only its receiver may do this."""
    message = await stores.messages.get(message_id)
    if message is None:
        raise MessageNotFoundError(message_id)
    if message.receiverId != user_id:
        raise ForbiddenError("Only the receiver can mark this message as read")

    updated = await stores.messages.mark_read(message_id)
    if updated is None:
        raise MessageNotFoundError(message_id)
    return updated
