"""Data models package."""

from hidden_haven.models.notification import Message, MessageType, OrderEvent, OrderEventType
from hidden_haven.models.order import (
    STATUS_DESCRIPTIONS,
    DeliveryOption,
    LineItem,
    OrderCreate,
    OrderInDB,
    OrderStatus,
    OrderSummary,
    PaymentMethod,
    StatusDescription,
    StatusEntry,
    StatusUpdate,
)
from hidden_haven.models.request import ErrorResponse, HealthResponse
from hidden_haven.models.user import ShopInDB, UserInDB

__all__ = [
    # Order models
    "OrderStatus",
    "STATUS_DESCRIPTIONS",
    "PaymentMethod",
    "DeliveryOption",
    "LineItem",
    "StatusEntry",
    "OrderCreate",
    "OrderInDB",
    "StatusUpdate",
    "StatusDescription",
    "OrderSummary",
    # Event and inbox models
    "OrderEvent",
    "OrderEventType",
    "Message",
    "MessageType",
    # User and shop models
    "UserInDB",
    "ShopInDB",
    # Response models
    "ErrorResponse",
    "HealthResponse",
]
