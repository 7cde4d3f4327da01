"""Lifecycle events and inbox message models."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from hidden_haven.utils.helpers import generate_uuid


class OrderEventType(str, Enum):
    """Lifecycle events emitted by the order service."""

    CREATED = "order.created"
    STATUS_CHANGED = "order.status_changed"
    DELETED = "order.deleted"


class OrderEvent(BaseModel):
    """Event handed to the notification dispatcher."""

    type: OrderEventType
    orderId: str
    shopId: str
    customerId: Optional[str] = None
    customerEmail: Optional[str] = None
    oldStatus: Optional[str] = None
    newStatus: Optional[str] = None
    occurredAt: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MessageType(str, Enum):
    """Inbox message kinds produced by order notifications."""

    ORDER_NOTIFICATION = "order-notification"
    BROWSER_NOTIFICATION = "browser-notification"


class Message(BaseModel):
    """Inbox message as stored in the message collection."""

    id: str = Field(default_factory=generate_uuid)
    senderId: str = "system"
    receiverId: str
    content: str
    type: MessageType
    metadata: dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    createdAt: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updatedAt: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)
