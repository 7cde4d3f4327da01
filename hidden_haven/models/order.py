"""Order, status history and summary data models."""

from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """Known order lifecycle states. Orders may also carry custom status strings."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUSED = "refused"


STATUS_DESCRIPTIONS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Order has been placed and is waiting for merchant confirmation",
    OrderStatus.ACCEPTED: "Order has been accepted by the merchant",
    OrderStatus.PREPARING: "Order is being prepared",
    OrderStatus.DELIVERING: "Order is out for delivery",
    OrderStatus.DELIVERED: "Order has been delivered",
    OrderStatus.CANCELLED: "Order has been cancelled",
    OrderStatus.REFUSED: "Order has been refused by the merchant",
}


class PaymentMethod(str, Enum):
    """Accepted payment methods."""

    CREDIT_CARD = "credit-card"
    BITCOIN = "bitcoin"
    CASH = "cash"


class DeliveryOption(str, Enum):
    """Delivery options: shipped to an address, or a dead-drop pickup."""

    SHIP2 = "Ship2"
    DEADDROP = "Deaddrop"


class LineItem(BaseModel):
    """Catalog item snapshot taken at purchase time."""

    id: str = Field(..., description="Catalog item identifier")
    name: str = Field(..., description="Item name")
    price: float = Field(..., ge=0, description="Unit price")
    cartQuantity: int = Field(..., ge=1, description="Quantity ordered")

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class StatusEntry(BaseModel):
    """One entry of an order's status history."""

    status: str
    timestamp: datetime
    note: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class OrderCreate(BaseModel):
    """Checkout payload."""

    shopId: str = Field(..., min_length=1)
    customerId: Optional[str] = None
    customerEmail: Optional[str] = None
    items: list[LineItem] = Field(..., min_length=1)
    total: float = Field(..., ge=0)
    paymentMethod: PaymentMethod
    deliveryOption: DeliveryOption
    deliveryCity: Optional[str] = None
    deliveryAddress: Optional[str] = None
    cryptoWallet: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "shopId": "shop_001",
                "customerId": "user_002",
                "customerEmail": "jane@example.com",
                "items": [{"id": "item_1", "name": "Widget", "price": 29.99, "cartQuantity": 1}],
                "total": 29.99,
                "paymentMethod": "bitcoin",
                "deliveryOption": "Deaddrop",
                "deliveryCity": "Berlin",
                "cryptoWallet": "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh",
            }
        }
    }


class OrderInDB(BaseModel):
    """Order model as stored in the order store.

    Unknown fields found in persisted records are kept so that a record
    survives a read/write cycle unchanged.
    """

    id: str = Field(..., description="Order identifier")
    shopId: str
    customerId: Optional[str] = None
    customerEmail: str
    items: list[LineItem] = Field(default_factory=list)
    total: float = Field(..., ge=0)
    paymentMethod: PaymentMethod
    deliveryOption: DeliveryOption
    deliveryCity: Optional[str] = None
    deliveryAddress: Optional[str] = None
    cryptoWallet: Optional[str] = None
    status: str = OrderStatus.PENDING.value
    statusHistory: list[StatusEntry] = Field(default_factory=list)
    deliveryTime: Optional[str] = None
    createdAt: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updatedAt: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: int = 0

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    def to_document(self) -> dict:
        """Serialize to a JSON-compatible dict for persistence."""
        return self.model_dump(mode="json")


class StatusUpdate(BaseModel):
    """Status change request body."""

    status: Optional[str] = Field(None, description="One of the known order statuses")
    customStatus: Optional[str] = Field(
        None, description="Free-text status used verbatim instead of `status`"
    )
    note: Optional[str] = Field(None, max_length=500)

    model_config = {
        "json_schema_extra": {
            "example": {"status": "accepted", "customStatus": None, "note": "Packing today"}
        }
    }


class StatusDescription(BaseModel):
    """Known status with its human-readable description."""

    status: OrderStatus
    description: str


class OrderSummary(BaseModel):
    """Dashboard rollup for a shop owner."""

    pendingOrders: int = 0
    totalOrders: int = 0
    recentOrders: list[OrderInDB] = Field(default_factory=list)
