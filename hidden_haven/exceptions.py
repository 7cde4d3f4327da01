"""Domain errors raised by the order services and stores.

Each error carries the HTTP status code and short error code that the API
layer reports, so routes can let them propagate to the exception handler.
"""


class HavenError(Exception):
    """Base class for order lifecycle errors."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class OrderNotFoundError(HavenError):
    status_code = 404
    error = "order_not_found"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class ShopNotFoundError(HavenError):
    status_code = 404
    error = "shop_not_found"

    def __init__(self, shop_id: str) -> None:
        super().__init__(f"Shop not found: {shop_id}")
        self.shop_id = shop_id


class MessageNotFoundError(HavenError):
    status_code = 404
    error = "message_not_found"

    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message not found: {message_id}")
        self.message_id = message_id


class InvalidStatusError(HavenError):
    status_code = 400
    error = "invalid_status"

    def __init__(self, status: str | None) -> None:
        super().__init__(f"Invalid order status: {status!r}")
        self.status = status


class ForbiddenError(HavenError):
    status_code = 403
    error = "forbidden"


class ConcurrentUpdateError(HavenError):
    """The order changed between read and write (optimistic version check)."""

    status_code = 409
    error = "concurrent_update"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} was modified concurrently, reload and retry")
        self.order_id = order_id


class StoreUnavailableError(HavenError):
    """Persistence failed or timed out."""

    status_code = 503
    error = "store_unavailable"
