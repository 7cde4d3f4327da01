"""Services package."""

from hidden_haven.services.email_service import EmailService
from hidden_haven.services.notification_service import NotificationService
from hidden_haven.services.order_service import (
    OrderResult,
    OrderService,
    calculate_delivery_time,
    resolve_status,
)
from hidden_haven.services.summary_service import SummaryService

__all__ = [
    "OrderService",
    "OrderResult",
    "resolve_status",
    "calculate_delivery_time",
    "SummaryService",
    "NotificationService",
    "EmailService",
]
