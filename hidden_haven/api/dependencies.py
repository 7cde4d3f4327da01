"""FastAPI dependencies resolving the stores and services built at startup."""

from fastapi import Request

from hidden_haven.database.base import Stores
from hidden_haven.services.notification_service import NotificationService
from hidden_haven.services.order_service import OrderService
from hidden_haven.services.summary_service import SummaryService


def get_stores(request: Request) -> Stores:
    return request.app.state.stores


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_summary_service(request: Request) -> SummaryService:
    return request.app.state.summary_service


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service
