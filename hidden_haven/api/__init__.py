"""API package."""

from hidden_haven.api.middleware import LoggingMiddleware, RateLimitMiddleware
from hidden_haven.api.routes import router

__all__ = [
    "router",
    "LoggingMiddleware",
    "RateLimitMiddleware",
]
