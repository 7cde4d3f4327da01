"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hidden_haven.api.middleware import LoggingMiddleware, RateLimitMiddleware
from hidden_haven.api.routes import router
from hidden_haven.config import Settings, get_settings
from hidden_haven.database import Stores, create_stores
from hidden_haven.exceptions import HavenError
from hidden_haven.services.email_service import EmailService
from hidden_haven.services.notification_service import NotificationService
from hidden_haven.services.order_service import OrderService
from hidden_haven.services.summary_service import SummaryService
from hidden_haven.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, stores: Optional[Stores] = None) -> FastAPI:
    """Build the application.

    ``stores`` overrides the configured storage backend (tests pass
    pre-filled in-memory stores).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        # Startup
        logger.info("Starting application...")
        app_stores = stores or create_stores(settings)
        try:
            await app_stores.connect()
            logger.info("Order store ready (backend=%s)", app_stores.backend)

            app.state.stores = app_stores
            app.state.order_service = OrderService(
                app_stores.orders,
                default_customer_email=settings.default_customer_email,
            )
            app.state.summary_service = SummaryService(
                app_stores.orders,
                app_stores.shops,
                recent_limit=settings.recent_orders_limit,
            )
            app.state.notification_service = NotificationService(
                app_stores.shops,
                app_stores.users,
                app_stores.messages,
                EmailService(settings),
            )

            yield

        finally:
            # Shutdown
            logger.info("Shutting down application...")
            await app_stores.disconnect()
            logger.info("Order store closed")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Order lifecycle service for the Hidden Haven marketplace",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        period_seconds=settings.rate_limit_period,
    )

    # Include routers
    app.include_router(router)

    # Exception handlers
    @app.exception_handler(HavenError)
    async def haven_exception_handler(request: Request, exc: HavenError) -> JSONResponse:
        """Map domain errors to their HTTP status."""
        if exc.status_code >= 500:
            logger.error("%s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error, "detail": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler."""
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "detail": "An unexpected error occurred"},
        )

    # Root endpoint
    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
        }

    return app


# Setup logging
setup_logging()

app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "hidden_haven.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
