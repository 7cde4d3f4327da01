"""Application configuration management using Pydantic Settings."""
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the directory where settings.py is located
BASE_DIR = Path(__file__).resolve().parent

class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    app_name: str = "Hidden Haven Orders"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(default="development", pattern="^(development|staging|production)$")

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    api_prefix: str = "/api"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Storage
    storage_backend: str = Field(default="json", pattern="^(memory|json|mongodb)$")
    json_data_dir: Path = BASE_DIR.parent / "data"
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # MongoDB
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = "hidden_haven"
    mongodb_order_collection: str = "orders"
    mongodb_shop_collection: str = "shops"
    mongodb_user_collection: str = "users"
    mongodb_message_collection: str = "messages"
    mongodb_max_pool_size: int = 10
    mongodb_min_pool_size: int = 1

    # Orders
    default_customer_email: str = "guest@hiddenhaven.pro"
    recent_orders_limit: int = Field(default=5, ge=1)

    # Email (SMTP)
    smtp_enabled: bool = False
    smtp_host: str = "mail.privateemail.com"
    smtp_port: int = 587
    smtp_username: str = Field(default="", description="SMTP username")
    smtp_password: str = Field(default="", description="SMTP password")
    smtp_from_email: str = Field(default="noreply@hiddenhaven.pro")
    smtp_from_name: str = "Hidden Haven"
    frontend_base_url: str = "http://localhost:5173"

    # Rate Limiting
    rate_limit_requests: int = 120
    rate_limit_period: int = 60  # seconds

    # Logging
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_format: str = "json"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
