"""User and shop data models.

Accounts and shops are managed elsewhere; the order service only reads
them for ownership checks and notification preferences.
"""

from datetime import UTC, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserInDB(BaseModel):
    """User record as stored in the user collection."""

    id: str = Field(..., description="Unique user identifier")
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    emailConfirmed: bool = False
    emailNotifications: bool = False
    browserNotifications: bool = True
    createdAt: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(
        extra="ignore",
        coerce_numbers_to_str=True,
        json_schema_extra={
            "example": {
                "id": "user_001",
                "username": "haven_owner",
                "email": "owner@example.com",
                "emailConfirmed": True,
                "emailNotifications": True,
                "browserNotifications": True,
            }
        },
    )

    @property
    def wants_email(self) -> bool:
        """Whether order emails may be sent to this user."""
        return bool(self.email and self.emailConfirmed and self.emailNotifications)


class ShopInDB(BaseModel):
    """Shop record; only the fields the order service relies on."""

    id: str
    ownerId: str
    name: str = ""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)
