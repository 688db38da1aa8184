"""Pydantic schemas for account endpoints."""
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

# E.164, with the leading '+' optional because WhatsApp gateways send bare digits
PHONE_NUMBER_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
TELEGRAM_ID_PATTERN = re.compile(r"^\d{1,20}$")


class UserResponse(BaseModel):
    """Response model for account info and linked chat identities."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str | None
    display_name: str | None
    telegram_id: str | None
    phone_number: str | None


class UserUpdate(BaseModel):
    """Schema for updating account profile fields."""

    display_name: str | None = Field(default=None, max_length=100)

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: str | None) -> str | None:
        """Trim whitespace; blank clears the name."""
        if v is None:
            return None
        return v.strip() or None


class IdentityLinkRequest(BaseModel):
    """External chat identity to link: a Telegram user id or a WhatsApp number."""

    external_id: str = Field(min_length=1, max_length=32)

    @field_validator("external_id")
    @classmethod
    def strip_external_id(cls, v: str) -> str:
        """Trim whitespace."""
        return v.strip()


def validate_identity(platform: str, external_id: str) -> str:
    """
    Validate an external identity for a platform.

    Raises:
        ValueError: If the identity has the wrong format.
    """
    if platform == "telegram":
        if not TELEGRAM_ID_PATTERN.match(external_id):
            raise ValueError("Invalid Telegram id (expected digits only)")
    elif not PHONE_NUMBER_PATTERN.match(external_id):
        raise ValueError("Invalid phone number format (use +[country][number])")
    return external_id
