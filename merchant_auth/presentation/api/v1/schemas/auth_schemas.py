"""Pydantic schemas for Auth API requests/responses.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from merchant_auth.domain.identity.entities import Identity


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================


class TelegramAuthRequest(CamelModel):
    """Request body for Telegram Mini App login.

    Example:
        {
            "initData": "query_id=AAH...&user=%7B%22id%22%3A...&auth_date=...&hash=...",
            "merchantId": "m-42"
        }
    """

    init_data: str = Field(default="", description="Raw Telegram.WebApp.initData string")
    merchant_id: str | None = Field(default=None, description="Storefront the app was opened from")


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================


class IdentityResponse(CamelModel):
    """Public view of an authenticated identity."""

    user_id: str
    telegram_id: str
    role: str
    merchant_id: str | None = None
    permissions: list[str] = Field(default_factory=list)

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls.model_validate(identity.to_public_dict())


class AuthResponse(CamelModel):
    """Successful login.

    The token is also set as an HttpOnly cookie; the body copy is for
    clients that have to fall back to the Authorization header.
    """

    token: str
    identity: IdentityResponse
    expires_at: datetime


class HeartbeatResponse(CamelModel):
    active: bool = True
    expires_at: datetime
    next_heartbeat_in: int = Field(description="Seconds until the client should call again")


class SuccessResponse(CamelModel):
    success: bool = True


class ErrorResponse(CamelModel):
    error: str
    message: str
