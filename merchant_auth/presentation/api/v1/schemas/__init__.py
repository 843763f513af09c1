"""API v1 schemas."""

from .auth_schemas import (
    AuthResponse,
    ErrorResponse,
    HeartbeatResponse,
    IdentityResponse,
    SuccessResponse,
    TelegramAuthRequest,
)

__all__ = [
    "TelegramAuthRequest",
    "IdentityResponse",
    "AuthResponse",
    "HeartbeatResponse",
    "SuccessResponse",
    "ErrorResponse",
]
