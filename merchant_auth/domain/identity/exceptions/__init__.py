"""Identity domain exceptions."""

from .auth_exceptions import (
    AuthError,
    Expired,
    InvalidSignature,
    MalformedInput,
    MissingCredential,
    Revoked,
    StoreUnavailable,
    UserNotFound,
)

__all__ = [
    "AuthError",
    "MissingCredential",
    "InvalidSignature",
    "Expired",
    "Revoked",
    "MalformedInput",
    "StoreUnavailable",
    "UserNotFound",
]
