"""Authentication infrastructure.

JWT session token management and Telegram auth verification.
"""

from .jwt_manager import JWTManager, MagicLinkClaims
from .telegram_auth import (
    InitDataVerification,
    TelegramInitDataVerifier,
    compute_init_data_hash,
    decode_init_data,
)

__all__ = [
    "JWTManager",
    "MagicLinkClaims",
    "TelegramInitDataVerifier",
    "InitDataVerification",
    "decode_init_data",
    "compute_init_data_hash",
]
