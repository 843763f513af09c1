"""Identity entities."""

from .identity import Identity
from .session_claims import SessionClaims
from .telegram_user import TelegramUser

__all__ = ["Identity", "SessionClaims", "TelegramUser"]
