"""Auth command handlers."""

from .authenticate_telegram_handler import AuthenticateTelegramHandler
from .magic_link_handlers import IssueMagicLinkHandler, RedeemMagicLinkHandler
from .renew_session_handler import RenewSessionHandler
from .revoke_sessions_handler import RevokeSessionsHandler

__all__ = [
    "AuthenticateTelegramHandler",
    "IssueMagicLinkHandler",
    "RedeemMagicLinkHandler",
    "RenewSessionHandler",
    "RevokeSessionsHandler",
]
