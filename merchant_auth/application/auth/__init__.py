"""Auth use cases: login, magic links, heartbeat, global logout and session resolution."""

from .commands import (
    AuthenticateTelegramCommand,
    IssueMagicLinkCommand,
    RedeemMagicLinkCommand,
    RenewSessionCommand,
    RevokeSessionsCommand,
)
from .dtos import AuthSession, MagicLink, Revocation
from .handlers import (
    AuthenticateTelegramHandler,
    IssueMagicLinkHandler,
    RedeemMagicLinkHandler,
    RenewSessionHandler,
    RevokeSessionsHandler,
)
from .session_resolver import SessionResolver

__all__ = [
    "AuthenticateTelegramCommand",
    "IssueMagicLinkCommand",
    "RedeemMagicLinkCommand",
    "RenewSessionCommand",
    "RevokeSessionsCommand",
    "AuthSession",
    "MagicLink",
    "Revocation",
    "AuthenticateTelegramHandler",
    "IssueMagicLinkHandler",
    "RedeemMagicLinkHandler",
    "RenewSessionHandler",
    "RevokeSessionsHandler",
    "SessionResolver",
]
