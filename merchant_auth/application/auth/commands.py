"""Auth commands."""

from dataclasses import dataclass

from merchant_auth.application.shared import Command


@dataclass(frozen=True)
class AuthenticateTelegramCommand(Command):
    """Log in with the raw initData string from the Telegram WebApp."""

    init_data: str
    merchant_id: str | None = None


@dataclass(frozen=True)
class RenewSessionCommand(Command):
    """Heartbeat: extend an active session's sliding window."""

    session_token: str | None


@dataclass(frozen=True)
class RevokeSessionsCommand(Command):
    """Global logout: invalidate every token of the session's owner."""

    session_token: str | None


@dataclass(frozen=True)
class IssueMagicLinkCommand(Command):
    """Mint a one-time browser login link for an existing user."""

    user_id: str


@dataclass(frozen=True)
class RedeemMagicLinkCommand(Command):
    """Trade a login link token for a session."""

    token: str | None
