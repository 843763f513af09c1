"""Auth use case results."""

from dataclasses import dataclass
from datetime import datetime
from urllib.parse import urlencode

from merchant_auth.domain.identity.entities import Identity


@dataclass(frozen=True)
class AuthSession:
    """A freshly issued session token and the identity it belongs to."""

    token: str
    identity: Identity
    issued_at: datetime
    expires_at: datetime
    created: bool = False


@dataclass(frozen=True)
class Revocation:
    """Audit record of a global logout."""

    identity: Identity
    revoked_at: datetime


@dataclass(frozen=True)
class MagicLink:
    """A freshly minted login link token."""

    token: str
    identity: Identity
    expires_at: datetime

    def url(self, base_url: str, path: str = "/api/auth/magic", redirect: str | None = None) -> str:
        """Absolute link for the bot to send, e.g. ``https://app.example/api/auth/magic?token=...``."""
        params = {"token": self.token}
        if redirect:
            params["redirect"] = redirect
        return f"{base_url.rstrip('/')}{path}?{urlencode(params)}"
