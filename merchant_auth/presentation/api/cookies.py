"""
Session cookie management.
"""

from dataclasses import dataclass

from starlette.responses import Response

from merchant_auth.config import Settings


@dataclass(frozen=True)
class SessionCookie:
    """Issues and clears the session cookie.

    ``SameSite=None`` (the default) is required when the app runs inside the
    Telegram webview iframe or behind a tunnel, and always goes with Secure.
    """

    name: str = "auth_token"
    max_age: int = 7 * 24 * 3600
    samesite: str = "none"
    secure: bool = True
    domain: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionCookie":
        return cls(
            name=settings.cookie_name,
            max_age=settings.session_ttl_seconds,
            samesite=settings.cookie_samesite,
            secure=settings.cookie_secure,
            domain=settings.cookie_domain,
        )

    def set(self, response: Response, token: str) -> None:
        """
        Put the session token in the cookie.

        Args:
            response: Outgoing response
            token: Signed session token
        """
        response.set_cookie(
            key=self.name,
            value=token,
            max_age=self.max_age,
            path="/",
            domain=self.domain,
            httponly=True,  # Not readable from JS
            secure=self.secure,
            samesite=self.samesite,
        )

    def clear(self, response: Response) -> None:
        """Delete the session cookie."""
        response.delete_cookie(
            key=self.name,
            path="/",
            domain=self.domain,
            httponly=True,
            secure=self.secure,
            samesite=self.samesite,
        )
