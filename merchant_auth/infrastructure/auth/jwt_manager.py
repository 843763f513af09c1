"""
JWT Session Token Management

Two token types share one secret:
- ``session``: the cookie/bearer credential, long-lived and renewed by heartbeat
- ``magic``: a one-time login link handed out by the bot, minutes-long and
  redeemed once for a session
"""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from jose import JWTError, jwt

from merchant_auth.domain.identity.entities import Identity, SessionClaims
from merchant_auth.domain.identity.exceptions import Expired, InvalidSignature
from merchant_auth.domain.identity.value_objects import Role
from merchant_auth.domain.shared.clock import Clock, utc_now

logger = structlog.get_logger(__name__)

ALGORITHM = "HS256"
SESSION_TOKEN_TYPE = "session"
MAGIC_TOKEN_TYPE = "magic"
SESSION_TTL = timedelta(days=7)
MAGIC_TTL = timedelta(minutes=5)

_REQUIRED_CLAIMS = ("sub", "telegram_id", "role", "stamp", "iat", "exp")


@dataclass(frozen=True)
class MagicLinkClaims:
    """A verified login link: the identity it logs in and its one-time id."""

    token_id: str
    claims: SessionClaims


class JWTManager:
    """Issues and verifies signed session tokens.

    Has no store dependency: verification checks signature and expiry only,
    which keeps it cheap enough for the route gate. The security stamp is
    checked by the session resolver.

    The signing secret must be identical on every instance that issues or
    verifies tokens; a mismatch makes every session invalid.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = ALGORITHM,
        ttl: timedelta = SESSION_TTL,
        clock: Clock = utc_now,
        magic_ttl: timedelta = MAGIC_TTL,
    ):
        """
        Initialize JWT manager.

        Args:
            secret_key: Secret key for signing tokens.
            algorithm: HMAC algorithm understood by python-jose.
            ttl: Session token lifetime.
            clock: Source of the current time.
            magic_ttl: Login link lifetime.
        """
        if not secret_key:
            raise ValueError("secret_key is required")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self.magic_ttl = magic_ttl
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return int(self.ttl.total_seconds())

    def issue(self, claims: SessionClaims | Identity) -> str:
        """
        Create a session token.

        Args:
            claims: Identity fields to embed; issue/expiry times are ignored
                and set from the clock.

        Returns:
            Encoded JWT token
        """
        token, _ = self.issue_with_claims(claims)
        return token

    def issue_with_claims(self, claims: SessionClaims | Identity) -> tuple[str, SessionClaims]:
        """
        Create a session token and return it with the claims it carries.

        Returns:
            (encoded token, claims with issued_at/expires_at set)
        """
        return self._encode(claims, SESSION_TOKEN_TYPE, self.ttl)

    def issue_magic(self, claims: SessionClaims | Identity) -> tuple[str, MagicLinkClaims]:
        """
        Create a one-time login link token.

        The token embeds the current security stamp, so rotating the stamp
        also kills links that were never clicked.

        Returns:
            (encoded token, claims including the one-time token id)
        """
        token_id = uuid.uuid4().hex
        token, issued = self._encode(claims, MAGIC_TOKEN_TYPE, self.magic_ttl, jti=token_id)
        return token, MagicLinkClaims(token_id=token_id, claims=issued)

    def verify(self, token: str) -> SessionClaims:
        """
        Verify and decode a session token.

        Args:
            token: JWT token to verify

        Returns:
            Decoded claims with issued_at/expires_at set

        Raises:
            InvalidSignature: Bad signature, wrong secret or garbled claims.
            Expired: The token is past its expiry.
        """
        _, claims = self._decode(token, SESSION_TOKEN_TYPE)
        return claims

    def verify_magic(self, token: str) -> MagicLinkClaims:
        """
        Verify a login link token. Does not check whether it was used.

        Raises:
            InvalidSignature: Bad signature, not a login link, no token id.
            Expired: The link is past its expiry.
        """
        payload, claims = self._decode(token, MAGIC_TOKEN_TYPE)
        token_id = payload.get("jti")
        if not token_id:
            raise InvalidSignature("Login link has no token id")
        return MagicLinkClaims(token_id=str(token_id), claims=claims)

    def _encode(
        self,
        claims: SessionClaims | Identity,
        token_type: str,
        ttl: timedelta,
        **extra: Any,
    ) -> tuple[str, SessionClaims]:
        if isinstance(claims, Identity):
            claims = SessionClaims.from_identity(claims)

        # JWT NumericDate has second precision
        now = self._clock().replace(microsecond=0)
        expires_at = now + ttl
        to_encode: dict[str, Any] = {
            "sub": claims.user_id,
            "telegram_id": str(claims.telegram_id),
            "role": Role.parse(claims.role).value,
            "stamp": claims.security_stamp,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "type": token_type,
            **extra,
        }
        if claims.merchant_id is not None:
            to_encode["merchant_id"] = claims.merchant_id

        token = jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        issued = replace(
            claims,
            role=Role.parse(claims.role),
            issued_at=now,
            expires_at=expires_at,
        )
        return token, issued

    def _decode(self, token: str, token_type: str) -> tuple[dict[str, Any], SessionClaims]:
        if not token:
            raise InvalidSignature("Empty token")

        try:
            # Expiry is checked below against the injected clock
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as e:
            raise InvalidSignature("Token signature check failed") from e

        if payload.get("type") != token_type:
            raise InvalidSignature("Wrong token type", expected=token_type)

        claims = self._claims_from_payload(payload)

        if self._clock() >= claims.expires_at:
            raise Expired("Token expired", user_id=claims.user_id)

        return payload, claims

    @staticmethod
    def _claims_from_payload(payload: dict[str, Any]) -> SessionClaims:
        missing = [name for name in _REQUIRED_CLAIMS if payload.get(name) in (None, "")]
        if missing:
            raise InvalidSignature("Token is missing claims", missing=",".join(missing))

        try:
            return SessionClaims(
                user_id=str(payload["sub"]),
                telegram_id=str(payload["telegram_id"]),
                role=Role.parse(payload["role"]),
                security_stamp=str(payload["stamp"]),
                merchant_id=payload.get("merchant_id"),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidSignature("Token claims are malformed") from e
