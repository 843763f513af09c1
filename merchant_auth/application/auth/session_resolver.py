"""SessionResolver - the authoritative session check.

The route gate only checks signature and expiry. Revocation (security stamp
comparison) is enforced here and nowhere else, so every handler that
actually needs an Identity must go through the resolver.
"""

import asyncio

import structlog

from merchant_auth.domain.identity.entities import Identity, SessionClaims
from merchant_auth.domain.identity.exceptions import (
    AuthError,
    Expired,
    InvalidSignature,
    MissingCredential,
    Revoked,
    StoreUnavailable,
)
from merchant_auth.domain.identity.repositories import UserStore
from merchant_auth.infrastructure.auth import JWTManager
from merchant_auth.infrastructure.retry import retry_with_backoff

logger = structlog.get_logger(__name__)


class SessionResolver:
    """Turns a session token into an Identity, or nothing.

    Steps:
        1. Verify signature and expiry (JWTManager).
        2. Load the current security stamp (UserStore, with timeout + retry).
        3. Reject if the embedded stamp differs (revoked session).
        4. Rebuild the Identity from the claims.

    Failure policy:
        - Missing/invalid/expired/revoked token -> ``resolve`` returns None.
        - Store failure or timeout -> ``StoreUnavailable`` propagates. Access
          is never granted on a failed lookup.

    Example:
        >>> resolver = SessionResolver(jwt_manager, user_store)
        >>> identity = await resolver.resolve(cookie_value)
        >>> if identity is None:
        ...     return unauthorized()
    """

    def __init__(
        self,
        jwt_manager: JWTManager,
        user_store: UserStore,
        store_timeout: float = 2.0,
        store_retries: int = 2,
        retry_base_delay: float = 0.05,
    ) -> None:
        """Initialize resolver.

        Args:
            jwt_manager: Token service used for signature/expiry checks.
            user_store: Source of the current security stamp.
            store_timeout: Seconds allowed for a single stamp lookup.
            store_retries: Retries after a failed or timed-out lookup.
            retry_base_delay: First backoff delay in seconds.
        """
        self._jwt = jwt_manager
        self._store = user_store
        self._store_timeout = store_timeout
        self._load_stamp = retry_with_backoff(
            max_retries=store_retries,
            base_delay=retry_base_delay,
            retryable_exceptions=(StoreUnavailable,),
        )(self._load_stamp_once)

    async def _load_stamp_once(self, user_id: str) -> str | None:
        try:
            return await asyncio.wait_for(
                self._store.get_security_stamp(user_id),
                timeout=self._store_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("auth.session.store_timeout", user_id=user_id)
            raise StoreUnavailable("Stamp lookup timed out", user_id=user_id) from e

    async def authenticate(self, token: str | None) -> Identity:
        """Resolve a token or raise the specific failure.

        Raises:
            MissingCredential: No token supplied.
            InvalidSignature: Bad signature or garbled token.
            Expired: Token past expiry.
            Revoked: Stamp rotated (or user deleted) since issuance.
            StoreUnavailable: Stamp lookup failed after retries.
        """
        if not token:
            raise MissingCredential("No session credential")

        return await self.confirm(self._jwt.verify(token))

    async def confirm(self, claims: SessionClaims) -> Identity:
        """Compare already-verified claims with the stored stamp.

        Raises:
            Revoked: Stamp rotated (or user deleted) since issuance.
            StoreUnavailable: Stamp lookup failed after retries.
        """
        current_stamp = await self._load_stamp(claims.user_id)
        if current_stamp is None:
            raise Revoked("User no longer exists", user_id=claims.user_id)
        if current_stamp != claims.security_stamp:
            raise Revoked("Security stamp mismatch", user_id=claims.user_id)

        return claims.to_identity()

    async def resolve(self, token: str | None) -> Identity | None:
        """Resolve a token to an Identity, or None for any credential failure.

        Raises:
            StoreUnavailable: Stamp lookup failed after retries.
        """
        try:
            return await self.authenticate(token)
        except MissingCredential:
            return None
        except Expired as e:
            logger.info("auth.session.expired", **e.context)
        except Revoked as e:
            logger.info("auth.session.revoked", **e.context)
        except InvalidSignature as e:
            logger.warning("auth.session.invalid", error=e.message)
        except AuthError as e:
            logger.warning("auth.session.rejected", reason=e.reason)
        return None
