"""Magic link handlers - one-time browser login links.

The bot mints a link for a user it already knows; opening the link in a
browser trades it for a normal session cookie. A link works once, expires
within minutes and dies with the security stamp it was minted under.
"""

import structlog

from merchant_auth.application.auth.commands import IssueMagicLinkCommand, RedeemMagicLinkCommand
from merchant_auth.application.auth.dtos import AuthSession, MagicLink
from merchant_auth.application.auth.session_resolver import SessionResolver
from merchant_auth.application.shared import CommandHandler
from merchant_auth.domain.identity.exceptions import MissingCredential, Revoked, UserNotFound
from merchant_auth.domain.identity.repositories import UserStore
from merchant_auth.infrastructure.auth import JWTManager

logger = structlog.get_logger(__name__)


class IssueMagicLinkHandler(CommandHandler[IssueMagicLinkCommand, MagicLink]):
    """Mints a login link token for an existing user."""

    def __init__(self, jwt_manager: JWTManager, user_store: UserStore) -> None:
        self.jwt_manager = jwt_manager
        self.user_store = user_store

    async def handle(self, command: IssueMagicLinkCommand) -> MagicLink:
        """Issue a link.

        Raises:
            UserNotFound: No such user.
            StoreUnavailable: User store failure.
        """
        identity = await self.user_store.get_by_id(command.user_id)
        if identity is None:
            raise UserNotFound("User not found", user_id=command.user_id)

        token, link = self.jwt_manager.issue_magic(identity)

        logger.info(
            "auth.magic_link.issued",
            user_id=identity.user_id,
            expires_at=link.claims.expires_at.isoformat(),
        )
        return MagicLink(token=token, identity=identity, expires_at=link.claims.expires_at)


class RedeemMagicLinkHandler(CommandHandler[RedeemMagicLinkCommand, AuthSession]):
    """Trades a login link for a session token.

    Flow:
    1. Verify signature, type and expiry of the link
    2. Compare its stamp with the stored one (SessionResolver)
    3. Mark the link used; a second redemption is refused
    4. Issue a session token
    """

    def __init__(
        self,
        jwt_manager: JWTManager,
        resolver: SessionResolver,
        user_store: UserStore,
    ) -> None:
        self.jwt_manager = jwt_manager
        self.resolver = resolver
        self.user_store = user_store

    async def handle(self, command: RedeemMagicLinkCommand) -> AuthSession:
        """Redeem a link.

        Raises:
            MissingCredential: No token in the link.
            InvalidSignature: Forged, garbled or not a login link.
            Expired: Link past its expiry.
            Revoked: Stamp rotated since minting, or link already used.
            StoreUnavailable: User store failure.
        """
        if not command.token:
            raise MissingCredential("No login link token")

        link = self.jwt_manager.verify_magic(command.token)
        identity = await self.resolver.confirm(link.claims)

        first_use = await self.user_store.consume_magic_token(
            link.token_id, identity.user_id, link.claims.expires_at
        )
        if not first_use:
            raise Revoked("Login link already used", user_id=identity.user_id)

        token, claims = self.jwt_manager.issue_with_claims(identity)

        logger.info(
            "auth.magic_link.redeemed",
            user_id=identity.user_id,
            role=identity.role.value,
        )

        return AuthSession(
            token=token,
            identity=identity,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )
