"""RenewSession Handler - session heartbeat."""

import structlog

from merchant_auth.application.auth.commands import RenewSessionCommand
from merchant_auth.application.auth.dtos import AuthSession
from merchant_auth.application.auth.session_resolver import SessionResolver
from merchant_auth.application.shared import CommandHandler
from merchant_auth.infrastructure.auth import JWTManager

logger = structlog.get_logger(__name__)


class RenewSessionHandler(CommandHandler[RenewSessionCommand, AuthSession]):
    """Reissues a token for an active session.

    Goes through the full resolver, so a revoked session cannot renew
    itself. The new token keeps the stamp and gets a fresh iat/exp, which
    always moves expiry forward. Safe to call repeatedly.
    """

    def __init__(self, resolver: SessionResolver, jwt_manager: JWTManager) -> None:
        self.resolver = resolver
        self.jwt_manager = jwt_manager

    async def handle(self, command: RenewSessionCommand) -> AuthSession:
        """Renew the session.

        Raises:
            AuthError: Missing, invalid, expired or revoked session.
            StoreUnavailable: Stamp lookup failed.
        """
        identity = await self.resolver.authenticate(command.session_token)
        token, claims = self.jwt_manager.issue_with_claims(identity)

        logger.debug("auth.heartbeat.renewed", user_id=identity.user_id)

        return AuthSession(
            token=token,
            identity=identity,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )
