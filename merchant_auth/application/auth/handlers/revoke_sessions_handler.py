"""RevokeSessions Handler - global logout."""

import structlog

from merchant_auth.application.auth.commands import RevokeSessionsCommand
from merchant_auth.application.auth.dtos import Revocation
from merchant_auth.application.auth.session_resolver import SessionResolver
from merchant_auth.application.shared import CommandHandler
from merchant_auth.domain.identity.exceptions import Revoked, UserNotFound
from merchant_auth.domain.identity.repositories import UserStore
from merchant_auth.domain.shared.clock import Clock, utc_now

logger = structlog.get_logger(__name__)


class RevokeSessionsHandler(CommandHandler[RevokeSessionsCommand, Revocation]):
    """Rotates the caller's security stamp.

    Every token issued before the rotation, on any device, fails the
    resolver's stamp comparison from the next request on, expired or not.
    """

    def __init__(
        self,
        resolver: SessionResolver,
        user_store: UserStore,
        clock: Clock = utc_now,
    ) -> None:
        self.resolver = resolver
        self.user_store = user_store
        self._clock = clock

    async def handle(self, command: RevokeSessionsCommand) -> Revocation:
        """Revoke all sessions of the authenticated user.

        Raises:
            AuthError: No valid session to act on (including a user deleted
                after the session was resolved).
            StoreUnavailable: Store failure.
        """
        identity = await self.resolver.authenticate(command.session_token)
        try:
            await self.user_store.rotate_security_stamp(identity.user_id)
        except UserNotFound as e:
            raise Revoked("User no longer exists", user_id=identity.user_id) from e

        revocation = Revocation(identity=identity, revoked_at=self._clock())

        # Audit trail
        logger.warning(
            "auth.sessions_revoked",
            actor_user_id=identity.user_id,
            actor_telegram_id=identity.telegram_id,
            actor_role=identity.role.value,
            revoked_at=revocation.revoked_at.isoformat(),
        )
        return revocation
