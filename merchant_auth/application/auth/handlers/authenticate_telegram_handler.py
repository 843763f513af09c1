"""AuthenticateTelegram Handler - Telegram initData login.

Verifies the Mini App payload, finds or creates the user and issues a
session token carrying the user's current security stamp.
"""

import structlog

from merchant_auth.application.auth.commands import AuthenticateTelegramCommand
from merchant_auth.application.auth.dtos import AuthSession
from merchant_auth.application.shared import CommandHandler
from merchant_auth.domain.identity.exceptions import InvalidSignature
from merchant_auth.domain.identity.repositories import UserStore
from merchant_auth.infrastructure.auth import (
    JWTManager,
    TelegramInitDataVerifier,
    decode_init_data,
)

logger = structlog.get_logger(__name__)


class AuthenticateTelegramHandler(CommandHandler[AuthenticateTelegramCommand, AuthSession]):
    """Handler for AuthenticateTelegram command.

    Flow:
    1. Decode initData (MalformedInput on garbage)
    2. Verify HMAC signature + freshness (InvalidSignature on any failure)
    3. Find user by Telegram id, create on first login
    4. Issue session token
    """

    def __init__(
        self,
        verifier: TelegramInitDataVerifier,
        jwt_manager: JWTManager,
        user_store: UserStore,
    ) -> None:
        self.verifier = verifier
        self.jwt_manager = jwt_manager
        self.user_store = user_store

    async def handle(self, command: AuthenticateTelegramCommand) -> AuthSession:
        """Log in with Telegram.

        Raises:
            MalformedInput: initData missing or not a query string.
            InvalidSignature: Verification failed (reason is not disclosed).
            StoreUnavailable: User store failure.
        """
        fields = decode_init_data(command.init_data)

        verification = self.verifier.verify(fields)
        if not verification.valid or verification.user is None:
            raise InvalidSignature("Invalid or expired Telegram authentication data")

        telegram_user = verification.user
        identity = await self.user_store.find_by_telegram_id(telegram_user.telegram_id)
        created = identity is None

        if identity is None:
            identity = await self.user_store.create(telegram_user)
        else:
            await self.user_store.touch_login(identity.user_id, telegram_user)

        if command.merchant_id and command.merchant_id != identity.merchant_id:
            # Merchant linking belongs to the merchant service
            logger.info(
                "auth.telegram.merchant_hint_ignored",
                user_id=identity.user_id,
                merchant_id=command.merchant_id,
            )

        token, claims = self.jwt_manager.issue_with_claims(identity)

        logger.info(
            "auth.telegram.success",
            user_id=identity.user_id,
            role=identity.role.value,
            created=created,
        )

        return AuthSession(
            token=token,
            identity=identity,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
            created=created,
        )
