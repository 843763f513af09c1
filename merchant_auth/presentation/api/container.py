"""AuthContainer - composition root of the auth core.

Everything a request handler needs is built once per application by
``build_container`` and held on ``app.state.auth``; nothing lives in
module-level globals.
"""

from dataclasses import dataclass, field
from datetime import timedelta

from merchant_auth.application.auth import (
    AuthenticateTelegramHandler,
    IssueMagicLinkHandler,
    RedeemMagicLinkHandler,
    RenewSessionHandler,
    RevokeSessionsHandler,
    SessionResolver,
)
from merchant_auth.config import Settings
from merchant_auth.domain.identity.repositories import UserStore
from merchant_auth.domain.shared.clock import Clock, utc_now
from merchant_auth.infrastructure.auth import JWTManager, TelegramInitDataVerifier
from merchant_auth.presentation.api.cookies import SessionCookie
from merchant_auth.presentation.api.routing import RouteTable, default_route_table


@dataclass
class AuthContainer:
    """Process-wide auth services (immutable after construction)."""

    settings: Settings
    jwt_manager: JWTManager
    verifier: TelegramInitDataVerifier
    user_store: UserStore
    resolver: SessionResolver
    cookie: SessionCookie
    routes: RouteTable
    clock: Clock = field(default=utc_now)

    def authenticate_telegram_handler(self) -> AuthenticateTelegramHandler:
        return AuthenticateTelegramHandler(
            verifier=self.verifier,
            jwt_manager=self.jwt_manager,
            user_store=self.user_store,
        )

    def renew_session_handler(self) -> RenewSessionHandler:
        return RenewSessionHandler(resolver=self.resolver, jwt_manager=self.jwt_manager)

    def revoke_sessions_handler(self) -> RevokeSessionsHandler:
        return RevokeSessionsHandler(
            resolver=self.resolver,
            user_store=self.user_store,
            clock=self.clock,
        )

    def issue_magic_link_handler(self) -> IssueMagicLinkHandler:
        return IssueMagicLinkHandler(jwt_manager=self.jwt_manager, user_store=self.user_store)

    def redeem_magic_link_handler(self) -> RedeemMagicLinkHandler:
        return RedeemMagicLinkHandler(
            jwt_manager=self.jwt_manager,
            resolver=self.resolver,
            user_store=self.user_store,
        )


def build_container(
    settings: Settings,
    user_store: UserStore,
    clock: Clock = utc_now,
) -> AuthContainer:
    """Wire the auth services from settings.

    Args:
        settings: Application settings (secret, bot token, lifetimes).
        user_store: Persistent owner of identities and stamps.
        clock: Source of the current time (tests inject a fixed clock).
    """
    jwt_manager = JWTManager(
        secret_key=settings.secret_key,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(seconds=settings.session_ttl_seconds),
        magic_ttl=timedelta(seconds=settings.magic_link_ttl_seconds),
        clock=clock,
    )
    verifier = TelegramInitDataVerifier(
        bot_token=settings.telegram_bot_token,
        max_age_seconds=settings.init_data_max_age_seconds,
        clock=clock,
    )
    resolver = SessionResolver(
        jwt_manager=jwt_manager,
        user_store=user_store,
        store_timeout=settings.store_timeout_seconds,
        store_retries=settings.store_retry_attempts,
        retry_base_delay=settings.store_retry_base_delay,
    )
    return AuthContainer(
        settings=settings,
        jwt_manager=jwt_manager,
        verifier=verifier,
        user_store=user_store,
        resolver=resolver,
        cookie=SessionCookie.from_settings(settings),
        routes=default_route_table(settings),
        clock=clock,
    )
