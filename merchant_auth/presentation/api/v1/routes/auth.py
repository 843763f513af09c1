"""Authentication Routes.

Telegram Mini App login, bot login links, session heartbeat, logout and
global revocation. Credential failures raise AuthError subclasses; the
application's exception handlers turn them into 401 (cookie cleared) or 400
for malformed input. The login link endpoint is opened in a browser, so it
answers failures with a login page redirect instead.
"""

import structlog
from fastapi import APIRouter, Query, Response, status
from fastapi.responses import RedirectResponse

from merchant_auth.application.auth import (
    AuthenticateTelegramCommand,
    RedeemMagicLinkCommand,
    RenewSessionCommand,
    RevokeSessionsCommand,
)
from merchant_auth.domain.identity.exceptions import AuthError, Expired
from merchant_auth.presentation.api.dependencies import Container, CurrentIdentity, SessionToken
from merchant_auth.presentation.api.middleware import login_redirect
from merchant_auth.presentation.api.routing import relative_path
from merchant_auth.presentation.api.v1.schemas import (
    AuthResponse,
    ErrorResponse,
    HeartbeatResponse,
    IdentityResponse,
    SuccessResponse,
    TelegramAuthRequest,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])

_UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "No valid session"}}


@router.post(
    "/telegram",
    response_model=AuthResponse,
    responses={
        400: {"model": ErrorResponse, "description": "initData missing or malformed"},
        **_UNAUTHORIZED,
    },
)
async def authenticate_telegram(
    request: TelegramAuthRequest,
    response: Response,
    container: Container,
) -> AuthResponse:
    """Authenticate using Telegram Mini App init data.

    Verifies the initData signature, finds or creates the user and sets the
    session cookie.
    """
    handler = container.authenticate_telegram_handler()
    session = await handler.handle(
        AuthenticateTelegramCommand(
            init_data=request.init_data,
            merchant_id=request.merchant_id,
        )
    )

    container.cookie.set(response, session.token)

    return AuthResponse(
        token=session.token,
        identity=IdentityResponse.from_identity(session.identity),
        expires_at=session.expires_at,
    )


@router.post("/heartbeat", response_model=HeartbeatResponse, responses=_UNAUTHORIZED)
async def heartbeat(
    response: Response,
    container: Container,
    token: SessionToken,
) -> HeartbeatResponse:
    """Slide the session window.

    Clients call this while the app is open; a revoked or expired session
    gets 401 and nothing is issued.
    """
    handler = container.renew_session_handler()
    session = await handler.handle(RenewSessionCommand(session_token=token))

    container.cookie.set(response, session.token)

    return HeartbeatResponse(
        active=True,
        expires_at=session.expires_at,
        next_heartbeat_in=container.settings.heartbeat_interval_seconds,
    )


@router.post("/revoke", response_model=SuccessResponse, responses=_UNAUTHORIZED)
@router.post("/logout-global", response_model=SuccessResponse, responses=_UNAUTHORIZED)
async def revoke_sessions(
    response: Response,
    container: Container,
    token: SessionToken,
) -> SuccessResponse:
    """Log out everywhere: every token of the caller stops working."""
    handler = container.revoke_sessions_handler()
    await handler.handle(RevokeSessionsCommand(session_token=token))

    container.cookie.clear(response)
    return SuccessResponse(success=True)


@router.post("/logout", response_model=SuccessResponse)
async def logout(response: Response, container: Container) -> SuccessResponse:
    """Log out on this device only (clears the cookie, no revocation)."""
    container.cookie.clear(response)
    return SuccessResponse(success=True)


@router.get("/me", response_model=IdentityResponse, responses=_UNAUTHORIZED)
async def get_current_identity(identity: CurrentIdentity) -> IdentityResponse:
    """Get the identity behind the current session."""
    return IdentityResponse.from_identity(identity)


@router.get(
    "/magic",
    response_class=RedirectResponse,
    response_model=None,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
)
async def redeem_magic_link(
    container: Container,
    token: str = Query(default="", description="Login link token minted for the bot"),
    redirect: str | None = Query(default=None, description="Relative path to land on"),
) -> RedirectResponse:
    """Trade a one-time login link for the session cookie.

    Success redirects to ``redirect`` (relative paths only) or the role's
    landing page. A used, expired, revoked or forged link redirects to the
    login page with ``reason=link_expired`` or ``reason=link_invalid``.
    """
    target = relative_path(redirect)
    handler = container.redeem_magic_link_handler()

    try:
        session = await handler.handle(RedeemMagicLinkCommand(token=token))
    except AuthError as e:
        reason = "link_expired" if isinstance(e, Expired) else "link_invalid"
        logger.info("auth.magic_link.rejected", reason=e.reason)
        login_path = container.routes.login_path_for(target, container.settings.app_login_path)
        return login_redirect(login_path, reason, container.cookie, redirect_to=target)

    response = RedirectResponse(
        url=target or container.routes.landing_for(session.identity.role),
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )
    container.cookie.set(response, session.token)
    return response
