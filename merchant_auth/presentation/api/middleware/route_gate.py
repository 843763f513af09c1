"""Route gate - shallow session check in front of page routes.

The gate only verifies the token signature and expiry. It never touches the
user store, so a revoked-but-signed token passes here; handlers resolve the
session through SessionResolver and send revoked users back to the login
page with a ``reason`` (which this gate lets through, see loop breaker).

API rules never redirect: a missing or invalid session gets a 401 JSON
body and a missing capability a 403.
"""

from urllib.parse import urlencode

import structlog
from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from merchant_auth.domain.identity.entities import SessionClaims
from merchant_auth.domain.identity.exceptions import AuthError
from merchant_auth.presentation.api.container import AuthContainer
from merchant_auth.presentation.api.cookies import SessionCookie
from merchant_auth.presentation.api.credentials import extract_session_token
from merchant_auth.presentation.api.routing import RouteKind

logger = structlog.get_logger(__name__)

UNAUTHORIZED_MESSAGE = "Invalid or expired credentials"


def unauthorized_response(
    cookie: SessionCookie | None,
    message: str = UNAUTHORIZED_MESSAGE,
) -> JSONResponse:
    """401 JSON body for API callers, with the session cookie cleared."""
    response = JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Unauthorized", "message": message},
    )
    if cookie is not None:
        cookie.clear(response)
    return response


def login_redirect(
    login_path: str,
    reason: str,
    cookie: SessionCookie,
    redirect_to: str | None = None,
) -> RedirectResponse:
    """Redirect to a login page with a reason and a cleared session cookie.

    Args:
        login_path: Login page to send the user to.
        reason: ``auth_required``, ``session_expired``, ``session_invalid``...
        cookie: Session cookie policy (used to clear it).
        redirect_to: Page to come back to after login.
    """
    params = {"reason": reason}
    if redirect_to:
        params["redirect"] = redirect_to

    response = RedirectResponse(
        url=f"{login_path}?{urlencode(params)}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )
    cookie.clear(response)
    return response


class RouteGateMiddleware(BaseHTTPMiddleware):
    """Redirects unauthenticated visitors away from protected pages.

    Services are read from ``app.state.auth`` on each request, so the
    container may be attached after the middleware stack is built.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        container: AuthContainer | None = getattr(request.app.state, "auth", None)
        if container is None:
            return await call_next(request)

        path = request.url.path
        match = container.routes.classify(path)

        if match.kind in (RouteKind.BYPASS, RouteKind.OTHER):
            return await call_next(request)

        token = extract_session_token(request, container.cookie.name)
        claims = self._verify(container, token)

        if match.kind is RouteKind.LOGIN_PAGE:
            if "reason" in request.query_params:
                # Loop breaker: never bounce a user who was just sent here
                response = await call_next(request)
                container.cookie.clear(response)
                return response

            if claims is not None:
                landing = container.routes.landing_for(claims.role)
                logger.info("route_gate.redirect", path=path, target=landing, reason="already_authenticated")
                return RedirectResponse(url=landing, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

            return await call_next(request)

        # PROTECTED
        rule = match.rule
        if claims is None:
            reason = "session_expired" if token else "auth_required"
            if rule.api:
                logger.info("route_gate.unauthorized", path=path, reason=reason)
                return unauthorized_response(container.cookie)
            login_path = rule.login_path or container.settings.app_login_path
            logger.info("route_gate.redirect", path=path, target=login_path, reason=reason)
            return login_redirect(login_path, reason, container.cookie, redirect_to=path)

        if rule.permission is not None and rule.permission not in claims.role.permissions:
            if rule.api:
                logger.info("route_gate.forbidden", path=path, role=claims.role.value)
                return JSONResponse(
                    status_code=status.HTTP_403_FORBIDDEN,
                    content={"error": "Forbidden", "message": "Insufficient permissions"},
                )
            landing = container.routes.landing_for(claims.role)
            logger.info(
                "route_gate.redirect",
                path=path,
                target=landing,
                reason="forbidden",
                role=claims.role.value,
            )
            return RedirectResponse(url=landing, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

        request.state.session_claims = claims
        return await call_next(request)

    @staticmethod
    def _verify(container: AuthContainer, token: str | None) -> SessionClaims | None:
        if not token:
            return None
        try:
            return container.jwt_manager.verify(token)
        except AuthError as e:
            logger.debug("route_gate.token_rejected", reason=e.reason)
            return None
