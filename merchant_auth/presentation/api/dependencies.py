"""API Dependencies.

FastAPI dependency injection for the auth container and the current
identity. Services come from ``app.state.auth`` (see ``AuthContainer``).
"""

from typing import Annotated, Callable

from fastapi import Depends, HTTPException, Request, status

from merchant_auth.domain.identity.entities import Identity
from merchant_auth.domain.identity.exceptions import AuthError
from merchant_auth.domain.identity.value_objects import Permission
from merchant_auth.presentation.api.container import AuthContainer
from merchant_auth.presentation.api.credentials import extract_session_token


def get_container(request: Request) -> AuthContainer:
    """Get the auth container attached by the application factory."""
    container: AuthContainer | None = getattr(request.app.state, "auth", None)
    if container is None:
        raise RuntimeError("Auth container not initialized. Call create_app() first.")
    return container


Container = Annotated[AuthContainer, Depends(get_container)]


def get_session_token(request: Request, container: Container) -> str | None:
    """Raw session token from the cookie or Bearer header."""
    return extract_session_token(request, container.cookie.name)


SessionToken = Annotated[str | None, Depends(get_session_token)]


async def get_optional_identity(container: Container, token: SessionToken) -> Identity | None:
    """Resolve the session, or None when there is no valid session.

    Raises:
        StoreUnavailable: Stamp lookup failed (handled as 503).
    """
    return await container.resolver.resolve(token)


OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]


async def require_identity(identity: OptionalIdentity) -> Identity:
    """Get the current identity or fail with 401 (cookie cleared by the handler)."""
    if identity is None:
        raise AuthError("Authentication required")
    return identity


CurrentIdentity = Annotated[Identity, Depends(require_identity)]


def require_permission(permission: Permission) -> Callable:
    """Dependency factory: the current identity must hold ``permission``.

    Example:
        >>> @router.get("/orders", dependencies=[Depends(require_permission(Permission.ACCESS_DASHBOARD))])
        ... async def list_orders(): ...
    """

    async def dependency(identity: CurrentIdentity) -> Identity:
        if not identity.can(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission.value}",
            )
        return identity

    return dependency
