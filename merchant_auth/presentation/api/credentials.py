"""Session credential extraction from the transport."""

from starlette.requests import HTTPConnection


def extract_session_token(request: HTTPConnection, cookie_name: str = "auth_token") -> str | None:
    """Read the session token from a request.

    Priority:
    1. Session cookie (primary path).
    2. ``Authorization: Bearer <token>`` header, used by Mini App clients
       whose webview blocks third-party cookies.

    Returns:
        The raw token, or None if no credential was sent.
    """
    token = request.cookies.get(cookie_name)
    if token:
        return token

    authorization = request.headers.get("authorization")
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
