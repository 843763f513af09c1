"""HTTP middleware."""

from .request_context import RequestContextMiddleware
from .route_gate import RouteGateMiddleware, login_redirect, unauthorized_response

__all__ = [
    "RequestContextMiddleware",
    "RouteGateMiddleware",
    "login_redirect",
    "unauthorized_response",
]
