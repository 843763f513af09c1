"""Static route classification for the route gate."""

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from merchant_auth.config import Settings
from merchant_auth.domain.identity.value_objects import Permission, Role


class RouteKind(str, Enum):
    BYPASS = "bypass"
    LOGIN_PAGE = "login_page"
    PROTECTED = "protected"
    OTHER = "other"


@dataclass(frozen=True)
class RouteRule:
    """A path prefix and how the gate treats it.

    Attributes:
        prefix: Path prefix, matched on segment boundaries.
        kind: Gate behaviour for matching paths.
        permission: Capability required for PROTECTED rules (None = any
            authenticated user).
        login_path: Where unauthenticated visitors are sent.
        api: JSON endpoints. Failures get a 401/403 body instead of a
            login redirect.
    """

    prefix: str
    kind: RouteKind
    permission: Permission | None = None
    login_path: str | None = None
    api: bool = False

    def matches(self, path: str) -> bool:
        if self.prefix == "/":
            return True
        return path == self.prefix or path.startswith(self.prefix.rstrip("/") + "/")


@dataclass(frozen=True)
class RouteMatch:
    kind: RouteKind
    rule: RouteRule | None = None


_OTHER = RouteMatch(kind=RouteKind.OTHER)
_BYPASS = RouteMatch(kind=RouteKind.BYPASS)


class RouteTable:
    """Immutable route table. The longest matching prefix wins."""

    def __init__(
        self,
        rules: tuple[RouteRule, ...],
        dashboard_landing: str = "/dashboard",
        app_landing: str = "/home",
    ) -> None:
        self._rules = tuple(sorted(rules, key=lambda rule: len(rule.prefix), reverse=True))
        self.dashboard_landing = dashboard_landing
        self.app_landing = app_landing

    @property
    def rules(self) -> tuple[RouteRule, ...]:
        return self._rules

    def classify(self, path: str) -> RouteMatch:
        # favicon.ico, robots.txt, /static/app.js ...
        last_segment = path.rsplit("/", 1)[-1]
        if "." in last_segment:
            return _BYPASS

        for rule in self._rules:
            if rule.matches(path):
                return RouteMatch(kind=rule.kind, rule=rule)
        return _OTHER

    def landing_for(self, role: Role) -> str:
        """Home page for a role: the dashboard for staff, the app otherwise."""
        if role.is_staff:
            return self.dashboard_landing
        return self.app_landing

    def login_path_for(self, path: str | None, default: str) -> str:
        """Login page guarding ``path`` (the app login when nothing guards it)."""
        if path:
            match = self.classify(path)
            if match.rule is not None and match.rule.login_path:
                return match.rule.login_path
        return default


def relative_path(target: str | None) -> str | None:
    """``target`` if it is a same-site absolute path, else None.

    Rejects scheme or host redirects (``https://evil``, ``//evil``, ``/\\evil``).
    """
    if not target or not target.startswith("/") or target.startswith("//"):
        return None
    if "\\" in target:
        return None
    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return None
    return target


def default_rules(
    dashboard_login_path: str = "/dashboard/login",
    app_login_path: str = "/login",
    api_prefix: str = "/api",
) -> tuple[RouteRule, ...]:
    api_prefix = api_prefix.rstrip("/")
    bypass = tuple(
        RouteRule(prefix, RouteKind.BYPASS)
        for prefix in (
            "/_next",
            "/static",
            "/favicon.ico",
            f"{api_prefix}/auth",
            f"{api_prefix}/webhook",
            "/health",
        )
    )
    login_pages = (
        RouteRule(dashboard_login_path, RouteKind.LOGIN_PAGE),
        RouteRule(app_login_path, RouteKind.LOGIN_PAGE),
    )
    protected = (
        RouteRule(
            "/dashboard",
            RouteKind.PROTECTED,
            permission=Permission.ACCESS_DASHBOARD,
            login_path=dashboard_login_path,
        ),
        *(
            RouteRule(prefix, RouteKind.PROTECTED, login_path=app_login_path)
            for prefix in ("/home", "/profile", "/history", "/settings")
        ),
        RouteRule(f"{api_prefix}/user", RouteKind.PROTECTED, api=True),
    )
    return bypass + login_pages + protected


def default_route_table(settings: Settings) -> RouteTable:
    return RouteTable(
        rules=default_rules(
            dashboard_login_path=settings.dashboard_login_path,
            app_login_path=settings.app_login_path,
            api_prefix=settings.api_prefix,
        ),
        dashboard_landing=settings.dashboard_landing,
        app_landing=settings.app_landing,
    )
