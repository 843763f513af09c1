"""Roles and the capability table for the Identity bounded context."""

from enum import Enum


class Permission(str, Enum):
    """Capabilities a route or handler may require."""

    USE_MINI_APP = "use_mini_app"
    """Open the customer-facing Mini App (home, profile, history)."""

    ACCESS_DASHBOARD = "access_dashboard"
    """Enter the /dashboard area."""

    MANAGE_STOREFRONT = "manage_storefront"
    """Edit services, coupons and payouts of a merchant."""

    HANDLE_SUPPORT = "handle_support"
    """Read and answer support tickets."""

    MANAGE_PLATFORM = "manage_platform"
    """Platform-wide configuration and merchant oversight."""

    MANAGE_STAFF = "manage_staff"
    """Grant and withdraw staff roles."""


class Role(str, Enum):
    """Closed set of access levels.

    Values match the lower-case role names stored by the platform.
    """

    USER = "user"
    """Subscriber of a merchant's services."""

    MERCHANT = "merchant"
    """Owner of a storefront."""

    AGENT = "agent"
    """Merchant-side staff member."""

    PLATFORM_SUPPORT = "platform_support"
    PLATFORM_MANAGER = "platform_manager"
    SUPER_ADMIN = "super_admin"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        """Normalise a role name (case and surrounding blanks ignored).

        Raises:
            ValueError: If the name is not a known role.
        """
        if isinstance(value, Role):
            return value
        return cls(str(value).strip().lower())

    @property
    def permissions(self) -> frozenset[Permission]:
        return ROLE_PERMISSIONS[self]

    @property
    def is_staff(self) -> bool:
        return Permission.ACCESS_DASHBOARD in self.permissions


_MINI_APP = frozenset({Permission.USE_MINI_APP})
_MERCHANT = _MINI_APP | {Permission.ACCESS_DASHBOARD, Permission.MANAGE_STOREFRONT}
_SUPPORT = _MINI_APP | {Permission.ACCESS_DASHBOARD, Permission.HANDLE_SUPPORT}

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.USER: _MINI_APP,
    Role.MERCHANT: _MERCHANT | {Permission.HANDLE_SUPPORT},
    Role.AGENT: _MERCHANT,
    Role.PLATFORM_SUPPORT: _SUPPORT,
    Role.PLATFORM_MANAGER: _SUPPORT | {Permission.MANAGE_PLATFORM},
    Role.SUPER_ADMIN: frozenset(Permission),
}
