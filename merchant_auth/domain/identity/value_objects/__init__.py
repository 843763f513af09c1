"""Value objects for the Identity bounded context."""

from .role import ROLE_PERMISSIONS, Permission, Role

__all__ = ["Role", "Permission", "ROLE_PERMISSIONS"]
