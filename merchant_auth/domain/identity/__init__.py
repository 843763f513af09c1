"""Identity bounded context.

Authenticated principals, roles, session claims and the stamp store port.
"""

from .entities import Identity, SessionClaims, TelegramUser
from .repositories import UserStore
from .value_objects import Permission, Role

__all__ = [
    "Identity",
    "SessionClaims",
    "TelegramUser",
    "UserStore",
    "Role",
    "Permission",
]
