"""Identity - the authenticated principal."""

from dataclasses import dataclass, field
from typing import Any

from merchant_auth.domain.identity.value_objects import Permission, Role


@dataclass(frozen=True)
class Identity:
    """An authenticated principal.

    ``telegram_id`` is a 64-bit Telegram user id kept as a decimal string
    end to end, so large ids never pass through a float.

    ``security_stamp`` is the single source of truth for "is this the current
    session": tokens embedding any other stamp are revoked.

    Permissions are evaluated once from the role's capability table when the
    Identity is built.

    Example:
        >>> identity = Identity(
        ...     user_id="9f1c...",
        ...     telegram_id="123456789",
        ...     role=Role.MERCHANT,
        ...     merchant_id="m-42",
        ...     security_stamp="s3cr3t",
        ... )
        >>> identity.can(Permission.MANAGE_STOREFRONT)
        True
    """

    user_id: str
    telegram_id: str
    role: Role
    security_stamp: str
    merchant_id: str | None = None
    permissions: frozenset[Permission] = field(init=False, compare=False)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("user_id is required")
        if not str(self.telegram_id).isdigit():
            raise ValueError(f"telegram_id must be a decimal string, got {self.telegram_id!r}")
        if not self.security_stamp:
            raise ValueError("security_stamp is required")

        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "telegram_id", str(self.telegram_id))
        object.__setattr__(self, "role", Role.parse(self.role))
        object.__setattr__(self, "permissions", self.role.permissions)

    def can(self, permission: Permission) -> bool:
        """Check a capability against the precomputed permission set."""
        return permission in self.permissions

    def to_public_dict(self) -> dict[str, Any]:
        """Client-facing view (the stamp is never exposed)."""
        return {
            "user_id": self.user_id,
            "telegram_id": self.telegram_id,
            "role": self.role.value,
            "merchant_id": self.merchant_id,
            "permissions": sorted(p.value for p in self.permissions),
        }
