"""Claims carried by a session token."""

from dataclasses import dataclass
from datetime import datetime

from merchant_auth.domain.identity.entities.identity import Identity
from merchant_auth.domain.identity.value_objects import Role


@dataclass(frozen=True)
class SessionClaims:
    """Identity fields embedded in a signed session token.

    ``issued_at``/``expires_at`` are None on claims that have not been
    issued yet and set on claims returned by token verification.
    """

    user_id: str
    telegram_id: str
    role: Role
    security_stamp: str
    merchant_id: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "SessionClaims":
        return cls(
            user_id=identity.user_id,
            telegram_id=identity.telegram_id,
            role=identity.role,
            security_stamp=identity.security_stamp,
            merchant_id=identity.merchant_id,
        )

    def to_identity(self) -> Identity:
        """Rebuild the Identity (permissions are evaluated here)."""
        return Identity(
            user_id=self.user_id,
            telegram_id=self.telegram_id,
            role=self.role,
            security_stamp=self.security_stamp,
            merchant_id=self.merchant_id,
        )

    def same_subject(self, other: "SessionClaims") -> bool:
        """Compare identity fields, ignoring issue/expiry times."""
        return (
            self.user_id == other.user_id
            and self.telegram_id == other.telegram_id
            and self.role == other.role
            and self.security_stamp == other.security_stamp
            and self.merchant_id == other.merchant_id
        )
