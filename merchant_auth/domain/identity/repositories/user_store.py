"""UserStore port - persistent owner of Identity and Security Stamp.

Domain layer interface. Infrastructure implementations live in
merchant_auth.infrastructure.persistence.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from merchant_auth.domain.identity.entities import Identity, TelegramUser
from merchant_auth.domain.identity.value_objects import Role


class UserStore(ABC):
    """Repository interface for identities and their security stamps.

    Contract:
        - ``rotate_security_stamp`` is atomic and visible to every
          subsequent ``get_security_stamp`` as soon as it returns.
        - No caching layer may sit in front of stamp reads.
        - Infrastructure failures surface as ``StoreUnavailable``.
    """

    @abstractmethod
    async def find_by_telegram_id(self, telegram_id: str) -> Identity | None:
        """Find the identity bound to a Telegram account."""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Identity | None:
        """Load an identity by its opaque user id."""

    @abstractmethod
    async def create(
        self,
        telegram_user: TelegramUser,
        role: Role = Role.USER,
        merchant_id: str | None = None,
    ) -> Identity:
        """Create an identity with a fresh random security stamp."""

    @abstractmethod
    async def touch_login(self, user_id: str, telegram_user: TelegramUser) -> None:
        """Refresh Telegram profile fields and the last login time."""

    @abstractmethod
    async def get_security_stamp(self, user_id: str) -> str | None:
        """Current stamp, or None if the user no longer exists."""

    @abstractmethod
    async def rotate_security_stamp(self, user_id: str) -> str:
        """Replace the stamp with a new random value and return it.

        Raises:
            UserNotFound: If the user does not exist.
        """

    @abstractmethod
    async def change_role(self, user_id: str, role: Role) -> Identity:
        """Change the role and rotate the stamp in the same write.

        Raises:
            UserNotFound: If the user does not exist.
        """

    @abstractmethod
    async def consume_magic_token(self, token_id: str, user_id: str, expires_at: datetime) -> bool:
        """Record a login link as used.

        Returns:
            True on the first redemption of ``token_id``, False afterwards.
        """

    @abstractmethod
    async def ping(self) -> None:
        """Connectivity check for readiness."""
