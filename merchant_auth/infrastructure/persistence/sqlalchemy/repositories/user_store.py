"""SQLAlchemyUserStore - implements the UserStore port.

Infrastructure implementation of the domain UserStore interface.
"""

import secrets
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from merchant_auth.domain.identity.entities import Identity, TelegramUser
from merchant_auth.domain.identity.exceptions import StoreUnavailable, UserNotFound
from merchant_auth.domain.identity.repositories import UserStore
from merchant_auth.domain.identity.value_objects import Role
from merchant_auth.infrastructure.persistence.sqlalchemy.models import MagicTokenModel, UserModel

logger = structlog.get_logger(__name__)


def new_security_stamp() -> str:
    """Opaque random stamp."""
    return secrets.token_urlsafe(32)


def _to_identity(model: UserModel) -> Identity:
    return Identity(
        user_id=model.id,
        telegram_id=str(model.telegram_id),
        role=Role.parse(model.role),
        security_stamp=model.security_stamp,
        merchant_id=model.merchant_id,
    )


class SQLAlchemyUserStore(UserStore):
    """SQLAlchemy implementation of UserStore.

    Every call runs in its own short session and commits before returning,
    so a rotated stamp is visible to the very next read. Nothing is cached.

    Example:
        >>> store = SQLAlchemyUserStore(session_factory)
        >>> identity = await store.find_by_telegram_id("123456789")
        >>> new_stamp = await store.rotate_security_stamp(identity.user_id)
        >>> assert await store.get_security_stamp(identity.user_id) == new_stamp
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize store.

        Args:
            session_factory: SQLAlchemy async session factory.
        """
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session, mapping infrastructure failures to StoreUnavailable."""
        try:
            async with self._session_factory() as session:
                yield session
        except (UserNotFound, IntegrityError):
            raise
        except (SQLAlchemyError, OSError) as e:
            logger.error("user_store.unavailable", operation=operation, error=str(e))
            raise StoreUnavailable("User store unavailable", operation=operation) from e

    async def find_by_telegram_id(self, telegram_id: str) -> Identity | None:
        async with self._session("find_by_telegram_id") as session:
            result = await session.execute(
                select(UserModel).where(UserModel.telegram_id == int(telegram_id))
            )
            model = result.scalar_one_or_none()
            return _to_identity(model) if model else None

    async def get_by_id(self, user_id: str) -> Identity | None:
        async with self._session("get_by_id") as session:
            model = await session.get(UserModel, user_id)
            return _to_identity(model) if model else None

    async def create(
        self,
        telegram_user: TelegramUser,
        role: Role = Role.USER,
        merchant_id: str | None = None,
    ) -> Identity:
        """Create a user with a fresh stamp.

        Two concurrent first logins for the same Telegram account race on the
        unique telegram_id; the loser reads back the winner's row.
        """
        model = UserModel(
            id=uuid.uuid4().hex,
            telegram_id=int(telegram_user.telegram_id),
            role=Role.parse(role).value,
            merchant_id=merchant_id,
            security_stamp=new_security_stamp(),
            username=telegram_user.username,
            first_name=telegram_user.first_name,
            last_name=telegram_user.last_name,
            language_code=telegram_user.language_code,
            last_login_at=datetime.now(timezone.utc),
        )
        identity = _to_identity(model)

        try:
            async with self._session("create") as session:
                session.add(model)
                await session.commit()
        except IntegrityError:
            existing = await self.find_by_telegram_id(telegram_user.telegram_id)
            if existing is None:
                raise StoreUnavailable(
                    "User insert conflicted but no row found",
                    telegram_id=telegram_user.telegram_id,
                )
            return existing

        logger.info("user.created", user_id=identity.user_id, role=identity.role.value)
        return identity

    async def touch_login(self, user_id: str, telegram_user: TelegramUser) -> None:
        async with self._session("touch_login") as session:
            await session.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(
                    username=telegram_user.username,
                    first_name=telegram_user.first_name,
                    last_name=telegram_user.last_name,
                    language_code=telegram_user.language_code,
                    last_login_at=datetime.now(timezone.utc),
                )
            )
            await session.commit()

    async def get_security_stamp(self, user_id: str) -> str | None:
        async with self._session("get_security_stamp") as session:
            result = await session.execute(
                select(UserModel.security_stamp).where(UserModel.id == user_id)
            )
            return result.scalar_one_or_none()

    async def rotate_security_stamp(self, user_id: str) -> str:
        """Single-row UPDATE, committed before the new stamp is returned."""
        stamp = new_security_stamp()
        async with self._session("rotate_security_stamp") as session:
            result = await session.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(security_stamp=stamp)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise UserNotFound("User not found", user_id=user_id)
            await session.commit()

        logger.info("user_store.stamp_rotated", user_id=user_id)
        return stamp

    async def change_role(self, user_id: str, role: Role) -> Identity:
        """Role change and stamp rotation land in the same UPDATE."""
        role = Role.parse(role)
        async with self._session("change_role") as session:
            result = await session.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(role=role.value, security_stamp=new_security_stamp())
            )
            if result.rowcount == 0:
                await session.rollback()
                raise UserNotFound("User not found", user_id=user_id)
            await session.commit()

            model = await session.get(UserModel, user_id, populate_existing=True)

        logger.info("user_store.role_changed", user_id=user_id, role=role.value)
        return _to_identity(model)

    async def consume_magic_token(self, token_id: str, user_id: str, expires_at: datetime) -> bool:
        """Insert the token id; the primary key makes a replay fail."""
        try:
            async with self._session("consume_magic_token") as session:
                session.add(MagicTokenModel(id=token_id, user_id=user_id, expires_at=expires_at))
                await session.commit()
        except IntegrityError:
            logger.warning("user_store.magic_token_replayed", user_id=user_id)
            return False
        return True

    async def ping(self) -> None:
        async with self._session("ping") as session:
            await session.execute(text("SELECT 1"))
