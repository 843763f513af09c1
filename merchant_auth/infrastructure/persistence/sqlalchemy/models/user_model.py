"""User ORM model - identity and security stamp persistence."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserModel(Base):
    """Platform user as seen by the auth core.

    Subscription, merchant and payment data live in tables owned by other
    services; only identity fields and the security stamp are mapped here.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    telegram_id: Mapped[int] = mapped_column(
        BigInteger, unique=True, nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="user")
    merchant_id: Mapped[str | None] = mapped_column(String(64))

    # Rotating this value revokes every outstanding session token
    security_stamp: Mapped[str] = mapped_column(String(64), nullable=False)

    # Telegram profile
    username: Mapped[str | None] = mapped_column(String(255))
    first_name: Mapped[str | None] = mapped_column(String(255))
    last_name: Mapped[str | None] = mapped_column(String(255))
    language_code: Mapped[str | None] = mapped_column(String(16))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<UserModel id={self.id} telegram_id={self.telegram_id} role={self.role}>"
