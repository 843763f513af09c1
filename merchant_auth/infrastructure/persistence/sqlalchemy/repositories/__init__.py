"""SQLAlchemy repository implementations."""

from .user_store import SQLAlchemyUserStore, new_security_stamp

__all__ = ["SQLAlchemyUserStore", "new_security_stamp"]
