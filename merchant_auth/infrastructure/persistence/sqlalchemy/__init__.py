"""SQLAlchemy persistence layer."""

from .database import create_engine, create_session_factory, init_db
from .models import Base, MagicTokenModel, UserModel
from .repositories import SQLAlchemyUserStore, new_security_stamp

__all__ = [
    # ORM Models
    "Base",
    "UserModel",
    "MagicTokenModel",
    # Repositories
    "SQLAlchemyUserStore",
    "new_security_stamp",
    # Engine
    "create_engine",
    "create_session_factory",
    "init_db",
]
