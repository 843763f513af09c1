"""SQLAlchemy ORM models."""

from .base import Base
from .magic_token_model import MagicTokenModel
from .user_model import UserModel

__all__ = ["Base", "MagicTokenModel", "UserModel"]
