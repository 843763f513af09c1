"""SQLAlchemy Base model."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models (declarative mapping, SQLAlchemy 2.0+)."""

    pass
