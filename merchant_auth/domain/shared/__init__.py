"""Shared domain building blocks."""

from .exceptions import AggregateNotFound, DomainException

__all__ = ["DomainException", "AggregateNotFound"]
