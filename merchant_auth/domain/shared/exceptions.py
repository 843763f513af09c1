"""Base domain exceptions.

Domain exceptions represent violated rules of the identity model.
They belong to the domain layer and do not depend on infrastructure.
"""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain errors.

    Example:
        >>> raise DomainException("Security stamp mismatch", user_id="u1")
    """

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            **context: Additional context (user_id, telegram_id, etc).
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context.

        Returns:
            Error message with context if available.
        """
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class AggregateNotFound(DomainException):
    """Exception raised when an aggregate is not found.

    Example:
        >>> identity = await store.get_by_id("u1")
        >>> if not identity:
        ...     raise AggregateNotFound("User not found", user_id="u1")
    """

    pass
