"""Base Handler class for Commands.

Handler - orchestrates domain logic to carry out one use case.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from .command import Command

TCommand = TypeVar("TCommand", bound=Command)
TResult = TypeVar("TResult")


class CommandHandler(ABC, Generic[TCommand, TResult]):
    """Base class for command handlers.

    Command Handler is responsible for:
    - Loading identities from the store
    - Executing domain logic
    - Issuing or revoking credentials

    Example:
        >>> class RevokeSessionsHandler(CommandHandler[RevokeSessionsCommand, Identity]):
        ...     def __init__(self, resolver: SessionResolver, store: UserStore):
        ...         self.resolver = resolver
        ...         self.store = store
        ...
        ...     async def handle(self, command: RevokeSessionsCommand) -> Identity:
        ...         identity = await self.resolver.authenticate(command.session_token)
        ...         await self.store.rotate_security_stamp(identity.user_id)
        ...         return identity
    """

    @abstractmethod
    async def handle(self, command: TCommand) -> TResult:
        """Handle command and return result.

        Args:
            command: Command to handle.

        Returns:
            Result of command execution.

        Raises:
            DomainException: If a domain rule is violated.
        """
        pass
