"""Base Command class.

Command - a request to change system state (write operation).
"""

from abc import ABC
from dataclasses import dataclass


@dataclass(frozen=True)
class Command(ABC):
    """Base class for all commands.

    Command characteristics:
    - **Immutable**: frozen=True prevents changes
    - **Intent**: Names the use case (AuthenticateTelegram, RevokeSessions)
    - **No business logic**: Only data, logic lives in the Handler

    Example:
        >>> @dataclass(frozen=True)
        ... class RevokeSessionsCommand(Command):
        ...     session_token: str | None

        >>> result = await handler.handle(RevokeSessionsCommand(session_token=token))
    """

    pass
