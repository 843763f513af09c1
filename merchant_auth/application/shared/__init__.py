"""Shared Application Layer components."""

from .command import Command
from .handler import CommandHandler

__all__ = [
    "Command",
    "CommandHandler",
]
