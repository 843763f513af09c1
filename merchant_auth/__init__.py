"""Telegram Mini App merchant platform - authentication and session core."""

__version__ = "1.0.0"
