"""Telegram account data taken from verified initData."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TelegramUser:
    """The ``user`` object of a verified initData payload."""

    telegram_id: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    language_code: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TelegramUser":
        """Build from the decoded ``user`` JSON object.

        Raises:
            ValueError: If the id is missing or not an integer.
        """
        raw_id = payload.get("id")
        # bool is an int subclass; floats would already have lost precision
        if isinstance(raw_id, bool) or not isinstance(raw_id, (int, str)):
            raise ValueError("user.id must be an integer")
        telegram_id = str(raw_id).strip()
        if not telegram_id.isdigit():
            raise ValueError("user.id must be an integer")

        return cls(
            telegram_id=telegram_id,
            username=payload.get("username"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            language_code=payload.get("language_code"),
        )
