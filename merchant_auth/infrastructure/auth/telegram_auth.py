"""Telegram Mini App Authentication.

Verifies Telegram WebApp init data for secure authentication.
"""

import hashlib
import hmac
import json
import urllib.parse
from dataclasses import dataclass, field

import structlog

from merchant_auth.domain.identity.entities import TelegramUser
from merchant_auth.domain.identity.exceptions import MalformedInput
from merchant_auth.domain.shared.clock import Clock, utc_now

logger = structlog.get_logger(__name__)

WEB_APP_DATA_KEY = b"WebAppData"
DEFAULT_MAX_AGE_SECONDS = 86400


def decode_init_data(init_data: str) -> dict[str, str]:
    """Decode the raw initData query string into key/value pairs.

    Runs at the HTTP boundary, before verification.

    Args:
        init_data: The init data string from Telegram WebApp.

    Returns:
        Decoded fields (the ``user`` value is still a JSON string).

    Raises:
        MalformedInput: If the string is empty or not a valid query string.
    """
    if not init_data or not init_data.strip():
        raise MalformedInput("initData is empty")

    try:
        pairs = urllib.parse.parse_qsl(
            init_data.strip(),
            keep_blank_values=True,
            strict_parsing=True,
        )
    except ValueError as e:
        raise MalformedInput("initData is not a valid query string") from e

    fields: dict[str, str] = {}
    for key, value in pairs:
        if key in fields:
            raise MalformedInput("initData repeats a field", field=key)
        fields[key] = value
    return fields


def build_data_check_string(fields: dict[str, str]) -> str:
    """Alphabetically sorted ``key=value`` lines, ``hash`` excluded."""
    return "\n".join(
        f"{k}={v}" for k, v in sorted(fields.items()) if k != "hash"
    )


def compute_init_data_hash(fields: dict[str, str], bot_token: str) -> str:
    """Hex HMAC-SHA256 signature Telegram puts in the ``hash`` field."""
    secret_key = hmac.new(
        WEB_APP_DATA_KEY,
        bot_token.encode(),
        hashlib.sha256,
    ).digest()

    return hmac.new(
        secret_key,
        build_data_check_string(fields).encode(),
        hashlib.sha256,
    ).hexdigest()


@dataclass(frozen=True)
class InitDataVerification:
    """Outcome of initData verification.

    Failures carry no reason: every rejection looks the same to the caller.
    """

    valid: bool
    fields: dict[str, str] = field(default_factory=dict)
    user: TelegramUser | None = None

    @classmethod
    def rejected(cls) -> "InitDataVerification":
        return cls(valid=False)


class TelegramInitDataVerifier:
    """Validates Telegram initData signatures and freshness.

    Pure and synchronous: no I/O, no state besides configuration.

    Example:
        >>> verifier = TelegramInitDataVerifier(bot_token)
        >>> result = verifier.verify(decode_init_data(raw_init_data))
        >>> if result.valid:
        ...     telegram_id = result.user.telegram_id
    """

    def __init__(
        self,
        bot_token: str,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        """
        Args:
            bot_token: Telegram Bot Token from @BotFather.
            max_age_seconds: Staleness window for auth_date (default 24h).
            clock: Source of the current time.
        """
        self._bot_token = bot_token
        self._max_age_seconds = max_age_seconds
        self._clock = clock

    def verify(self, fields: dict[str, str]) -> InitDataVerification:
        """Verify decoded initData fields.

        Args:
            fields: Output of ``decode_init_data``.

        Returns:
            Valid result with the Telegram user, or a rejected result.
        """
        if not self._bot_token:
            logger.error("telegram_auth.bot_token_missing")
            return InitDataVerification.rejected()

        received_hash = fields.get("hash")
        if not received_hash:
            logger.warning("telegram_auth.no_hash")
            return InitDataVerification.rejected()

        calculated_hash = compute_init_data_hash(fields, self._bot_token)
        if not hmac.compare_digest(calculated_hash.encode(), received_hash.encode()):
            logger.warning("telegram_auth.invalid_hash")
            return InitDataVerification.rejected()

        # auth_date is covered by the signature, so it is trusted from here on
        try:
            auth_date = int(fields.get("auth_date", ""))
        except ValueError:
            logger.warning("telegram_auth.bad_auth_date")
            return InitDataVerification.rejected()

        age = self._clock().timestamp() - auth_date
        if age > self._max_age_seconds:
            logger.warning("telegram_auth.expired", age_seconds=int(age))
            return InitDataVerification.rejected()

        try:
            payload = json.loads(fields.get("user", ""))
            if not isinstance(payload, dict):
                raise ValueError("user must be a JSON object")
            user = TelegramUser.from_payload(payload)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("telegram_auth.bad_user", error=str(e))
            return InitDataVerification.rejected()

        fields_without_hash = {k: v for k, v in fields.items() if k != "hash"}
        return InitDataVerification(valid=True, fields=fields_without_hash, user=user)
