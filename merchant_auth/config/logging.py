"""Structured logging (structlog on top of stdlib logging).

Every event is a dotted name plus key/value context, e.g.
``auth.telegram.success user_id=... role=merchant``. Library loggers
(uvicorn, sqlalchemy) go through the same formatter.

Credentials never reach the output: values under keys such as ``token``,
``init_data``, ``hash`` or ``stamp`` are replaced, at any nesting depth.

Usage:
    from merchant_auth.config import get_logger, setup_logging

    setup_logging(settings)  # once, from create_app
    logger = get_logger(__name__)
    logger.info("auth.session.revoked", user_id=user_id)
"""

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

from merchant_auth.config.settings import Settings

SERVICE_NAME = "merchant-auth"
REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset({
    "password",
    "secret",
    "secret_key",
    "token",
    "auth_token",
    "session_token",
    "bot_token",
    "authorization",
    "cookie",
    "init_data",
    "initdata",
    "hash",
    "security_stamp",
    "stamp",
})


# ============================================================================
# PROCESSORS
# ============================================================================


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_KEYS else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def filter_sensitive_data(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace credential values in the event (nested dicts and lists included)."""
    return _redact(event_dict)


def service_context(environment: str) -> Processor:
    """Processor adding service name and environment to every event."""

    def add_service_context(
        logger: logging.Logger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_service_context


def _shared_processors(settings: Settings) -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        service_context(settings.environment),
        filter_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


# ============================================================================
# SETUP
# ============================================================================


def setup_logging(settings: Settings) -> None:
    """Configure structlog and the root logger.

    ``log_format="json"`` renders one JSON object per line (production);
    ``"console"`` renders colored key/value lines (development). Safe to
    call more than once: the root handler is replaced, not added.
    """
    shared = _shared_processors(settings)

    if settings.log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
        shared.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)

    for noisy in ("uvicorn.access", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.db_echo else logging.WARNING
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


def bind_request_context(request_id: str, **extra: Any) -> None:
    """Attach request_id (and extra keys) to every event logged in this request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **extra)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
