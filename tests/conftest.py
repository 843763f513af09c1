"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from merchant_auth.config import Settings
from merchant_auth.infrastructure.auth import compute_init_data_hash
from merchant_auth.infrastructure.persistence.sqlalchemy import (
    SQLAlchemyUserStore,
    create_session_factory,
    init_db,
)

BOT_TOKEN = "123456:TEST-bot-token"
SECRET_KEY = "test-secret-key-that-is-long-enough-0123456789"
FIXED_NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


def build_init_data(
    telegram_id: int | str = 123456789,
    auth_date: datetime = FIXED_NOW,
    bot_token: str = BOT_TOKEN,
    **extra: str,
) -> str:
    """Signed initData query string, as the Telegram client produces it."""
    fields = {
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(
            {"id": telegram_id, "first_name": "Ada", "username": "ada", "language_code": "en"},
            separators=(",", ":"),
        ),
        "auth_date": str(int(auth_date.timestamp())),
        **extra,
    }
    fields["hash"] = compute_init_data_hash(fields, bot_token)
    return urlencode(fields)


@pytest.fixture
def clock():
    """Clock pinned to FIXED_NOW."""
    return FakeClock()


@pytest.fixture
def settings():
    """Settings for tests (no .env, no real database)."""
    return Settings(
        _env_file=None,
        secret_key=SECRET_KEY,
        telegram_bot_token=BOT_TOKEN,
        database_url="sqlite+aiosqlite:///:memory:",
        store_retry_base_delay=0,
        log_format="console",
        log_level="WARNING",
    )


@pytest.fixture
async def engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def user_store(session_factory):
    return SQLAlchemyUserStore(session_factory)


@pytest.fixture
def app(settings, user_store, clock):
    from merchant_auth.main import create_app

    return create_app(settings=settings, user_store=user_store, clock=clock)


@pytest.fixture
async def client(app):
    """HTTP client over ASGI. https so Secure cookies are sent back."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://testserver",
    ) as client:
        yield client


@pytest.fixture
def make_init_data(clock):
    """Factory for signed initData, dated at the test clock's current time."""

    def factory(telegram_id: int | str = 123456789, auth_date: datetime | None = None, **kwargs):
        return build_init_data(
            telegram_id=telegram_id,
            auth_date=auth_date or clock.now,
            **kwargs,
        )

    return factory
