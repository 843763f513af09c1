"""Integration tests for the Alembic revisions.

Revisions are run through alembic's Operations API against an empty
in-memory SQLite database.
"""

import importlib.util
from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from merchant_auth.infrastructure.persistence.sqlalchemy import MagicTokenModel, UserModel

VERSIONS = Path(__file__).resolve().parents[3] / "alembic" / "versions"


def _load_revision(revision: str):
    path = next(VERSIONS.glob(f"*_{revision}_*.py"))
    module_spec = importlib.util.spec_from_file_location(f"revision_{revision}", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.fixture
async def empty_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    yield engine
    await engine.dispose()


async def _migrate(engine, *steps) -> None:
    def run(connection):
        with Operations.context(MigrationContext.configure(connection)):
            for step in steps:
                step()

    async with engine.begin() as conn:
        await conn.run_sync(run)


async def _columns(engine) -> dict[str, set[str]]:
    def inspect(connection):
        inspector = sa.inspect(connection)
        return {
            table: {column["name"] for column in inspector.get_columns(table)}
            for table in inspector.get_table_names()
        }

    async with engine.connect() as conn:
        return await conn.run_sync(inspect)


class TestRevisions:
    """Schema produced by the revisions."""

    @pytest.mark.asyncio
    async def test_upgrade_matches_models(self, empty_engine):
        users, magic_tokens = _load_revision("001"), _load_revision("002")

        await _migrate(empty_engine, users.upgrade, magic_tokens.upgrade)

        columns = await _columns(empty_engine)
        assert columns["users"] == set(UserModel.__table__.columns.keys())
        assert columns["magic_tokens"] == set(MagicTokenModel.__table__.columns.keys())

    @pytest.mark.asyncio
    async def test_magic_tokens_downgrade_drops_table(self, empty_engine):
        users, magic_tokens = _load_revision("001"), _load_revision("002")
        await _migrate(empty_engine, users.upgrade, magic_tokens.upgrade)

        await _migrate(empty_engine, magic_tokens.downgrade)

        assert set(await _columns(empty_engine)) == {"users"}

    def test_users_revision_is_one_way(self):
        users = _load_revision("001")

        assert users.down_revision is None
        with pytest.raises(NotImplementedError):
            users.downgrade()
