"""Users table with security stamp.

Creates the users table on a fresh database. On a database where the
platform already has a users table, adds the auth columns instead:
- security_stamp (backfilled with a random value per user)
- role / merchant_id
- last_login_at

One-way: downgrade raises.

Revision ID: 001
Revises: None
Create Date: 2026-03-01
"""

import secrets
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    connection = op.get_bind()
    inspector = sa.inspect(connection)

    if not inspector.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(32), primary_key=True),
            sa.Column("telegram_id", sa.BigInteger(), nullable=False),
            sa.Column("role", sa.String(32), nullable=False, server_default="user"),
            sa.Column("merchant_id", sa.String(64), nullable=True),
            sa.Column("security_stamp", sa.String(64), nullable=False),
            sa.Column("username", sa.String(255), nullable=True),
            sa.Column("first_name", sa.String(255), nullable=True),
            sa.Column("last_name", sa.String(255), nullable=True),
            sa.Column("language_code", sa.String(16), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_users_telegram_id", "users", ["telegram_id"], unique=True)
        return

    # ====================================
    # EXISTING USERS TABLE - add auth columns (idempotent)
    # ====================================
    existing_columns = {col["name"] for col in inspector.get_columns("users")}

    if "role" not in existing_columns:
        op.add_column(
            "users",
            sa.Column("role", sa.String(32), nullable=False, server_default="user"),
        )

    if "merchant_id" not in existing_columns:
        op.add_column("users", sa.Column("merchant_id", sa.String(64), nullable=True))

    if "last_login_at" not in existing_columns:
        op.add_column(
            "users",
            sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        )

    if "security_stamp" not in existing_columns:
        op.add_column("users", sa.Column("security_stamp", sa.String(64), nullable=True))

        # Every user gets an independent stamp
        users = sa.table("users", sa.column("id"), sa.column("security_stamp"))
        for (user_id,) in connection.execute(sa.select(users.c.id)).fetchall():
            connection.execute(
                users.update()
                .where(users.c.id == user_id)
                .values(security_stamp=secrets.token_urlsafe(32))
            )

        op.alter_column("users", "security_stamp", nullable=False)


def downgrade() -> None:
    """Not reversible: ``upgrade`` does not record whether it created the
    table or extended an existing one. Restore from a backup instead.
    """
    raise NotImplementedError(f"Revision {revision} is one-way; restore from a backup")
