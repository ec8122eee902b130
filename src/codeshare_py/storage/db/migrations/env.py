"""Alembic environment configuration."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from advanced_alchemy.base import UUIDAuditBase
from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

import codeshare_py.storage.db.models  # noqa: F401
from codeshare_py.storage.db.setup import get_database_url

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config
target_metadata = UUIDAuditBase.metadata


def _database_url() -> str:
    return getattr(config, "db_url", None) or get_database_url()


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations in 'online' mode on an async engine."""
    connectable = create_async_engine(_database_url(), poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
