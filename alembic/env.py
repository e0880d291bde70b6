"""Alembic environment for ActionGate-AI.

Migrations run through the same async engine factory as the application, so
Postgres URLs are normalized to asyncpg and SQLite uses aiosqlite.
"""

import asyncio

from sqlalchemy.engine import Connection

from actiongate_ai.agent_core.repos.models import Base
from actiongate_ai.agent_core.repos.sql import create_engine
from alembic import context

config = context.config
target_metadata = Base.metadata


def _database_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    from actiongate_ai.server.core.config import settings

    return settings.database_url


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting (``alembic upgrade head --sql``)."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    engine = create_engine(_database_url())
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
