"""
Database Connection and Session Management.

This module sets up the asynchronous SQLAlchemy engine and session factory
shared by the repositories of the agent core.
"""

from actiongate_ai.agent_core.repos.sql import create_all, create_engine, create_sessionmaker
from actiongate_ai.server.core.config import settings

"""
engine:
    The global SQLAlchemy AsyncEngine instance.
    Configured with the connection URL from settings; Postgres URLs are
    normalized to the asyncpg driver.
"""
engine = create_engine(settings.database_url)

"""
async_session_maker:
    A global factory for creating new AsyncSession instances.
    Bound to the `engine` and configured to NOT expire on commit (typical for async).
"""
async_session_maker = create_sessionmaker(engine)


async def init_db():
    """
    Initialize the database.

    Creates all tables of the agent core ORM metadata if they don't exist.
    In production the schema is managed by the Alembic migrations under
    ``alembic/versions``; this keeps development and tests self-contained.
    """
    await create_all(engine)
