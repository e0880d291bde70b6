import os
from typing import AsyncGenerator
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Set test database URL before importing app
os.environ["DATABASE_URL"] = TEST_DATABASE_URL


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database per test."""
    from actiongate_ai.agent_core.repos.sql import create_all

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture
def provider(scripted_provider):
    """Scripted LLM; tests append completion rounds to ``provider.rounds``."""
    return scripted_provider([])


@pytest.fixture
def service(session_factory, tracker, provider):
    from actiongate_ai.server.services.gateway import ActionGateService

    return ActionGateService(session_factory=session_factory, tracker=tracker, provider=provider)


@pytest_asyncio.fixture(name="client")
async def client_fixture(service) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from actiongate_ai.server.main import app
    from actiongate_ai.server.services.gateway import get_action_gate_service

    app.dependency_overrides[get_action_gate_service] = lambda: service

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("actiongate_ai.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def proposed(service, provider, tool_call):
    """Run one chat turn that proposes ``create_issue`` and return the proposal."""
    provider.rounds.append(tool_call(0, "call_1", "create_issue", {"title": "Fix login timeout", "priority": 2}))
    provider.rounds.append([])
    async for _ in service.stream_chat("conv-1", "Create a bug for the login timeout"):
        pass
    [proposal] = await service.approvals.get_proposals_by_conversation("conv-1")
    return proposal
