from __future__ import annotations

"""SQLAlchemy async repository implementations.

This module provides a SQL-backed persistence implementation for the
repository interfaces defined in ``actiongate_ai.agent_core.repos.interfaces``.
PostgreSQL (``asyncpg``) is the production target; SQLite (``aiosqlite``) is
used for local development and tests.

Usage
-----

Typical wiring (tests or application setup):

- Create an async engine with ``create_engine``.
- Create tables with ``create_all``.
- Create a session factory with ``create_sessionmaker``.
- Build repository instances with ``build_sql_repos``.

Transaction model
-----------------

Each repository method opens an ``AsyncSession``, performs its operation, and
commits. State changes of proposals are issued as a single
``UPDATE ... WHERE id = :id AND state IN (...)`` statement so that the source
state check and the write happen in one atomic row update.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..schemas.domain import (
    ActionProposal,
    ActionState,
    ChatMessage,
    ChatRole,
    ChatToolCall,
    Conversation,
    PreviewField,
)
from .interfaces import (
    ActionProposalRepository,
    ConversationRepository,
    MessageRepository,
)
from .models import ActionProposalRow, Base, ConversationRow, MessageRow

_UPDATABLE_PROPOSAL_COLUMNS = frozenset({"result", "result_url", "error"})


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    The helper normalizes Postgres URLs to ensure the async driver is used.
    For example, it rewrites ``postgresql://`` and other variants to
    ``postgresql+asyncpg://``.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    return create_async_engine(url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata.

    This is mainly intended for tests and local development.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _state_value(state: Any) -> str:
    return str(getattr(state, "value", state))


def _proposal_from_row(row: ActionProposalRow) -> ActionProposal:
    return ActionProposal(
        id=row.id,
        idempotency_key=row.idempotency_key,
        conversation_id=row.conversation_id,
        message_id=row.message_id,
        tool_name=row.tool_name,
        tool_arguments=dict(row.tool_arguments or {}),
        category=row.category,
        description=row.description,
        preview=[PreviewField.model_validate(p) for p in (row.preview or [])],
        state=ActionState(row.state),
        result=row.result,
        result_url=row.result_url,
        error=row.error,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _conversation_from_row(row: ConversationRow) -> Conversation:
    return Conversation(
        id=row.id,
        title=row.title,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _message_from_row(row: MessageRow) -> ChatMessage:
    return ChatMessage(
        id=row.id,
        conversation_id=row.conversation_id,
        role=ChatRole(row.role),
        content=row.content or "",
        tool_calls=[ChatToolCall.model_validate(tc) for tc in (row.tool_calls or [])],
        created_at=_as_utc(row.created_at),
    )


@dataclass(frozen=True)
class SqlActionProposalRepository(ActionProposalRepository):
    """SQL implementation of ``ActionProposalRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, proposal: ActionProposal) -> ActionProposal:
        """
        Persist a new proposal, or return the row already stored under the same idempotency key.

        Args:
            proposal: The proposal domain object to insert.

        Returns:
            The persisted proposal.
        """
        async with self.session_factory() as s:
            s.add(
                ActionProposalRow(
                    id=proposal.id,
                    idempotency_key=proposal.idempotency_key,
                    conversation_id=proposal.conversation_id,
                    message_id=proposal.message_id,
                    tool_name=proposal.tool_name,
                    tool_arguments=proposal.tool_arguments,
                    category=proposal.category,
                    description=proposal.description,
                    preview=[p.model_dump() for p in proposal.preview],
                    state=_state_value(proposal.state),
                    result=proposal.result,
                    result_url=proposal.result_url,
                    error=proposal.error,
                    created_at=proposal.created_at,
                    updated_at=proposal.updated_at,
                )
            )
            try:
                await s.commit()
            except IntegrityError:
                await s.rollback()
                stmt = select(ActionProposalRow).where(ActionProposalRow.idempotency_key == proposal.idempotency_key)
                existing = (await s.execute(stmt)).scalar_one_or_none()
                if existing is None:
                    raise
                return _proposal_from_row(existing)
        return proposal

    async def get(self, proposal_id: str) -> Optional[ActionProposal]:
        """
        Retrieve a proposal by its ID.

        Args:
            proposal_id: The proposal identifier.

        Returns:
            The ActionProposal domain object if found, otherwise None.
        """
        async with self.session_factory() as s:
            row = await s.get(ActionProposalRow, proposal_id)
            if row is None:
                return None
            return _proposal_from_row(row)

    async def list_by_conversation(self, conversation_id: str) -> list[ActionProposal]:
        async with self.session_factory() as s:
            stmt = (
                select(ActionProposalRow)
                .where(ActionProposalRow.conversation_id == conversation_id)
                .order_by(ActionProposalRow.created_at.asc(), ActionProposalRow.id.asc())
            )
            rows = (await s.execute(stmt)).scalars().all()
            return [_proposal_from_row(row) for row in rows]

    async def list_by_message(self, message_id: str) -> list[ActionProposal]:
        async with self.session_factory() as s:
            stmt = (
                select(ActionProposalRow)
                .where(ActionProposalRow.message_id == message_id)
                .order_by(ActionProposalRow.created_at.asc(), ActionProposalRow.id.asc())
            )
            rows = (await s.execute(stmt)).scalars().all()
            return [_proposal_from_row(row) for row in rows]

    async def transition(
        self,
        proposal_id: str,
        *,
        from_states: Sequence[ActionState],
        to_state: ActionState,
        updates: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActionProposal]:
        """
        Compare-and-set the state of a proposal.

        Args:
            proposal_id: The proposal identifier.
            from_states: States the row must currently be in.
            to_state: The new state.
            updates: Outcome columns (``result``, ``result_url``, ``error``) to set in the same write.

        Returns:
            The updated proposal, or None if no row was in an expected source state.
        """
        values: Dict[str, Any] = {k: v for k, v in (updates or {}).items() if k in _UPDATABLE_PROPOSAL_COLUMNS}
        values["state"] = _state_value(to_state)
        values["updated_at"] = _utc_now()

        async with self.session_factory() as s:
            stmt = (
                update(ActionProposalRow)
                .where(ActionProposalRow.id == proposal_id)
                .where(ActionProposalRow.state.in_([_state_value(st) for st in from_states]))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = await s.execute(stmt)
            await s.commit()
            if result.rowcount != 1:
                return None
            row = await s.get(ActionProposalRow, proposal_id, populate_existing=True)
            if row is None:
                return None
            return _proposal_from_row(row)


@dataclass(frozen=True)
class SqlConversationRepository(ConversationRepository):
    """SQL implementation of ``ConversationRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, conversation: Conversation) -> Conversation:
        async with self.session_factory() as s:
            s.add(
                ConversationRow(
                    id=conversation.id,
                    title=conversation.title,
                    created_at=conversation.created_at,
                    updated_at=conversation.updated_at,
                )
            )
            await s.commit()
        return conversation

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        async with self.session_factory() as s:
            row = await s.get(ConversationRow, conversation_id)
            if row is None:
                return None
            return _conversation_from_row(row)

    async def list(self, limit: int = 100, offset: int = 0) -> list[Conversation]:
        """
        List conversations, most recently active first.

        Args:
            limit: Max number of records to return.
            offset: Pagination offset.

        Returns:
            A list of Conversation objects.
        """
        async with self.session_factory() as s:
            stmt = select(ConversationRow).order_by(ConversationRow.updated_at.desc()).offset(offset).limit(limit)
            rows = (await s.execute(stmt)).scalars().all()
            return [_conversation_from_row(row) for row in rows]

    async def touch(self, conversation_id: str) -> None:
        async with self.session_factory() as s:
            row = await s.get(ConversationRow, conversation_id)
            if row is None:
                return
            row.updated_at = _utc_now()
            await s.commit()

    async def delete(self, conversation_id: str) -> bool:
        """
        Delete a conversation together with its messages.

        Proposals of the conversation are kept.

        Args:
            conversation_id: The conversation identifier.

        Returns:
            True if a conversation was deleted.
        """
        async with self.session_factory() as s:
            await s.execute(delete(MessageRow).where(MessageRow.conversation_id == conversation_id))
            result = await s.execute(delete(ConversationRow).where(ConversationRow.id == conversation_id))
            await s.commit()
            return result.rowcount > 0


@dataclass(frozen=True)
class SqlMessageRepository(MessageRepository):
    """SQL implementation of ``MessageRepository`` (append-only)."""

    session_factory: async_sessionmaker[AsyncSession]

    async def append(self, message: ChatMessage) -> None:
        async with self.session_factory() as s:
            s.add(
                MessageRow(
                    id=message.id,
                    conversation_id=message.conversation_id,
                    role=_state_value(message.role),
                    content=message.content,
                    tool_calls=[tc.model_dump() for tc in message.tool_calls],
                    created_at=message.created_at,
                )
            )
            await s.commit()

    async def list(self, conversation_id: str, limit: int = 200) -> list[ChatMessage]:
        """Return the latest ``limit`` messages of a conversation, oldest first."""
        async with self.session_factory() as s:
            stmt = (
                select(MessageRow)
                .where(MessageRow.conversation_id == conversation_id)
                .order_by(MessageRow.created_at.desc())
                .limit(limit)
            )
            rows = (await s.execute(stmt)).scalars().all()
            return [_message_from_row(row) for row in reversed(rows)]


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience container for SQL repository implementations."""

    proposals: SqlActionProposalRepository
    conversations: SqlConversationRepository
    messages: SqlMessageRepository


def build_sql_repos(*, session_factory: async_sessionmaker[AsyncSession]) -> SqlRepoBundle:
    """Construct SQL repositories sharing a session factory."""
    return SqlRepoBundle(
        proposals=SqlActionProposalRepository(session_factory),
        conversations=SqlConversationRepository(session_factory),
        messages=SqlMessageRepository(session_factory),
    )
