from __future__ import annotations

"""SQLAlchemy ORM models for action and chat persistence.

These ORM models define the SQL schema used by the SQL repository
implementation in ``actiongate_ai.agent_core.repos.sql``.

Design
------

- Action proposals are the single shared mutable resource between the chat
  stream and the decision endpoints. ``idempotency_key`` is unique so the same
  proposal creation event can never be stored twice.
- Conversations and messages hold the chat history; assistant messages carry
  the tool calls made while they were streamed.

JSON columns use ``JSONB`` on PostgreSQL and plain ``JSON`` elsewhere (SQLite
for development and tests).

Table names are prefixed with ``ag_`` to avoid collisions in shared databases.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class ActionProposalRow(Base):
    """Row model for ``ag_action_proposals``.

    Key fields:

    - ``state``: lifecycle state, only ever changed through a compare-and-set
      update issued by the action state machine.
    - ``tool_arguments``/``preview``: the payload that will be executed and the
      before/after diff that was shown to the approver.
    - ``result``/``result_url``/``error``: the recorded outcome.
    """

    __tablename__ = "ag_action_proposals"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    idempotency_key: Mapped[str] = mapped_column(String(128), unique=True, index=True)

    conversation_id: Mapped[str] = mapped_column(String(64), index=True)
    message_id: Mapped[str] = mapped_column(String(64), index=True)

    tool_name: Mapped[str] = mapped_column(String(128))
    tool_arguments: Mapped[Dict[str, Any]] = mapped_column(JsonType, default=dict)
    category: Mapped[str] = mapped_column(String(64))

    description: Mapped[str] = mapped_column(Text)
    preview: Mapped[List[Dict[str, Any]]] = mapped_column(JsonType, default=list)

    state: Mapped[str] = mapped_column(String(32), index=True)
    result: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    result_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class ConversationRow(Base):
    """Row model for ``ag_conversations``."""

    __tablename__ = "ag_conversations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(256))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class MessageRow(Base):
    """Row model for ``ag_chat_messages``.

    Append-only. ``tool_calls`` stores the list of tool invocations made while
    an assistant message was streamed (id, name, raw arguments, result).
    """

    __tablename__ = "ag_chat_messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    conversation_id: Mapped[str] = mapped_column(String(64), index=True)

    role: Mapped[str] = mapped_column(String(32))
    content: Mapped[str] = mapped_column(Text, default="")
    tool_calls: Mapped[List[Dict[str, Any]]] = mapped_column(JsonType, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
