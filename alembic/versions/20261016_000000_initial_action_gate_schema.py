"""Initial schema for ActionGate-AI

Revision ID: 20261016_000000
Revises: None
Create Date: 2026-10-16 00:00:00.000000

Creates the tables of the approval-gated action service:
- ag_action_proposals: intercepted write-tool calls and their lifecycle state,
  unique on idempotency_key
- ag_conversations: chat conversations
- ag_chat_messages: append-only chat history with the tool calls of assistant messages

Revision format: YYYYMMDD_HHMMSS_description

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261016_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JsonType = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    """Create the proposal, conversation and message tables."""

    op.create_table(
        "ag_action_proposals",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("idempotency_key", sa.String(128), nullable=False),
        sa.Column("conversation_id", sa.String(64), nullable=False),
        sa.Column("message_id", sa.String(64), nullable=False),
        sa.Column("tool_name", sa.String(128), nullable=False),
        sa.Column("tool_arguments", JsonType, nullable=False),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("preview", JsonType, nullable=False),
        sa.Column("state", sa.String(32), nullable=False),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("result_url", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_ag_action_proposals_idempotency_key", "ag_action_proposals", ["idempotency_key"], unique=True
    )
    op.create_index("ix_ag_action_proposals_conversation_id", "ag_action_proposals", ["conversation_id"])
    op.create_index("ix_ag_action_proposals_message_id", "ag_action_proposals", ["message_id"])
    op.create_index("ix_ag_action_proposals_state", "ag_action_proposals", ["state"])

    op.create_table(
        "ag_conversations",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ag_conversations_updated_at", "ag_conversations", ["updated_at"])

    op.create_table(
        "ag_chat_messages",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("conversation_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("tool_calls", JsonType, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ag_chat_messages_conversation_id", "ag_chat_messages", ["conversation_id"])


def downgrade() -> None:
    """Drop all tables created in upgrade."""
    op.drop_table("ag_chat_messages")
    op.drop_table("ag_conversations")
    op.drop_table("ag_action_proposals")
