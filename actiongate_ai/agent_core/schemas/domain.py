from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field

from .base import WireSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActionState(str, Enum):
    proposed = "proposed"
    approved = "approved"
    declined = "declined"
    executing = "executing"
    succeeded = "succeeded"
    failed = "failed"


class ToolCategory(str, Enum):
    query = "query"
    linear = "linear"


class ChatRole(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"
    tool = "tool"


class PreviewField(WireSchema):
    """One line of the before/after diff shown on an approval card."""

    field: str
    old_value: Optional[str] = None
    new_value: str


class ActionProposal(WireSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    idempotency_key: str

    conversation_id: str
    message_id: str

    tool_name: str
    tool_arguments: Dict[str, Any] = Field(default_factory=dict)
    category: str = ToolCategory.linear.value

    description: str
    preview: List[PreviewField] = Field(default_factory=list)

    state: ActionState = ActionState.proposed
    result: Optional[str] = None
    result_url: Optional[str] = None
    error: Optional[str] = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class Conversation(WireSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class ChatToolCall(WireSchema):
    id: str
    name: str
    arguments: str = ""
    result: Optional[str] = None


class ChatMessage(WireSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    conversation_id: str

    role: ChatRole
    content: str = ""
    tool_calls: List[ChatToolCall] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=_utc_now)
