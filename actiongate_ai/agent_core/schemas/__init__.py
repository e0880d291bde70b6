"""Domain schemas for the agent core.

- ``domain``: persisted entities (action proposals, conversations, messages).
- ``outcomes``: the tagged union used to classify tool handler results.
"""

from .base import BaseSchema, WireSchema
from .domain import (
    ActionProposal,
    ActionState,
    ChatMessage,
    ChatRole,
    ChatToolCall,
    Conversation,
    PreviewField,
    ToolCategory,
)
from .outcomes import (
    HandlerFailure,
    HandlerOutcome,
    HandlerPartialSuccess,
    HandlerSuccess,
    classify_handler_result,
)

__all__ = [
    "BaseSchema",
    "WireSchema",
    "ActionProposal",
    "ActionState",
    "ChatMessage",
    "ChatRole",
    "ChatToolCall",
    "Conversation",
    "PreviewField",
    "ToolCategory",
    "HandlerFailure",
    "HandlerOutcome",
    "HandlerPartialSuccess",
    "HandlerSuccess",
    "classify_handler_result",
]
