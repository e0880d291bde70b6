"""Chat turn runtime.

- ``conversation``: ``ConversationLoop``, streaming one user turn with write-tool
  interception (import it from ``runtime.conversation``).
- ``broker``: per-conversation fan-out of proposal updates.
- ``events``: the stream event types.
"""

from .broker import ActionUpdateBroker
from .events import (
    ActionProposedEvent,
    ActionUpdateEvent,
    DeltaEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    ToolCallInfo,
    ToolCallResultEvent,
    ToolCallStartEvent,
)

__all__ = [
    "ActionUpdateBroker",
    "ActionProposedEvent",
    "ActionUpdateEvent",
    "DeltaEvent",
    "DoneEvent",
    "ErrorEvent",
    "StreamEvent",
    "ToolCallInfo",
    "ToolCallResultEvent",
    "ToolCallStartEvent",
]
