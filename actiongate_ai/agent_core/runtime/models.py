from __future__ import annotations

"""Runtime dependency bundle.

``LoopDeps`` collects what ``ConversationLoop`` needs. It is constructed by
application wiring code (``ActionGateService``) or by tests with in-memory
fakes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..actions.approval_manager import ApprovalManager
from ..llm.base import ChatCompletionProvider
from ..repos.interfaces import ConversationRepository, MessageRepository
from ..tools.registry import ToolRegistry
from .broker import ActionUpdateBroker


@dataclass(frozen=True)
class LoopDeps:
    """Dependency bundle for ``ConversationLoop``.

    - ``provider``: streaming chat-completions backend.
    - ``registry``: tool catalog; decides read vs write per call.
    - ``approvals``: the only path for write-tool calls (proposal creation).
    - ``conversations`` / ``messages``: chat persistence.
    - ``broker``: optional relay of proposal updates into the open stream.
    """

    provider: ChatCompletionProvider
    registry: ToolRegistry
    approvals: ApprovalManager
    conversations: ConversationRepository
    messages: MessageRepository
    broker: Optional[ActionUpdateBroker] = None


@dataclass
class _PendingToolCall:
    """A tool call being reassembled from streamed fragments."""

    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""

    def to_openai(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments or "{}"},
        }


@dataclass
class _Turn:
    """Accumulated output of one assistant message across loop iterations."""

    message_id: str
    content: List[str] = field(default_factory=list)
    proposal_ids: Dict[str, str] = field(default_factory=dict)
    iterations: int = 0
    tool_call_count: int = 0

    @property
    def text(self) -> str:
        return "".join(self.content)
