from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from actiongate_ai.agent_core.actions.approval_manager import ApprovalManager
from actiongate_ai.agent_core.actions.state_machine import ActionStateMachine
from actiongate_ai.agent_core.integrations.errors import LinearNotFoundError
from actiongate_ai.agent_core.integrations.models import TrackerIssue
from actiongate_ai.agent_core.llm.base import ChatCompletionProvider, StreamChunk, ToolCallFragment
from actiongate_ai.agent_core.runtime.broker import ActionUpdateBroker
from actiongate_ai.agent_core.schemas.domain import ActionProposal, ActionState, ChatMessage, Conversation
from actiongate_ai.agent_core.tools.builtin import build_default_registry
from actiongate_ai.agent_core.tools.registry import ToolRegistry


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryProposalRepository:
    def __init__(self) -> None:
        self.rows: Dict[str, ActionProposal] = {}

    async def create(self, proposal: ActionProposal) -> ActionProposal:
        for row in self.rows.values():
            if row.idempotency_key == proposal.idempotency_key:
                return row
        self.rows[proposal.id] = proposal
        return proposal

    async def get(self, proposal_id: str) -> Optional[ActionProposal]:
        return self.rows.get(proposal_id)

    async def list_by_conversation(self, conversation_id: str) -> list[ActionProposal]:
        return sorted(
            (r for r in self.rows.values() if r.conversation_id == conversation_id), key=lambda r: r.created_at
        )

    async def list_by_message(self, message_id: str) -> list[ActionProposal]:
        return sorted((r for r in self.rows.values() if r.message_id == message_id), key=lambda r: r.created_at)

    async def transition(
        self,
        proposal_id: str,
        *,
        from_states: Sequence[ActionState],
        to_state: ActionState,
        updates: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActionProposal]:
        row = self.rows.get(proposal_id)
        if row is None or row.state not in from_states:
            return None
        changes: Dict[str, Any] = {"state": to_state, "updated_at": datetime.now(timezone.utc)}
        changes.update(updates or {})
        updated = row.model_copy(update=changes)
        self.rows[proposal_id] = updated
        return updated


class InMemoryConversationRepository:
    def __init__(self) -> None:
        self.rows: Dict[str, Conversation] = {}
        self.touched: List[str] = []

    async def create(self, conversation: Conversation) -> Conversation:
        self.rows[conversation.id] = conversation
        return conversation

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        return self.rows.get(conversation_id)

    async def list(self, limit: int = 100, offset: int = 0) -> list[Conversation]:
        ordered = sorted(self.rows.values(), key=lambda c: c.updated_at, reverse=True)
        return ordered[offset : offset + limit]

    async def touch(self, conversation_id: str) -> None:
        self.touched.append(conversation_id)

    async def delete(self, conversation_id: str) -> bool:
        return self.rows.pop(conversation_id, None) is not None


class InMemoryMessageRepository:
    def __init__(self) -> None:
        self.rows: List[ChatMessage] = []

    async def append(self, message: ChatMessage) -> None:
        self.rows.append(message)

    async def list(self, conversation_id: str, limit: int = 200) -> list[ChatMessage]:
        return [m for m in self.rows if m.conversation_id == conversation_id][-limit:]


class FakeTracker:
    """In-memory issue tracker recording every mutation."""

    def __init__(self) -> None:
        self.issues: Dict[str, TrackerIssue] = {}
        self.calls: List[Tuple[str, str]] = []
        self.update_failures: Dict[str, str] = {}
        self.create_error: Optional[str] = None
        self.delay: float = 0.0
        self._seq = 100

    def add(self, identifier: str, title: str, **fields: Any) -> TrackerIssue:
        issue = TrackerIssue(
            id=f"uuid-{identifier.lower()}",
            identifier=identifier,
            title=title,
            url=f"https://linear.app/acme/issue/{identifier}",
            **fields,
        )
        self.issues[identifier] = issue
        return issue

    def _find(self, issue_id: str) -> Optional[TrackerIssue]:
        for issue in self.issues.values():
            if issue_id in (issue.id, issue.identifier):
                return issue
        return None

    def mutations(self, name: str) -> List[str]:
        return [key for call, key in self.calls if call == name]

    async def search_issues(self, query: str, limit: int = 10) -> List[TrackerIssue]:
        needle = query.lower()
        found = [i for i in self.issues.values() if needle in i.title.lower() or needle in i.identifier.lower()]
        return found[:limit]

    async def get_issue(self, issue_id: str) -> Optional[TrackerIssue]:
        return self._find(issue_id)

    async def create_issue(
        self,
        *,
        title: str,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        assignee_name: Optional[str] = None,
        label_names: Optional[List[str]] = None,
    ) -> TrackerIssue:
        self.calls.append(("create_issue", title))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.create_error:
            raise RuntimeError(self.create_error)
        self._seq += 1
        return self.add(
            f"ENG-{self._seq}",
            title,
            description=description,
            priority=priority,
            assignee_name=assignee_name,
            labels=label_names or [],
        )

    async def update_issue(self, issue_id: str, **changes: Any) -> TrackerIssue:
        self.calls.append(("update_issue", issue_id))
        if issue_id in self.update_failures:
            raise RuntimeError(self.update_failures[issue_id])
        issue = self._find(issue_id)
        if issue is None:
            raise LinearNotFoundError("issue", issue_id)
        updated = issue.model_copy(update={k: v for k, v in changes.items() if v is not None})
        self.issues[issue.identifier] = updated
        return updated

    async def delete_issue(self, issue_id: str) -> bool:
        self.calls.append(("delete_issue", issue_id))
        issue = self._find(issue_id)
        if issue is None:
            return False
        del self.issues[issue.identifier]
        return True

    async def add_comment(self, issue_id: str, body: str) -> Dict[str, Any]:
        self.calls.append(("add_comment", issue_id))
        issue = self._find(issue_id)
        if issue is None:
            raise LinearNotFoundError("issue", issue_id)
        return {"id": "comment-1", "url": f"{issue.url}#comment-1"}


class ScriptedProvider(ChatCompletionProvider):
    """Replays one scripted list of chunks per completion request."""

    def __init__(self, rounds: List[List[StreamChunk]], *, error: Optional[Exception] = None) -> None:
        super().__init__("scripted-model")
        self.rounds = list(rounds)
        self.error = error
        self.requests: List[Dict[str, Any]] = []

    async def stream_chat(self, messages, tools=None):
        self.requests.append({"messages": json.loads(json.dumps(messages)), "tools": tools})
        if self.error is not None:
            raise self.error
        chunks = self.rounds.pop(0) if self.rounds else [StreamChunk(content="Done.", finish_reason="stop")]
        for chunk in chunks:
            yield chunk


def tool_call_chunks(index: int, call_id: str, name: str, arguments: Dict[str, Any], parts: int = 3) -> List[StreamChunk]:
    """Split one tool call into streamed fragments the way providers send them."""
    raw = json.dumps(arguments)
    size = max(1, len(raw) // parts + 1)
    pieces = [raw[i : i + size] for i in range(0, len(raw), size)]
    chunks = [StreamChunk(tool_calls=[ToolCallFragment(index=index, id=call_id, name=name, arguments=pieces[0])])]
    chunks.extend(StreamChunk(tool_calls=[ToolCallFragment(index=index, arguments=p)]) for p in pieces[1:])
    return chunks


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def tracker() -> FakeTracker:
    t = FakeTracker()
    t.add("ENG-1", "Login times out", priority=3, status="Todo", assignee_name="Dana")
    t.add("ENG-2", "Dark mode toggle", priority=4, status="Backlog")
    t.add("ENG-3", "Crash on logout", priority=2, status="In Progress", assignee_name="Sam")
    return t


@pytest.fixture
def registry(tracker: FakeTracker) -> ToolRegistry:
    return build_default_registry(tracker)


@pytest.fixture
def proposal_repo() -> InMemoryProposalRepository:
    return InMemoryProposalRepository()


@pytest.fixture
def conversation_repo() -> InMemoryConversationRepository:
    return InMemoryConversationRepository()


@pytest.fixture
def message_repo() -> InMemoryMessageRepository:
    return InMemoryMessageRepository()


@pytest.fixture
def broker() -> ActionUpdateBroker:
    return ActionUpdateBroker()


@pytest.fixture
def state_machine(proposal_repo: InMemoryProposalRepository, clock: FakeClock) -> ActionStateMachine:
    return ActionStateMachine(proposal_repo, clock=clock)


@pytest.fixture
def approvals(
    state_machine: ActionStateMachine, registry: ToolRegistry, broker: ActionUpdateBroker, clock: FakeClock
) -> ApprovalManager:
    return ApprovalManager(state_machine, registry, broker=broker, clock=clock)


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def tool_call() -> Callable[..., List[StreamChunk]]:
    return tool_call_chunks
