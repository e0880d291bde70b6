from __future__ import annotations

from datetime import timedelta
from typing import AsyncIterator, List, Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from actiongate_ai.agent_core.actions import ActionStateMachine, ApprovalManager
from actiongate_ai.agent_core.integrations import IssueTracker, LinearClient
from actiongate_ai.agent_core.llm import ChatCompletionProvider, OpenAIChatProvider
from actiongate_ai.agent_core.repos.sql import SqlRepoBundle, build_sql_repos
from actiongate_ai.agent_core.runtime.broker import ActionUpdateBroker
from actiongate_ai.agent_core.runtime.conversation import ConversationLoop
from actiongate_ai.agent_core.runtime.events import StreamEvent
from actiongate_ai.agent_core.runtime.models import LoopDeps
from actiongate_ai.agent_core.schemas.domain import ChatMessage, Conversation
from actiongate_ai.agent_core.tools import ToolRegistry, build_default_registry
from actiongate_ai.core.logging_config import get_logger
from actiongate_ai.server.core.config import Settings, settings

logger = get_logger(__name__)


class ActionGateService:
    """
    Application wiring of the agent core for the API.

    Builds the repositories, the Linear client, the tool registry, the action
    state machine, the approval manager and the conversation loop once, and
    exposes the operations the routers need.
    """

    def __init__(
        self,
        *,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        tracker: Optional[IssueTracker] = None,
        provider: Optional[ChatCompletionProvider] = None,
        app_settings: Optional[Settings] = None,
    ) -> None:
        cfg = app_settings or settings
        if session_factory is None:
            from actiongate_ai.server.core.database import async_session_maker

            session_factory = async_session_maker

        self.repos: SqlRepoBundle = build_sql_repos(session_factory=session_factory)

        linear = cfg.linear
        self.tracker: IssueTracker = tracker or LinearClient(
            linear.api_key,
            team_key=linear.team_key,
            api_url=linear.api_url,
            timeout=linear.timeout_seconds,
        )
        self.registry: ToolRegistry = build_default_registry(self.tracker)
        self.broker = ActionUpdateBroker()

        actions = cfg.actions
        self.state_machine = ActionStateMachine(self.repos.proposals)
        self.approvals = ApprovalManager(
            self.state_machine,
            self.registry,
            broker=self.broker,
            proposal_ttl=(
                timedelta(seconds=actions.proposal_ttl_seconds) if actions.proposal_ttl_seconds else None
            ),
            revalidate_on_execute=actions.revalidate_on_execute,
        )

        openai = cfg.openai
        self.provider: ChatCompletionProvider = provider or OpenAIChatProvider(
            openai.api_key, openai.model, base_url=openai.base_url
        )
        self.loop = ConversationLoop(
            LoopDeps(
                provider=self.provider,
                registry=self.registry,
                approvals=self.approvals,
                conversations=self.repos.conversations,
                messages=self.repos.messages,
                broker=self.broker,
            ),
            max_iterations=actions.max_tool_iterations,
        )
        logger.info(f"ActionGate service ready with {len(self.registry)} tools (model={self.provider.model})")

    def stream_chat(self, conversation_id: str, message: str) -> AsyncIterator[StreamEvent]:
        return self.loop.stream(conversation_id, message)

    async def create_conversation(self, title: Optional[str] = None) -> Conversation:
        conversation = Conversation(id=str(uuid4()), title=title or "New conversation")
        return await self.repos.conversations.create(conversation)

    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return await self.repos.conversations.get(conversation_id)

    async def list_conversations(self, limit: int = 100, offset: int = 0) -> List[Conversation]:
        return await self.repos.conversations.list(limit=limit, offset=offset)

    async def delete_conversation(self, conversation_id: str) -> bool:
        deleted = await self.repos.conversations.delete(conversation_id)
        if deleted:
            logger.info(f"Deleted conversation {conversation_id}; its proposals are kept")
        return deleted

    async def list_messages(self, conversation_id: str, limit: int = 200) -> List[ChatMessage]:
        return await self.repos.messages.list(conversation_id, limit=limit)

    async def aclose(self) -> None:
        close = getattr(self.tracker, "aclose", None)
        if close is not None:
            await close()


# Global singleton
_service: Optional[ActionGateService] = None


def get_action_gate_service() -> ActionGateService:
    global _service
    if _service is None:
        _service = ActionGateService()
    return _service


async def shutdown_action_gate_service() -> None:
    global _service
    if _service is not None:
        await _service.aclose()
        _service = None
