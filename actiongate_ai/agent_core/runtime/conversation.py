from __future__ import annotations

"""Conversation loop.

``ConversationLoop.stream`` runs one user turn against the LLM and yields
``StreamEvent`` objects as they happen.

Turn model
----------

- The user message is persisted first; the conversation is created on first
  use with a title taken from that message.
- The assistant message id is generated before the first model call so every
  proposal raised during the turn can reference it.
- Each iteration streams one completion. Content fragments are emitted as
  ``delta`` events immediately; tool-call fragments are reassembled by index.
- When the model requested tool calls, each call is routed by the registry:

  * read tools run inline (``tool_call_start`` / ``tool_call_result``) and
    their JSON result is fed back to the model;
  * write tools are NEVER run here. The call becomes a proposal through the
    approval manager (``action_proposed``) and the model receives a synthetic
    ``proposed_for_approval`` result instead.

- The loop ends when the model answers without tool calls or after
  ``max_iterations`` completions. The assistant message is persisted with its
  tool calls and ``done`` is emitted.

Proposal updates published by decision endpoints while the stream is open
are relayed as ``action_update`` events.
"""

import asyncio
import json
import time
from typing import Any, AsyncIterator, Callable, Dict, List, Optional
from uuid import uuid4

from actiongate_ai.core.logging_config import get_logger
from actiongate_ai.core.monitoring import log_error, log_llm_call

from ..errors import RegistryError
from ..schemas.domain import ActionProposal, ActionState, ChatMessage, ChatRole, ChatToolCall, Conversation
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
from .models import LoopDeps, _PendingToolCall, _Turn
from .prompts import build_system_prompt

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 50

PROPOSED_FOR_APPROVAL_MESSAGE = (
    "This action has NOT been executed. It was proposed to the user, who must approve it "
    "before anything changes. Tell the user what you proposed and do not claim it is done."
)


def conversation_title(message: str) -> str:
    """First line of the first user message, truncated for display."""
    text = message.strip().splitlines()[0] if message.strip() else "New conversation"
    if len(text) > TITLE_MAX_LENGTH:
        return text[:TITLE_MAX_LENGTH] + "..."
    return text


def _canonical(tool_name: str, args: Dict[str, Any]) -> str:
    return tool_name + ":" + json.dumps(args, sort_keys=True, separators=(",", ":"), default=str)


def _to_json(value: Any) -> str:
    return json.dumps(value, default=str)


class ConversationLoop:
    """Stream one chat turn with write-tool interception."""

    def __init__(
        self,
        deps: LoopDeps,
        *,
        max_iterations: int = 5,
        history_limit: int = 50,
        system_prompt: Optional[str] = None,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        """
        Initialize the ConversationLoop.

        Args:
            deps: Provider, registry, approval manager, repositories and broker.
            max_iterations: Upper bound on completions per turn.
            history_limit: Number of persisted messages replayed to the model.
            system_prompt: Override of the rendered system prompt.
            id_factory: Generator of assistant message ids.
        """
        self._deps = deps
        self.max_iterations = max_iterations
        self.history_limit = history_limit
        self.system_prompt = system_prompt or build_system_prompt(deps.registry)
        self._new_id = id_factory

    async def stream(self, conversation_id: str, user_message: str) -> AsyncIterator[StreamEvent]:
        """
        Run one user turn.

        Args:
            conversation_id: Target conversation; created when it does not exist.
            user_message: The user's text.

        Yields:
            Stream events in order. The last event is ``done`` or ``error``.
        """
        deps = self._deps
        turn = _Turn(message_id=self._new_id())
        tool_calls: List[ChatToolCall] = []
        started = time.perf_counter()

        if deps.broker is None:
            async for event in self._run_turn(conversation_id, user_message, turn, tool_calls, None):
                yield event
        else:
            async with deps.broker.subscribe(conversation_id) as updates:
                async for event in self._run_turn(conversation_id, user_message, turn, tool_calls, updates):
                    yield event

        log_llm_call(
            deps.provider.model,
            turn.iterations,
            turn.tool_call_count,
            (time.perf_counter() - started) * 1000,
        )

    async def _run_turn(
        self,
        conversation_id: str,
        user_message: str,
        turn: _Turn,
        tool_calls: List[ChatToolCall],
        updates: Optional[asyncio.Queue[ActionProposal]],
    ) -> AsyncIterator[StreamEvent]:
        deps = self._deps
        try:
            await self._ensure_conversation(conversation_id, user_message)
            history = await deps.messages.list(conversation_id, limit=self.history_limit)
            await deps.messages.append(
                ChatMessage(conversation_id=conversation_id, role=ChatRole.user, content=user_message)
            )

            messages = self._build_messages(history, user_message)
            tools = deps.registry.to_openai_tools()

            while turn.iterations < self.max_iterations:
                turn.iterations += 1
                pending: Dict[int, _PendingToolCall] = {}
                iteration_text: List[str] = []

                async for chunk in deps.provider.stream_chat(messages, tools):
                    if chunk.content:
                        iteration_text.append(chunk.content)
                        turn.content.append(chunk.content)
                        yield DeltaEvent(content=chunk.content)
                    for fragment in chunk.tool_calls:
                        call = pending.setdefault(fragment.index, _PendingToolCall(index=fragment.index))
                        if fragment.id:
                            call.id = fragment.id
                        if fragment.name:
                            call.name = fragment.name
                        call.arguments += fragment.arguments
                    for event in self._drain(updates):
                        yield event

                if not pending:
                    break

                ordered = [pending[i] for i in sorted(pending)]
                for call in ordered:
                    if not call.id:
                        call.id = f"call_{turn.message_id[:8]}_{turn.iterations}_{call.index}"
                messages.append(
                    {
                        "role": "assistant",
                        "content": "".join(iteration_text) or None,
                        "tool_calls": [c.to_openai() for c in ordered],
                    }
                )

                for call in ordered:
                    turn.tool_call_count += 1
                    result: Optional[Dict[str, Any]] = None
                    async for item in self._handle_tool_call(conversation_id, turn, call):
                        if isinstance(item, dict):
                            result = item
                        else:
                            yield item
                    result_json = _to_json(result)
                    tool_calls.append(
                        ChatToolCall(id=call.id, name=call.name, arguments=call.arguments, result=result_json)
                    )
                    messages.append({"role": "tool", "tool_call_id": call.id, "content": result_json})
                    for event in self._drain(updates):
                        yield event
            else:
                logger.warning(
                    f"Turn {turn.message_id} in conversation {conversation_id} "
                    f"stopped after {self.max_iterations} iterations"
                )

            await self._persist_assistant(conversation_id, turn, tool_calls)
            for event in self._drain(updates):
                yield event
            yield DoneEvent(message_id=turn.message_id)
        except Exception as e:
            logger.error(f"Chat turn failed in conversation {conversation_id}: {e}", exc_info=True)
            log_error("ChatTurnFailed", str(e), {"conversation_id": conversation_id, "message_id": turn.message_id})
            if turn.content or tool_calls:
                try:
                    await self._persist_assistant(conversation_id, turn, tool_calls)
                except Exception as persist_error:
                    logger.error(f"Could not persist partial assistant message: {persist_error}")
            yield ErrorEvent(error=str(e) or type(e).__name__)

    async def _handle_tool_call(
        self, conversation_id: str, turn: _Turn, call: _PendingToolCall
    ) -> AsyncIterator[Any]:
        """Route one call; yields stream events and finally the result dict fed back to the model."""
        registry = self._deps.registry
        try:
            raw_args = json.loads(call.arguments) if call.arguments.strip() else {}
        except json.JSONDecodeError as e:
            yield {"error": f"Invalid JSON arguments for {call.name}: {e}"}
            return
        if not isinstance(raw_args, dict):
            yield {"error": f"Arguments for {call.name} must be a JSON object"}
            return

        try:
            is_write = registry.is_write_tool(call.name)
        except RegistryError as e:
            yield {"error": e.message}
            return

        if is_write:
            async for item in self._propose(conversation_id, turn, call.name, raw_args):
                yield item
            return

        yield ToolCallStartEvent(tool_call=ToolCallInfo(id=call.id, name=call.name))
        result = await self._run_read_tool(call.name, raw_args)
        yield ToolCallResultEvent(tool_call=ToolCallInfo(id=call.id, name=call.name, result=_to_json(result)))
        yield result

    async def _propose(
        self, conversation_id: str, turn: _Turn, tool_name: str, raw_args: Dict[str, Any]
    ) -> AsyncIterator[Any]:
        approvals = self._deps.approvals
        try:
            args = self._deps.registry.validate_arguments(tool_name, raw_args)
        except RegistryError as e:
            yield {"error": e.message}
            return

        key = _canonical(tool_name, args)
        existing_id = turn.proposal_ids.get(key)
        if existing_id is not None:
            existing = await approvals.get_proposal(existing_id)
            if existing is not None and existing.state == ActionState.proposed:
                logger.info(f"Reusing proposal {existing.id} for repeated {tool_name} call")
                yield {
                    "status": "already_proposed",
                    "proposalId": existing.id,
                    "description": existing.description,
                    "message": PROPOSED_FOR_APPROVAL_MESSAGE,
                }
                return

        try:
            proposal = await approvals.create_proposal(
                conversation_id=conversation_id,
                message_id=turn.message_id,
                tool_name=tool_name,
                tool_arguments=args,
            )
        except RegistryError as e:
            yield {"error": e.message}
            return

        turn.proposal_ids[key] = proposal.id
        yield ActionProposedEvent(proposal=proposal)
        yield {
            "status": "proposed_for_approval",
            "proposalId": proposal.id,
            "description": proposal.description,
            "message": PROPOSED_FOR_APPROVAL_MESSAGE,
        }

    async def _run_read_tool(self, tool_name: str, raw_args: Dict[str, Any]) -> Dict[str, Any]:
        registry = self._deps.registry
        try:
            definition = registry.get(tool_name)
            args = definition.validate_arguments(raw_args)
            if definition.handler is None:
                return {"error": f"Tool handler not found: {tool_name}"}
            result = await definition.handler(args)
        except RegistryError as e:
            return {"error": e.message}
        except Exception as e:
            logger.warning(f"Read tool {tool_name} failed: {e}")
            return {"error": str(e) or type(e).__name__}
        return result if isinstance(result, dict) else {"result": result}

    async def _ensure_conversation(self, conversation_id: str, user_message: str) -> None:
        conversations = self._deps.conversations
        if await conversations.get(conversation_id) is None:
            await conversations.create(Conversation(id=conversation_id, title=conversation_title(user_message)))
            logger.info(f"Created conversation {conversation_id}")

    def _build_messages(self, history: List[ChatMessage], user_message: str) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [{"role": "system", "content": self.system_prompt}]
        for message in history:
            if message.role not in (ChatRole.user, ChatRole.assistant) or not message.content:
                continue
            messages.append({"role": message.role.value, "content": message.content})
        messages.append({"role": "user", "content": user_message})
        return messages

    async def _persist_assistant(self, conversation_id: str, turn: _Turn, tool_calls: List[ChatToolCall]) -> None:
        await self._deps.messages.append(
            ChatMessage(
                id=turn.message_id,
                conversation_id=conversation_id,
                role=ChatRole.assistant,
                content=turn.text,
                tool_calls=list(tool_calls),
            )
        )
        await self._deps.conversations.touch(conversation_id)

    @staticmethod
    def _drain(updates: Optional[asyncio.Queue[ActionProposal]]) -> List[ActionUpdateEvent]:
        events: List[ActionUpdateEvent] = []
        if updates is None:
            return events
        while True:
            try:
                proposal = updates.get_nowait()
            except asyncio.QueueEmpty:
                return events
            events.append(ActionUpdateEvent.from_proposal(proposal))
