"""
Chat API Endpoints.

This module provides the streaming chat endpoint and conversation management.

Includes:
- One chat turn streamed as Server-Sent Events (SSE), one JSON event per message
- Conversation CRUD and message history
- Proposal listing per conversation, used to re-render approval cards after a reload
- A per-conversation SSE subscription to action updates
"""

import asyncio
import json
from contextlib import aclosing
from typing import List
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from actiongate_ai.agent_core.runtime.events import ActionUpdateEvent, ErrorEvent
from actiongate_ai.agent_core.schemas.domain import ActionProposal, ChatMessage, Conversation
from actiongate_ai.core.logging_config import get_logger
from actiongate_ai.server.schemas import ChatRequest, ConversationCreate, DeleteResponse
from actiongate_ai.server.services.deps import ActionGateDep

logger = get_logger(__name__)
router = APIRouter()

KEEP_ALIVE_SECONDS = 15


@router.post(
    "/stream",
    summary="Stream Chat Turn",
    description="Send a user message and stream the assistant's answer, tool activity and action proposals.",
    response_description="A stream of chat events.",
    responses={
        200: {
            "description": "Server-sent events. Each `data:` line is one JSON chat event.",
            "content": {"text/event-stream": {}},
        }
    },
)
async def stream_chat(chat_in: ChatRequest, request: Request, service: ActionGateDep):
    """
    Stream one chat turn.

    Write actions requested by the model are never executed here; they are
    emitted as `action_proposed` events and wait for a decision on the
    `/actions/{id}` endpoints. The conversation id is returned in the
    `X-Conversation-Id` header.
    """
    conversation_id = chat_in.conversation_id or str(uuid4())
    logger.info(f"Chat turn in conversation {conversation_id}")

    async def event_generator():
        try:
            async with aclosing(service.stream_chat(conversation_id, chat_in.message)) as events:
                async for event in events:
                    if await request.is_disconnected():
                        logger.info(f"Client disconnected from chat stream of conversation {conversation_id}")
                        break
                    yield json.dumps(event.to_wire())
        except Exception as e:
            logger.error(f"Error in chat stream of conversation {conversation_id}: {e}", exc_info=True)
            yield json.dumps(ErrorEvent(error=str(e)).to_wire())

    return EventSourceResponse(event_generator(), headers={"X-Conversation-Id": conversation_id})


@router.get(
    "/conversations",
    response_model=List[Conversation],
    summary="List Conversations",
    description="Retrieve conversations, most recently active first.",
)
async def list_conversations(service: ActionGateDep, limit: int = 100, offset: int = 0):
    return await service.list_conversations(limit=limit, offset=offset)


@router.post(
    "/conversations",
    response_model=Conversation,
    status_code=201,
    summary="Create Conversation",
    description="Create an empty conversation.",
)
async def create_conversation(conversation_in: ConversationCreate, service: ActionGateDep):
    return await service.create_conversation(conversation_in.title)


@router.get(
    "/conversations/{conversation_id}",
    response_model=Conversation,
    summary="Get Conversation",
    responses={404: {"description": "Conversation not found"}},
)
async def get_conversation(conversation_id: str, service: ActionGateDep):
    conversation = await service.get_conversation(conversation_id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@router.delete(
    "/conversations/{conversation_id}",
    response_model=DeleteResponse,
    summary="Delete Conversation",
    description="Delete a conversation and its messages. Action proposals are kept.",
    responses={404: {"description": "Conversation not found"}},
)
async def delete_conversation(conversation_id: str, service: ActionGateDep):
    if not await service.delete_conversation(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return DeleteResponse(ok=True)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=List[ChatMessage],
    summary="List Messages",
    description="Retrieve the message history of a conversation in chronological order.",
)
async def list_messages(conversation_id: str, service: ActionGateDep, limit: int = 200):
    return await service.list_messages(conversation_id, limit=limit)


@router.get(
    "/conversations/{conversation_id}/proposals",
    response_model=List[ActionProposal],
    summary="List Action Proposals",
    description="Retrieve every action proposal of a conversation with its current state.",
)
async def list_proposals(conversation_id: str, service: ActionGateDep):
    """
    List proposals of a conversation.

    Used by clients to rebuild approval cards (and their final states) after a reload.
    """
    return await service.approvals.get_proposals_by_conversation(conversation_id)


@router.get(
    "/conversations/{conversation_id}/actions/events",
    summary="Subscribe to Action Updates",
    description="Server-sent `action_update` events for every proposal state change in the conversation.",
    responses={200: {"content": {"text/event-stream": {}}}},
)
async def stream_action_updates(conversation_id: str, request: Request, service: ActionGateDep):
    async def event_generator():
        async with service.broker.subscribe(conversation_id) as updates:
            while True:
                if await request.is_disconnected():
                    logger.info(f"Client disconnected from action updates of conversation {conversation_id}")
                    break
                try:
                    proposal = await asyncio.wait_for(updates.get(), timeout=KEEP_ALIVE_SECONDS)
                except asyncio.TimeoutError:
                    continue
                yield json.dumps(ActionUpdateEvent.from_proposal(proposal).to_wire())

    return EventSourceResponse(event_generator(), ping=KEEP_ALIVE_SECONDS)
