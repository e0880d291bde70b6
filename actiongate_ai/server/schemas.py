"""
API Schemas.

This module contains Pydantic models used for API request bodies and response validation.
These schemas define the interface contract between the client and the server.

Request bodies accept camelCase keys (``conversationId``) as well as the
snake_case field names. Responses are serialized in camelCase.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from actiongate_ai.agent_core.schemas.base import WireSchema
from actiongate_ai.agent_core.schemas.domain import ActionProposal


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(_Request):
    """
    Schema for one chat turn.

    The response is a server-sent event stream of chat events.
    """
    conversation_id: Optional[str] = Field(
        default=None,
        description="Conversation to continue. A new conversation is created when omitted or unknown.",
        examples=["5f0c9a4e-3c1b-4b59-9a57-0f4d3c2b1a00"],
    )
    message: str = Field(
        ...,
        min_length=1,
        description="The user's message.",
        examples=["Create a high priority bug for the login timeout and assign it to Dana"],
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": {"conversationId": None, "message": "What is blocking the release?"}},
    )


class ConversationCreate(_Request):
    """Schema for creating an empty conversation."""
    title: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Display title. Defaults to 'New conversation'.",
        examples=["Sprint planning"],
    )


class ActionResponse(WireSchema):
    """
    Result of a decision endpoint.

    ``ok`` is False when the request was rejected (illegal transition, expired
    proposal); ``proposal`` then carries the current persisted state so the
    client can re-render the approval card.
    """
    ok: bool = Field(..., description="Whether the requested decision was applied.")
    proposal: Optional[ActionProposal] = Field(default=None, description="The proposal after the request.")
    error: Optional[str] = Field(default=None, description="Why the request was rejected, or why execution failed.")


class DeleteResponse(WireSchema):
    ok: bool
