"""Chat stream events.

Each event is serialized as one JSON object (camelCase keys) per server-sent
event. ``StreamEvent`` is a discriminated union on ``type``.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import Field

from ..schemas.base import WireSchema
from ..schemas.domain import ActionProposal, ActionState


class _Event(WireSchema):
    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ToolCallInfo(WireSchema):
    id: str
    name: str
    result: Optional[str] = None


class DeltaEvent(_Event):
    type: Literal["delta"] = "delta"
    content: str


class ToolCallStartEvent(_Event):
    type: Literal["tool_call_start"] = "tool_call_start"
    tool_call: ToolCallInfo


class ToolCallResultEvent(_Event):
    type: Literal["tool_call_result"] = "tool_call_result"
    tool_call: ToolCallInfo


class ActionProposedEvent(_Event):
    type: Literal["action_proposed"] = "action_proposed"
    proposal: ActionProposal


class ActionUpdateEvent(_Event):
    type: Literal["action_update"] = "action_update"
    proposal_id: str
    state: ActionState
    result: Optional[str] = None
    result_url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_proposal(cls, proposal: ActionProposal) -> "ActionUpdateEvent":
        return cls(
            proposal_id=proposal.id,
            state=proposal.state,
            result=proposal.result,
            result_url=proposal.result_url,
            error=proposal.error,
        )


class DoneEvent(_Event):
    type: Literal["done"] = "done"
    message_id: str


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    error: str


StreamEvent = Annotated[
    Union[
        DeltaEvent,
        ToolCallStartEvent,
        ToolCallResultEvent,
        ActionProposedEvent,
        ActionUpdateEvent,
        DoneEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]
