"""Error types raised by the agent core.

Purpose:
- Provide a typed taxonomy for failures of the tool registry and of the
  action state machine.
- Carry enough context (tool name, proposal id, attempted edge) for the server
  layer to map them onto HTTP responses and for the conversation loop to feed
  them back to the model.

Usage:
- Catch ``RegistryError`` inside the conversation loop; the error message is
  returned to the model as a tool-result error.
- Catch ``InvalidTransitionError`` / ``ProposalNotFoundError`` at decision
  endpoints.

Handler failures are not exceptions at this level: they are recorded on the
proposal as ``failed`` with the error message preserved.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


class ActionGateError(Exception):
    """Base error for the agent core.

    Args:
        message: Human-readable error description.
        details: Optional structured context for diagnosis.
    """
    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class RegistryError(ActionGateError):
    """Base error for tool registry lookups and argument validation."""


class UnknownToolError(RegistryError):
    """Raised when a tool name is not present in the registry.

    Args:
        tool_name: The requested tool name.
    """
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ToolArgumentsError(RegistryError):
    """Raised when tool arguments do not satisfy the tool's input schema.

    Args:
        tool_name: The tool whose schema rejected the arguments.
        reason: Short description of the validation failure.
        errors: Optional structured validation errors.
    """
    def __init__(self, tool_name: str, reason: str, *, errors: Optional[Any] = None) -> None:
        super().__init__(f"Invalid arguments for tool '{tool_name}': {reason}", details=errors)
        self.tool_name = tool_name


class ProposalNotFoundError(ActionGateError):
    """Raised when an action proposal id does not exist.

    Args:
        proposal_id: The missing proposal id.
    """
    def __init__(self, proposal_id: str) -> None:
        super().__init__(f"Action proposal not found: {proposal_id}")
        self.proposal_id = proposal_id


class InvalidTransitionError(ActionGateError):
    """Raised when a state change is attempted from an illegal source state.

    Args:
        proposal_id: The proposal being transitioned.
        from_state: The state the proposal is currently in.
        to_state: The state the caller attempted to move to.
        message: Optional override for the default message naming the edge.
    """
    def __init__(self, proposal_id: str, from_state: str, to_state: str, *, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Cannot transition action from '{from_state}' to '{to_state}' (proposal {proposal_id})"
        )
        self.proposal_id = proposal_id
        self.from_state = from_state
        self.to_state = to_state


class RetryNotAllowedError(InvalidTransitionError):
    """Raised when ``retry`` is requested for a proposal that is not ``failed``."""

    def __init__(self, proposal_id: str, state: str) -> None:
        super().__init__(
            proposal_id,
            state,
            "executing",
            message=f"Cannot retry action in state '{state}' -- only failed actions can be retried",
        )


class ProposalExpiredError(InvalidTransitionError):
    """Raised when approving a proposal whose approval window has elapsed.

    The proposal stays ``proposed``; it can still be declined.
    """

    def __init__(self, proposal_id: str, expired_at: datetime) -> None:
        super().__init__(
            proposal_id,
            "proposed",
            "approved",
            message=f"Action proposal {proposal_id} expired at {expired_at.isoformat()} and can no longer be approved",
        )
        self.expired_at = expired_at
