"""Core of the approval-gated action engine.

Design overview
---------------

The model may call two kinds of tools:

- read tools (``category="query"``) run inline while the answer streams;
- write tools (``requires_approval=True``) are never run by the conversation
  loop. Each call becomes an ``ActionProposal`` persisted in state
  ``proposed`` and rendered to the user as an approval card.

Proposals then move through a small state machine::

    proposed -> approved -> executing -> succeeded | failed
    proposed -> declined
    failed   -> executing (retry)

``actions.ApprovalManager`` is the only component that invokes write-tool
handlers, and every state change is a compare-and-set against the persisted
row, so a proposal's handler runs at most once per approval or retry.

Packages
--------

- ``schemas``: domain entities and handler outcome types.
- ``repos``: repository Protocols and async SQLAlchemy implementations.
- ``integrations``: the Linear GraphQL client used by the built-in tools.
- ``tools``: tool definitions, the immutable registry, built-in tools.
- ``actions``: state machine, approval manager, description/summary templates.
- ``llm``: streaming chat-completions providers.
- ``runtime``: the conversation loop, stream events and the update broker.
"""

from .actions import ActionStateMachine, ApprovalManager
from .errors import (
    ActionGateError,
    InvalidTransitionError,
    ProposalExpiredError,
    ProposalNotFoundError,
    RegistryError,
    RetryNotAllowedError,
    ToolArgumentsError,
    UnknownToolError,
)
from .runtime.conversation import ConversationLoop
from .runtime.models import LoopDeps
from .tools import ToolRegistry

__all__ = [
    "ActionGateError",
    "ActionStateMachine",
    "ApprovalManager",
    "ConversationLoop",
    "InvalidTransitionError",
    "LoopDeps",
    "ProposalExpiredError",
    "ProposalNotFoundError",
    "RegistryError",
    "RetryNotAllowedError",
    "ToolArgumentsError",
    "ToolRegistry",
    "UnknownToolError",
]
