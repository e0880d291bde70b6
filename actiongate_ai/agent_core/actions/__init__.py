"""Action proposal lifecycle: state machine, approval manager and text templates."""

from .approval_manager import ApprovalManager
from .state_machine import VALID_TRANSITIONS, ActionStateMachine, can_transition, make_idempotency_key
from .templates import describe_action, summarize_result

__all__ = [
    "VALID_TRANSITIONS",
    "ActionStateMachine",
    "ApprovalManager",
    "can_transition",
    "describe_action",
    "make_idempotency_key",
    "summarize_result",
]
