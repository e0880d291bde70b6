from __future__ import annotations

"""Action proposal state machine.

States and legal edges::

    proposed  -> approved | declined
    approved  -> executing
    executing -> succeeded | failed
    failed    -> executing          (retry)
    succeeded, declined             (terminal)

Every mutation is issued as a compare-and-set against the persisted row
(``ActionProposalRepository.transition``), so the source-state check and the
write are a single atomic update. Two concurrent requests can therefore never
both leave the same source state.

``mark_executing`` is the only idempotent transition: when the row is already
``executing`` or ``succeeded`` it returns the row unchanged instead of raising.
This is what makes duplicate approve/execute requests safe.
"""

import hashlib
import json
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

from actiongate_ai.core.logging_config import get_logger
from actiongate_ai.core.monitoring import log_action_transition

from ..errors import InvalidTransitionError, ProposalNotFoundError
from ..repos.interfaces import ActionProposalRepository
from ..schemas.domain import ActionProposal, ActionState, PreviewField

logger = get_logger(__name__)

VALID_TRANSITIONS: Mapping[ActionState, FrozenSet[ActionState]] = MappingProxyType(
    {
        ActionState.proposed: frozenset({ActionState.approved, ActionState.declined}),
        ActionState.approved: frozenset({ActionState.executing}),
        ActionState.executing: frozenset({ActionState.succeeded, ActionState.failed}),
        ActionState.failed: frozenset({ActionState.executing}),
        ActionState.succeeded: frozenset(),
        ActionState.declined: frozenset(),
    }
)


def can_transition(from_state: ActionState, to_state: ActionState) -> bool:
    return to_state in VALID_TRANSITIONS[from_state]


def source_states(to_state: ActionState) -> Tuple[ActionState, ...]:
    """All states from which ``to_state`` is reachable in one step."""
    return tuple(src for src, targets in VALID_TRANSITIONS.items() if to_state in targets)


def make_idempotency_key(
    conversation_id: str, tool_name: str, tool_arguments: Dict[str, Any], created_at: datetime
) -> str:
    """Derive the idempotency key of one proposal creation event.

    The key covers the conversation, the tool, the canonical JSON encoding of
    the arguments and the creation instant in milliseconds.
    """
    canonical_args = json.dumps(tool_arguments, sort_keys=True, separators=(",", ":"), default=str)
    millis = int(created_at.timestamp() * 1000)
    raw = f"{conversation_id}:{tool_name}:{canonical_args}:{millis}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActionStateMachine:
    """
    Transition-checked mutations of persisted action proposals.

    The state machine never forces a transition: any attempt from a state that
    is not a legal source raises ``InvalidTransitionError`` naming the edge, and
    the persisted row is left untouched.
    """

    def __init__(
        self,
        proposals: ActionProposalRepository,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Args:
            proposals: Repository holding the proposal rows.
            clock: Source of "now"; injectable for tests.
        """
        self.proposals = proposals
        self.clock = clock

    async def create_proposal(
        self,
        *,
        conversation_id: str,
        message_id: str,
        tool_name: str,
        tool_arguments: Dict[str, Any],
        category: str,
        description: str,
        preview: List[PreviewField],
    ) -> ActionProposal:
        """
        Persist a new proposal in state ``proposed``.

        If a proposal with the same idempotency key already exists (identical
        conversation, tool and arguments at the same instant) the existing row
        is returned.
        """
        now = self.clock()
        proposal = ActionProposal(
            idempotency_key=make_idempotency_key(conversation_id, tool_name, tool_arguments, now),
            conversation_id=conversation_id,
            message_id=message_id,
            tool_name=tool_name,
            tool_arguments=tool_arguments,
            category=category,
            description=description,
            preview=preview,
            state=ActionState.proposed,
            created_at=now,
            updated_at=now,
        )
        stored = await self.proposals.create(proposal)
        if stored.id != proposal.id:
            logger.info(f"Proposal {stored.id} reused for idempotency key {proposal.idempotency_key[:12]}")
        return stored

    async def get_proposal(self, proposal_id: str) -> Optional[ActionProposal]:
        return await self.proposals.get(proposal_id)

    async def require(self, proposal_id: str) -> ActionProposal:
        """Return the proposal or raise ``ProposalNotFoundError``."""
        proposal = await self.proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    async def _transition(
        self, proposal_id: str, to_state: ActionState, updates: Optional[Dict[str, Any]] = None
    ) -> ActionProposal:
        sources = source_states(to_state)
        updated = await self.proposals.transition(
            proposal_id, from_states=sources, to_state=to_state, updates=updates
        )
        if updated is None:
            current = await self.require(proposal_id)
            logger.warning(
                f"Rejected transition of proposal {proposal_id}: {current.state.value} -> {to_state.value}"
            )
            raise InvalidTransitionError(proposal_id, current.state.value, to_state.value)
        log_action_transition(proposal_id, "|".join(s.value for s in sources), to_state.value)
        logger.debug(f"Proposal {proposal_id} -> {to_state.value}")
        return updated

    async def approve(self, proposal_id: str) -> ActionProposal:
        """``proposed -> approved``."""
        return await self._transition(proposal_id, ActionState.approved)

    async def decline(self, proposal_id: str) -> ActionProposal:
        """``proposed -> declined``."""
        return await self._transition(proposal_id, ActionState.declined)

    async def try_mark_executing(self, proposal_id: str) -> Tuple[ActionProposal, bool]:
        """
        Acquire the execution slot of a proposal.

        Returns:
            ``(proposal, acquired)``. ``acquired`` is True only for the caller
            whose compare-and-set moved the row from ``approved``/``failed`` to
            ``executing``. When the row is already ``executing`` or
            ``succeeded`` the current row is returned with ``acquired=False``.

        Raises:
            InvalidTransitionError: From ``proposed`` or ``declined``.
            ProposalNotFoundError: Unknown id.
        """
        updated = await self.proposals.transition(
            proposal_id, from_states=source_states(ActionState.executing), to_state=ActionState.executing
        )
        if updated is not None:
            log_action_transition(proposal_id, "approved|failed", ActionState.executing.value)
            return updated, True

        current = await self.require(proposal_id)
        if current.state in (ActionState.executing, ActionState.succeeded):
            logger.info(f"Proposal {proposal_id} already {current.state.value}; execution not started again")
            return current, False
        raise InvalidTransitionError(proposal_id, current.state.value, ActionState.executing.value)

    async def mark_executing(self, proposal_id: str) -> ActionProposal:
        """``approved|failed -> executing``; idempotent for ``executing``/``succeeded``."""
        proposal, _ = await self.try_mark_executing(proposal_id)
        return proposal

    async def mark_succeeded(
        self, proposal_id: str, result: str, result_url: Optional[str] = None
    ) -> ActionProposal:
        """``executing -> succeeded``."""
        return await self._transition(
            proposal_id, ActionState.succeeded, {"result": result, "result_url": result_url, "error": None}
        )

    async def mark_failed(self, proposal_id: str, error: str) -> ActionProposal:
        """``executing -> failed``."""
        return await self._transition(proposal_id, ActionState.failed, {"error": error})
