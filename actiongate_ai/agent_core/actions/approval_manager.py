from __future__ import annotations

"""Approval manager.

The approval manager is the only component that invokes write-tool handlers.
It turns intercepted tool calls into proposals and carries them through
approval, execution and retry:

- ``create_proposal``: validate arguments, build the preview and description,
  persist a ``proposed`` row. Nothing is executed.
- ``approve`` / ``decline``: pure transitions.
- ``execute``: acquire the execution slot (``try_mark_executing``), run the
  handler at most once per acquisition and record the classified outcome.
- ``retry``: only from ``failed``; re-runs ``execute``.
- ``approve_and_execute``: single-click composition that performs the
  ``proposed -> approved`` step before executing.

Every state change is published to the ``ActionUpdateBroker`` so open chat
streams can relay it.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from actiongate_ai.core.logging_config import get_logger
from actiongate_ai.core.monitoring import log_action_proposed, log_error

from ..errors import (
    ActionGateError,
    InvalidTransitionError,
    ProposalExpiredError,
    RetryNotAllowedError,
    UnknownToolError,
)
from ..runtime.broker import ActionUpdateBroker
from ..schemas.domain import ActionProposal, ActionState, PreviewField
from ..schemas.outcomes import (
    HandlerFailure,
    HandlerOutcome,
    HandlerPartialSuccess,
    HandlerSuccess,
    classify_handler_result,
)
from ..tools.definitions import ToolDefinition
from ..tools.registry import ToolRegistry
from .state_machine import ActionStateMachine
from .templates import describe_action, summarize_result

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _stale_fields(recorded: List[PreviewField], fresh: List[PreviewField]) -> List[str]:
    fresh_old = {f.field: f.old_value for f in fresh}
    changes: List[str] = []
    for entry in recorded:
        if entry.old_value is None:
            continue
        now = fresh_old.get(entry.field)
        if now != entry.old_value:
            changes.append(f"{entry.field} changed from '{entry.old_value}' to '{now if now is not None else '(missing)'}'")
    return changes


class ApprovalManager:
    """
    Orchestrates the lifecycle of action proposals.

    Attributes:
        state_machine: Transition-checked persistence of proposals.
        registry: Tool catalog used for validation, previews and handlers.
        broker: Optional fan-out of state changes to open chat streams.
        proposal_ttl: Optional approval window; ``None`` means proposals never expire.
        revalidate_on_execute: Re-load upstream values before running a handler
            and fail the action if a previewed ``old_value`` changed.
    """

    def __init__(
        self,
        state_machine: ActionStateMachine,
        registry: ToolRegistry,
        *,
        broker: Optional[ActionUpdateBroker] = None,
        proposal_ttl: Optional[timedelta] = None,
        revalidate_on_execute: bool = True,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.state_machine = state_machine
        self.registry = registry
        self.broker = broker
        self.proposal_ttl = proposal_ttl
        self.revalidate_on_execute = revalidate_on_execute
        self.clock = clock

    def _publish(self, proposal: ActionProposal) -> None:
        if self.broker is not None:
            self.broker.publish(proposal)

    async def _load_current(self, definition: ToolDefinition, args: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if definition.load_current is None:
            return None
        try:
            return await definition.load_current(args)
        except Exception as e:
            # Preview degrades to new values only.
            logger.warning(f"Could not load current values for {definition.name}: {e}")
            return None

    async def create_proposal(
        self,
        *,
        conversation_id: str,
        message_id: str,
        tool_name: str,
        tool_arguments: Dict[str, Any],
    ) -> ActionProposal:
        """
        Create a proposal for an intercepted write-tool call. The tool is NOT executed.

        Args:
            conversation_id: Conversation the call was made in.
            message_id: Assistant message being streamed when the call was made.
            tool_name: The write tool.
            tool_arguments: Raw arguments produced by the model.

        Returns:
            The persisted proposal in state ``proposed``.

        Raises:
            UnknownToolError: If the tool is not registered.
            ToolArgumentsError: If the arguments do not satisfy the tool's schema.
            ActionGateError: If the tool does not require approval.
        """
        definition = self.registry.get(tool_name)
        if not definition.requires_approval:
            raise ActionGateError(f"Tool '{tool_name}' does not require approval and cannot be proposed")
        args = definition.validate_arguments(tool_arguments)
        current = await self._load_current(definition, args)

        proposal = await self.state_machine.create_proposal(
            conversation_id=conversation_id,
            message_id=message_id,
            tool_name=tool_name,
            tool_arguments=args,
            category=definition.category,
            description=describe_action(tool_name, args),
            preview=definition.generate_preview(args, current),
        )
        log_action_proposed(proposal.id, conversation_id, tool_name)
        logger.info(f"Created proposal {proposal.id} for {tool_name} in conversation {conversation_id}")
        return proposal

    def _expired_at(self, proposal: ActionProposal) -> Optional[datetime]:
        if self.proposal_ttl is None:
            return None
        deadline = proposal.created_at + self.proposal_ttl
        return deadline if self.clock() >= deadline else None

    async def approve(self, proposal_id: str) -> ActionProposal:
        """
        Approve a proposal (``proposed -> approved``). Does NOT execute.

        Raises:
            ProposalExpiredError: The approval window elapsed; the row stays ``proposed``.
            InvalidTransitionError: The proposal is not ``proposed``.
        """
        proposal = await self.state_machine.require(proposal_id)
        if proposal.state == ActionState.proposed:
            expired_at = self._expired_at(proposal)
            if expired_at is not None:
                raise ProposalExpiredError(proposal_id, expired_at)
        approved = await self.state_machine.approve(proposal_id)
        logger.info(f"Approved proposal {proposal_id}")
        self._publish(approved)
        return approved

    async def decline(self, proposal_id: str) -> ActionProposal:
        """Decline a proposal (``proposed -> declined``)."""
        declined = await self.state_machine.decline(proposal_id)
        logger.info(f"Declined proposal {proposal_id}")
        self._publish(declined)
        return declined

    async def execute(self, proposal_id: str) -> ActionProposal:
        """
        Execute an approved (or failed) proposal at most once per acquisition.

        If another request already moved the proposal to ``executing`` or it
        already ``succeeded``, the current row is returned and the handler is
        not invoked. The handler runs shielded from request cancellation so a
        client disconnect never aborts it midway.

        Raises:
            InvalidTransitionError: From ``proposed`` or ``declined``.
        """
        proposal, acquired = await self.state_machine.try_mark_executing(proposal_id)
        if not acquired:
            return proposal
        self._publish(proposal)
        return await asyncio.shield(self._run_and_record(proposal))

    async def retry(self, proposal_id: str) -> ActionProposal:
        """
        Retry a failed proposal.

        Raises:
            RetryNotAllowedError: The proposal is not ``failed``.
        """
        proposal = await self.state_machine.require(proposal_id)
        if proposal.state != ActionState.failed:
            raise RetryNotAllowedError(proposal_id, proposal.state.value)
        logger.info(f"Retrying failed proposal {proposal_id}")
        return await self.execute(proposal_id)

    async def approve_and_execute(self, proposal_id: str) -> ActionProposal:
        """
        Single-click approval: ``proposed -> approved`` then ``execute``.

        A repeated click on a proposal that is already approved executes it;
        one that is ``executing`` or ``succeeded`` returns the current row. A
        ``failed`` proposal is returned unchanged; re-running it requires an
        explicit ``retry``. The same holds when a concurrent click approved the
        proposal between our read and our approve.

        Raises:
            ProposalExpiredError: The approval window elapsed.
            InvalidTransitionError: The proposal was declined.
        """
        proposal = await self.state_machine.require(proposal_id)
        if proposal.state == ActionState.proposed:
            try:
                proposal = await self.approve(proposal_id)
            except ProposalExpiredError:
                raise
            except InvalidTransitionError:
                proposal = await self.state_machine.require(proposal_id)
                if proposal.state in (ActionState.proposed, ActionState.declined):
                    raise
                logger.info(f"Proposal {proposal_id} was approved by a concurrent request; now {proposal.state.value}")
        if proposal.state == ActionState.failed:
            return proposal
        return await self.execute(proposal_id)

    async def get_proposal(self, proposal_id: str) -> Optional[ActionProposal]:
        return await self.state_machine.get_proposal(proposal_id)

    async def get_proposals_by_conversation(self, conversation_id: str) -> List[ActionProposal]:
        """All proposals of a conversation, for re-rendering approval cards after a reload."""
        return await self.state_machine.proposals.list_by_conversation(conversation_id)

    async def get_proposals_by_message(self, message_id: str) -> List[ActionProposal]:
        return await self.state_machine.proposals.list_by_message(message_id)

    async def _run_and_record(self, proposal: ActionProposal) -> ActionProposal:
        outcome = await self._run_handler(proposal)

        if isinstance(outcome, HandlerFailure):
            logger.warning(f"Execution of proposal {proposal.id} failed: {outcome.error}")
            log_error("ActionExecutionFailed", outcome.error, {"proposal_id": proposal.id, "tool": proposal.tool_name})
            final = await self.state_machine.mark_failed(proposal.id, outcome.error)
        elif isinstance(outcome, HandlerPartialSuccess):
            summary = summarize_result(proposal.tool_name, outcome.payload)
            logger.info(f"Execution of proposal {proposal.id} partially succeeded: {summary}")
            final = await self.state_machine.mark_succeeded(proposal.id, summary, outcome.result_url)
        elif isinstance(outcome, HandlerSuccess):
            summary = summarize_result(proposal.tool_name, outcome.payload)
            logger.info(f"Execution of proposal {proposal.id} succeeded: {summary}")
            final = await self.state_machine.mark_succeeded(proposal.id, summary, outcome.result_url)
        else:
            raise TypeError(f"Unhandled handler outcome: {outcome!r}")

        self._publish(final)
        return final

    async def _run_handler(self, proposal: ActionProposal) -> HandlerOutcome:
        try:
            definition = self.registry.get(proposal.tool_name)
        except UnknownToolError:
            definition = None
        if definition is None or not definition.has_handler():
            return HandlerFailure(error=f"Tool handler not found: {proposal.tool_name}")

        try:
            if self.revalidate_on_execute and definition.load_current is not None:
                recorded = [p for p in proposal.preview if p.old_value is not None]
                if recorded:
                    fresh = definition.generate_preview(
                        proposal.tool_arguments, await definition.load_current(proposal.tool_arguments)
                    )
                    changes = _stale_fields(recorded, fresh)
                    if changes:
                        return HandlerFailure(error="Stale proposal: " + "; ".join(changes))

            raw = await definition.handler(proposal.tool_arguments)
        except Exception as e:
            logger.error(f"Handler {proposal.tool_name} raised for proposal {proposal.id}: {e}", exc_info=True)
            return HandlerFailure(error=str(e) or type(e).__name__)
        return classify_handler_result(raw)
