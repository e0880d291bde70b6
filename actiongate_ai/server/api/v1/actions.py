"""
Action Decision API Endpoints.

This module provides the endpoints behind the approval cards: approving,
declining, executing and retrying action proposals.

Every endpoint answers with ``{ok, proposal, error}``. An illegal transition
(for example approving a declined proposal) is answered with HTTP 409 and the
current proposal; an unknown proposal id with HTTP 404.
"""

from typing import Awaitable, Callable

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from actiongate_ai.agent_core.errors import InvalidTransitionError, ProposalNotFoundError
from actiongate_ai.agent_core.schemas.domain import ActionProposal, ActionState
from actiongate_ai.core.logging_config import get_logger
from actiongate_ai.server.schemas import ActionResponse
from actiongate_ai.server.services.deps import ActionGateDep
from actiongate_ai.server.services.gateway import ActionGateService

logger = get_logger(__name__)
router = APIRouter()

_DECISION_RESPONSES = {
    404: {"description": "Action proposal not found"},
    409: {"description": "Illegal state transition; the body carries the current proposal"},
}


def _ok(proposal: ActionProposal) -> ActionResponse:
    error = proposal.error if proposal.state == ActionState.failed else None
    return ActionResponse(ok=True, proposal=proposal, error=error)


async def _decide(
    service: ActionGateService,
    proposal_id: str,
    operation: Callable[[str], Awaitable[ActionProposal]],
):
    try:
        proposal = await operation(proposal_id)
    except InvalidTransitionError as e:
        current = await service.approvals.get_proposal(proposal_id)
        logger.info(f"Rejected decision on proposal {proposal_id}: {e.message}")
        body = ActionResponse(ok=False, proposal=current, error=e.message)
        return JSONResponse(status_code=409, content=body.model_dump(by_alias=True, mode="json"))
    return _ok(proposal)


@router.get(
    "/{proposal_id}",
    response_model=ActionResponse,
    summary="Get Action Proposal",
    responses={404: {"description": "Action proposal not found"}},
)
async def get_action(proposal_id: str, service: ActionGateDep):
    proposal = await service.approvals.get_proposal(proposal_id)
    if proposal is None:
        raise ProposalNotFoundError(proposal_id)
    return _ok(proposal)


@router.post(
    "/{proposal_id}/approve",
    response_model=ActionResponse,
    summary="Approve and Execute",
    description="Approve a proposed action and execute it. Repeated requests never execute it twice.",
    responses=_DECISION_RESPONSES,
)
async def approve_action(proposal_id: str, service: ActionGateDep):
    """
    Approve and execute (single click).

    The response carries the final state: `succeeded` with a result summary or
    `failed` with the error. A failed action is only re-run through `/retry`.
    """
    return await _decide(service, proposal_id, service.approvals.approve_and_execute)


@router.post(
    "/{proposal_id}/approve-only",
    response_model=ActionResponse,
    summary="Approve Without Executing",
    responses=_DECISION_RESPONSES,
)
async def approve_only(proposal_id: str, service: ActionGateDep):
    return await _decide(service, proposal_id, service.approvals.approve)


@router.post(
    "/{proposal_id}/decline",
    response_model=ActionResponse,
    summary="Decline Action",
    description="Decline a proposed action. It will never be executed.",
    responses=_DECISION_RESPONSES,
)
async def decline_action(proposal_id: str, service: ActionGateDep):
    return await _decide(service, proposal_id, service.approvals.decline)


@router.post(
    "/{proposal_id}/execute",
    response_model=ActionResponse,
    summary="Execute Approved Action",
    responses=_DECISION_RESPONSES,
)
async def execute_action(proposal_id: str, service: ActionGateDep):
    return await _decide(service, proposal_id, service.approvals.execute)


@router.post(
    "/{proposal_id}/retry",
    response_model=ActionResponse,
    summary="Retry Failed Action",
    description="Re-run a failed action. Only actions in state `failed` can be retried.",
    responses=_DECISION_RESPONSES,
)
async def retry_action(proposal_id: str, service: ActionGateDep):
    return await _decide(service, proposal_id, service.approvals.retry)
