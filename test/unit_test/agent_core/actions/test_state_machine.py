from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from actiongate_ai.agent_core.actions.state_machine import (
    VALID_TRANSITIONS,
    ActionStateMachine,
    can_transition,
    make_idempotency_key,
    source_states,
)
from actiongate_ai.agent_core.errors import InvalidTransitionError, ProposalNotFoundError
from actiongate_ai.agent_core.schemas.domain import ActionProposal, ActionState

S = ActionState

EXPECTED_EDGES = {
    (S.proposed, S.approved),
    (S.proposed, S.declined),
    (S.approved, S.executing),
    (S.executing, S.succeeded),
    (S.executing, S.failed),
    (S.failed, S.executing),
}


def _seed(repo, state: ActionState, proposal_id: str = "p-1") -> ActionProposal:
    proposal = ActionProposal(
        id=proposal_id,
        idempotency_key=f"key-{proposal_id}",
        conversation_id="conv-1",
        message_id="msg-1",
        tool_name="create_issue",
        tool_arguments={"title": "Fix login"},
        description="Create issue: Fix login",
        state=state,
    )
    repo.rows[proposal.id] = proposal
    return proposal


@pytest.mark.parametrize("from_state", list(ActionState))
@pytest.mark.parametrize("to_state", list(ActionState))
def test_transition_table_matches_lifecycle(from_state: ActionState, to_state: ActionState) -> None:
    assert can_transition(from_state, to_state) is ((from_state, to_state) in EXPECTED_EDGES)


def test_terminal_states_have_no_outgoing_edges() -> None:
    assert VALID_TRANSITIONS[S.succeeded] == frozenset()
    assert VALID_TRANSITIONS[S.declined] == frozenset()


def test_source_states_of_executing_are_approved_and_failed() -> None:
    assert set(source_states(S.executing)) == {S.approved, S.failed}


_OPERATIONS = {
    "approve": (S.approved, lambda sm, pid: sm.approve(pid)),
    "decline": (S.declined, lambda sm, pid: sm.decline(pid)),
    "mark_succeeded": (S.succeeded, lambda sm, pid: sm.mark_succeeded(pid, "done")),
    "mark_failed": (S.failed, lambda sm, pid: sm.mark_failed(pid, "boom")),
}


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", sorted(_OPERATIONS))
@pytest.mark.parametrize("start", list(ActionState))
async def test_every_operation_is_rejected_from_illegal_states(
    state_machine: ActionStateMachine, proposal_repo, operation: str, start: ActionState
) -> None:
    target, call = _OPERATIONS[operation]
    _seed(proposal_repo, start)

    if can_transition(start, target):
        updated = await call(state_machine, "p-1")
        assert updated.state == target
        assert proposal_repo.rows["p-1"].state == target
    else:
        with pytest.raises(InvalidTransitionError) as exc_info:
            await call(state_machine, "p-1")
        assert exc_info.value.from_state == start.value
        assert exc_info.value.to_state == target.value
        assert f"from '{start.value}' to '{target.value}'" in str(exc_info.value)
        assert proposal_repo.rows["p-1"].state == start


@pytest.mark.asyncio
async def test_create_proposal_persists_proposed_row(state_machine: ActionStateMachine, clock) -> None:
    proposal = await state_machine.create_proposal(
        conversation_id="conv-1",
        message_id="msg-1",
        tool_name="create_issue",
        tool_arguments={"title": "Fix login"},
        category="linear",
        description="Create issue: Fix login",
        preview=[],
    )

    assert proposal.state == S.proposed
    assert proposal.created_at == clock.now
    assert proposal.idempotency_key == make_idempotency_key(
        "conv-1", "create_issue", {"title": "Fix login"}, clock.now
    )
    assert await state_machine.get_proposal(proposal.id) == proposal


@pytest.mark.asyncio
async def test_create_proposal_with_same_key_returns_existing_row(state_machine: ActionStateMachine, proposal_repo) -> None:
    kwargs = dict(
        conversation_id="conv-1",
        message_id="msg-1",
        tool_name="create_issue",
        tool_arguments={"title": "Fix login"},
        category="linear",
        description="Create issue: Fix login",
        preview=[],
    )
    first = await state_machine.create_proposal(**kwargs)
    second = await state_machine.create_proposal(**kwargs)

    assert second.id == first.id
    assert len(proposal_repo.rows) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [S.approved, S.failed])
async def test_try_mark_executing_acquires_from_approved_and_failed(
    state_machine: ActionStateMachine, proposal_repo, start: ActionState
) -> None:
    _seed(proposal_repo, start)

    proposal, acquired = await state_machine.try_mark_executing("p-1")

    assert acquired is True
    assert proposal.state == S.executing


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [S.executing, S.succeeded])
async def test_mark_executing_is_idempotent_for_running_and_finished_rows(
    state_machine: ActionStateMachine, proposal_repo, start: ActionState
) -> None:
    _seed(proposal_repo, start)

    proposal, acquired = await state_machine.try_mark_executing("p-1")
    again = await state_machine.mark_executing("p-1")

    assert acquired is False
    assert proposal.state == start
    assert again.state == start


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [S.proposed, S.declined])
async def test_mark_executing_rejects_unapproved_rows(
    state_machine: ActionStateMachine, proposal_repo, start: ActionState
) -> None:
    _seed(proposal_repo, start)

    with pytest.raises(InvalidTransitionError):
        await state_machine.mark_executing("p-1")
    assert proposal_repo.rows["p-1"].state == start


@pytest.mark.asyncio
async def test_mark_succeeded_records_result_and_clears_previous_error(
    state_machine: ActionStateMachine, proposal_repo
) -> None:
    seeded = _seed(proposal_repo, S.executing)
    proposal_repo.rows["p-1"] = seeded.model_copy(update={"error": "Linear API 500"})

    done = await state_machine.mark_succeeded("p-1", "Created ENG-101: Fix login", "https://linear.app/x/ENG-101")

    assert done.state == S.succeeded
    assert done.result == "Created ENG-101: Fix login"
    assert done.result_url == "https://linear.app/x/ENG-101"
    assert done.error is None


@pytest.mark.asyncio
async def test_unknown_proposal_raises_not_found(state_machine: ActionStateMachine) -> None:
    with pytest.raises(ProposalNotFoundError):
        await state_machine.approve("missing")
    with pytest.raises(ProposalNotFoundError):
        await state_machine.mark_executing("missing")


def test_idempotency_key_ignores_argument_order() -> None:
    at = datetime(2025, 1, 1, tzinfo=timezone.utc)
    a = make_idempotency_key("c", "create_issue", {"title": "x", "priority": 2}, at)
    b = make_idempotency_key("c", "create_issue", {"priority": 2, "title": "x"}, at)
    assert a == b


def test_idempotency_key_differs_per_millisecond_and_conversation() -> None:
    at = datetime(2025, 1, 1, tzinfo=timezone.utc)
    base = make_idempotency_key("c", "create_issue", {"title": "x"}, at)

    assert make_idempotency_key("c", "create_issue", {"title": "x"}, at + timedelta(milliseconds=1)) != base
    assert make_idempotency_key("other", "create_issue", {"title": "x"}, at) != base
    assert make_idempotency_key("c", "update_issue", {"title": "x"}, at) != base
