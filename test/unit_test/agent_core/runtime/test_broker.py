from __future__ import annotations

import pytest

from actiongate_ai.agent_core.runtime.broker import ActionUpdateBroker
from actiongate_ai.agent_core.runtime.events import ActionUpdateEvent
from actiongate_ai.agent_core.schemas.domain import ActionProposal, ActionState

pytestmark = pytest.mark.asyncio


def _proposal(conversation_id: str = "conv-1", state: ActionState = ActionState.approved) -> ActionProposal:
    return ActionProposal(
        idempotency_key="k",
        conversation_id=conversation_id,
        message_id="msg-1",
        tool_name="create_issue",
        description="Create issue: X",
        state=state,
    )


async def test_publish_reaches_subscribers_of_the_same_conversation() -> None:
    broker = ActionUpdateBroker()

    async with broker.subscribe("conv-1") as first, broker.subscribe("conv-1") as second:
        async with broker.subscribe("conv-2") as other:
            delivered = broker.publish(_proposal())

            assert delivered == 2
            assert first.get_nowait().conversation_id == "conv-1"
            assert second.qsize() == 1
            assert other.empty()


async def test_unsubscribe_on_exit() -> None:
    broker = ActionUpdateBroker()

    async with broker.subscribe("conv-1"):
        assert broker.subscriber_count("conv-1") == 1

    assert broker.subscriber_count("conv-1") == 0
    assert broker.publish(_proposal()) == 0


async def test_full_queue_drops_updates() -> None:
    broker = ActionUpdateBroker(max_queue_size=1)

    async with broker.subscribe("conv-1") as queue:
        assert broker.publish(_proposal()) == 1
        assert broker.publish(_proposal(state=ActionState.executing)) == 0
        assert queue.get_nowait().state == ActionState.approved


async def test_update_event_from_proposal() -> None:
    proposal = _proposal(state=ActionState.failed).model_copy(update={"error": "Linear API 500"})

    event = ActionUpdateEvent.from_proposal(proposal)

    assert event.to_wire() == {
        "type": "action_update",
        "proposalId": proposal.id,
        "state": "failed",
        "result": None,
        "resultUrl": None,
        "error": "Linear API 500",
    }
