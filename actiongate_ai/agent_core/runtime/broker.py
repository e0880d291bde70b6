from __future__ import annotations

"""In-process fan-out of action proposal updates.

Decision endpoints run in requests that are independent of the chat stream.
When they change a proposal's state, the approval manager publishes the
updated proposal here, and any open stream subscribed to the same
conversation relays it to its client as an ``action_update`` event.

Delivery is best effort: subscribers that are not draining their queue lose
updates (they can always re-fetch proposals by conversation).
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Set

from actiongate_ai.core.logging_config import get_logger

from ..schemas.domain import ActionProposal

logger = get_logger(__name__)


class ActionUpdateBroker:
    """Per-conversation publish/subscribe of proposal updates."""

    def __init__(self, max_queue_size: int = 100) -> None:
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[str, Set[asyncio.Queue[ActionProposal]]] = {}

    @asynccontextmanager
    async def subscribe(self, conversation_id: str) -> AsyncIterator[asyncio.Queue[ActionProposal]]:
        """
        Subscribe to updates of one conversation for the duration of the context.

        Yields:
            A queue receiving every proposal published for ``conversation_id``.
        """
        queue: asyncio.Queue[ActionProposal] = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.setdefault(conversation_id, set()).add(queue)
        try:
            yield queue
        finally:
            subscribers = self._subscribers.get(conversation_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[conversation_id]

    def subscriber_count(self, conversation_id: str) -> int:
        return len(self._subscribers.get(conversation_id, ()))

    def publish(self, proposal: ActionProposal) -> int:
        """
        Deliver ``proposal`` to every subscriber of its conversation.

        Returns:
            Number of subscribers the update was delivered to.
        """
        delivered = 0
        for queue in list(self._subscribers.get(proposal.conversation_id, ())):
            try:
                queue.put_nowait(proposal)
            except asyncio.QueueFull:
                logger.warning(
                    f"Dropping update of proposal {proposal.id} for a slow subscriber "
                    f"of conversation {proposal.conversation_id}"
                )
                continue
            delivered += 1
        return delivered
