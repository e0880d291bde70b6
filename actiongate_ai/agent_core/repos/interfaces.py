from __future__ import annotations

"""Repository interface contracts.

The action state machine, the approval manager and the conversation loop
depend on these Protocols instead of concrete persistence implementations.

Contract guidelines
-------------------

- All methods are async.
- Repository implementations should be safe to call from the runtime without
  leaking SQLAlchemy sessions/transactions.
- ``ActionProposalRepository.transition`` is the only way a proposal's state
  changes. It is a compare-and-set: the update applies only if the persisted
  row is still in one of the expected source states, so two racing callers can
  never both move a proposal out of the same state.
- Proposals are never deleted; deleting a conversation keeps its proposals as
  an audit trail.
"""

from typing import Any, Dict, Optional, Protocol, Sequence

from ..schemas.domain import ActionProposal, ActionState, ChatMessage, Conversation


class ActionProposalRepository(Protocol):
    """Persist and query action proposals."""

    async def create(self, proposal: ActionProposal) -> ActionProposal:
        """
        Insert a new proposal.

        Args:
            proposal: The proposal to persist (state ``proposed``).

        Returns:
            The persisted proposal. If a proposal with the same
            ``idempotency_key`` already exists, that row is returned instead and
            nothing is inserted.
        """
        ...

    async def get(self, proposal_id: str) -> Optional[ActionProposal]:
        """
        Retrieve a proposal by its ID.

        Args:
            proposal_id: The proposal identifier.

        Returns:
            The ActionProposal if found, else None.
        """
        ...

    async def list_by_conversation(self, conversation_id: str) -> list[ActionProposal]:
        """
        List all proposals of a conversation in creation order.

        Args:
            conversation_id: The conversation identifier.

        Returns:
            A list of ActionProposal objects.
        """
        ...

    async def list_by_message(self, message_id: str) -> list[ActionProposal]:
        """
        List all proposals created while streaming one assistant message.

        Args:
            message_id: The assistant message identifier.

        Returns:
            A list of ActionProposal objects in creation order.
        """
        ...

    async def transition(
        self,
        proposal_id: str,
        *,
        from_states: Sequence[ActionState],
        to_state: ActionState,
        updates: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActionProposal]:
        """
        Atomically move a proposal to ``to_state`` if it is in ``from_states``.

        Args:
            proposal_id: The proposal identifier.
            from_states: Source states the row must currently be in.
            to_state: Target state.
            updates: Extra columns to set in the same write (``result``,
                ``result_url``, ``error``).

        Returns:
            The updated proposal, or None when no row matched (unknown id or
            the row was no longer in an expected source state).
        """
        ...


class ConversationRepository(Protocol):
    """Persist chat conversations."""

    async def create(self, conversation: Conversation) -> Conversation:
        """
        Insert a conversation.

        Args:
            conversation: The conversation to persist.

        Returns:
            The persisted conversation.
        """
        ...

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        """
        Retrieve a conversation by its ID.

        Args:
            conversation_id: The conversation identifier.

        Returns:
            The Conversation if found, else None.
        """
        ...

    async def list(self, limit: int = 100, offset: int = 0) -> list[Conversation]:
        """
        List conversations, most recently active first.

        Args:
            limit: Max number of records to return.
            offset: Pagination offset.

        Returns:
            A list of Conversation objects.
        """
        ...

    async def touch(self, conversation_id: str) -> None:
        """
        Bump ``updated_at`` of a conversation. Unknown ids are a no-op.

        Args:
            conversation_id: The conversation identifier.
        """
        ...

    async def delete(self, conversation_id: str) -> bool:
        """
        Delete a conversation and its messages.

        Args:
            conversation_id: The conversation identifier.

        Returns:
            True if the conversation existed.
        """
        ...


class MessageRepository(Protocol):
    """Append-only store for chat messages."""

    async def append(self, message: ChatMessage) -> None:
        """
        Append a message to its conversation.

        Args:
            message: The message to persist.
        """
        ...

    async def list(self, conversation_id: str, limit: int = 200) -> list[ChatMessage]:
        """
        List messages of a conversation in chronological order.

        Args:
            conversation_id: The conversation identifier.
            limit: Max number of messages to return.

        Returns:
            A list of ChatMessage objects.
        """
        ...
