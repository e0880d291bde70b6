"""ActionGate-AI.

This package contains a conversational assistant backend in which every
state-changing operation the model wants to perform against an external system
must be explicitly approved by a human before it runs.

High-level architecture
-----------------------

The codebase is organized around two kinds of tool calls:

- **Read tools**: queries against external systems (search issues, fetch issue
  details, compute a RICE score). They execute immediately inside the
  conversation turn and their results are fed back to the model.
- **Write tools**: mutations (create/update/delete issues, comments, bulk
  updates). They are never executed by the conversation turn. Instead a
  persisted ``ActionProposal`` is created and the turn completes; a human later
  approves, declines, executes or retries the proposal through separate
  requests.

Core subpackages
----------------

- ``actiongate_ai.agent_core``:

  - Domain schemas (proposals, conversations, messages, handler outcomes).
  - The immutable tool registry and the built-in issue-tracker tools.
  - The action state machine and the approval manager.
  - The streaming conversation loop and the LLM provider abstraction.
  - Repository interfaces and SQL implementations for persistence.

- ``actiongate_ai.server``:

  - FastAPI application exposing the chat event stream, the decision
    endpoints and conversation reconstruction endpoints.

Typical workflow
----------------

1. A user message is posted to ``/api/v1/chat/stream``.
2. The conversation loop streams model output; read tools run inline, write
   tools become ``proposed`` actions announced with ``action_proposed``.
3. The client renders an approval card and calls
   ``/api/v1/actions/{id}/approve`` (approve + execute) or ``decline``.
4. The approval manager runs the tool handler at most once and records the
   outcome as ``succeeded`` or ``failed``; failed actions may be retried.
"""
