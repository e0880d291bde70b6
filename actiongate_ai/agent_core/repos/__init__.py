"""Repository interfaces and SQL implementations for action and chat persistence.

The repository layer is the persistence boundary for the agent core.

Responsibilities
----------------

- Provide a small set of async repository interfaces (Protocols) that the
  state machine, approval manager and conversation loop depend on.
- Persist durable records of:

  - action proposals and their lifecycle state,
  - conversations,
  - chat messages (with the tool calls made during each assistant turn).

Design notes
------------

The core is written against interfaces so it can be used with:

- a SQL database (async SQLAlchemy implementation provided in ``repos.sql``),
- in-memory fakes for unit tests.

The SQL implementation commits at repository-method boundaries, and proposal
state changes are single compare-and-set row updates.
"""

from .interfaces import ActionProposalRepository, ConversationRepository, MessageRepository
from .sql import (
    SqlActionProposalRepository,
    SqlConversationRepository,
    SqlMessageRepository,
    SqlRepoBundle,
    build_sql_repos,
    create_all,
    create_engine,
    create_sessionmaker,
)

__all__ = [
    "ActionProposalRepository",
    "ConversationRepository",
    "MessageRepository",
    "SqlActionProposalRepository",
    "SqlConversationRepository",
    "SqlMessageRepository",
    "SqlRepoBundle",
    "build_sql_repos",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
