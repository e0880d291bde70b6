"""Error types specific to the issue tracker integration layer.

Purpose:
- Provide typed exceptions thrown by ``LinearClient``.
- Expose HTTP/GraphQL context (status code, error payload) for diagnosis.

Usage:
- Catch ``LinearApiError`` for general failures and inspect ``status_code`` or
  ``details``.
- Tool handlers let these propagate; the approval manager records the message
  on the failed proposal.
"""

from __future__ import annotations

from typing import Any, Optional


class LinearApiError(Exception):
    """Base error for Linear API failures.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code associated with the failure.
        details: Optional structured payload from the server (e.g. GraphQL errors).
    """
    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class LinearNotFoundError(LinearApiError):
    """Raised when a referenced Linear entity (issue, team) does not exist.

    Args:
        entity: Kind of entity that was looked up.
        key: The identifier that was not found.
    """
    def __init__(self, entity: str, key: str) -> None:
        super().__init__(f"Linear {entity} not found: {key}", status_code=404)
        self.entity = entity
        self.key = key
