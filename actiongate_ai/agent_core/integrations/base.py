from __future__ import annotations

"""Issue tracker interface contract.

The built-in tools are written against this Protocol so they can run against
the Linear GraphQL client in production and against in-memory fakes in tests.
"""

from typing import Any, Dict, List, Optional, Protocol

from .models import TrackerIssue


class IssueTracker(Protocol):
    """Queries and mutations the built-in tools need from an issue tracker."""

    async def search_issues(self, query: str, limit: int = 10) -> List[TrackerIssue]:
        """Search issues by keyword in title, identifier or description."""
        ...

    async def get_issue(self, issue_id: str) -> Optional[TrackerIssue]:
        """Fetch one issue by id or identifier; None if it does not exist."""
        ...

    async def create_issue(
        self,
        *,
        title: str,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        assignee_name: Optional[str] = None,
        label_names: Optional[List[str]] = None,
    ) -> TrackerIssue:
        """Create an issue in the configured team."""
        ...

    async def update_issue(
        self,
        issue_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        assignee_name: Optional[str] = None,
        status: Optional[str] = None,
    ) -> TrackerIssue:
        """Apply the given (non-None) field changes to an issue."""
        ...

    async def delete_issue(self, issue_id: str) -> bool:
        """Move an issue to the trash."""
        ...

    async def add_comment(self, issue_id: str, body: str) -> Dict[str, Any]:
        """Add a comment; returns ``{"id": ..., "url": ...}``."""
        ...
