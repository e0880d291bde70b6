"""External system integrations used by the built-in tools.

- ``base.IssueTracker``: the Protocol the tools depend on.
- ``linear.LinearClient``: Linear GraphQL implementation over ``httpx``.
"""

from .base import IssueTracker
from .errors import LinearApiError, LinearNotFoundError
from .linear import LinearClient
from .models import PRIORITY_LABELS, TrackerIssue, priority_label

__all__ = [
    "IssueTracker",
    "LinearApiError",
    "LinearNotFoundError",
    "LinearClient",
    "PRIORITY_LABELS",
    "TrackerIssue",
    "priority_label",
]
