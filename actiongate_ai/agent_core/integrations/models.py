"""Issue tracker data models shared by the client and the built-in tools."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

PRIORITY_LABELS = ["None", "Urgent", "High", "Medium", "Low"]


def priority_label(priority: Optional[int]) -> str:
    """Map a Linear priority number (0-4) to its display label."""
    if priority is None or not 0 <= priority < len(PRIORITY_LABELS):
        return PRIORITY_LABELS[0]
    return PRIORITY_LABELS[priority]


class TrackerIssue(BaseModel):
    """An issue as returned by the issue tracker."""

    id: str
    identifier: str
    title: str
    description: Optional[str] = None
    url: Optional[str] = None
    priority: Optional[int] = None
    status: Optional[str] = None
    assignee_name: Optional[str] = None
    labels: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    def summary(self) -> Dict[str, Any]:
        """Compact representation returned to the model by read tools."""
        return {
            "identifier": self.identifier,
            "title": self.title,
            "status": self.status,
            "priority": priority_label(self.priority),
            "assigneeName": self.assignee_name,
            "url": self.url,
        }

    def snapshot(self) -> Dict[str, Any]:
        """Current field values keyed like the write tools' arguments.

        Used to fill ``old_value`` in approval previews and to detect upstream
        changes between proposal and execution.
        """
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "assigneeName": self.assignee_name,
            "status": self.status,
        }
