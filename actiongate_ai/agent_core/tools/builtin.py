"""Built-in issue tracker tools.

Read tools:

- ``search_issues``: keyword search.
- ``get_issue_detail``: full details of one issue.
- ``calculate_rice``: RICE prioritization score (pure computation).

Write tools (category ``linear``, approval required):

- ``create_issue``, ``update_issue``, ``delete_issue``, ``add_comment``.
- ``bulk_update_issues``: applies the same field changes to many issues and
  reports partial success when only some of them could be updated.

Handlers are closures over an ``IssueTracker`` so the same catalog runs against
the Linear client in production and an in-memory fake in tests.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field

from ..integrations.base import IssueTracker
from ..integrations.models import priority_label
from ..schemas.domain import PreviewField, ToolCategory
from .definitions import ToolDefinition, ToolInput, format_value
from .registry import ToolRegistry

# =====================================================================
# Input schemas
# =====================================================================


class SearchIssuesInput(ToolInput):
    query: str = Field(..., min_length=1, description="Search query")
    limit: int = Field(default=10, ge=1, le=50, description="Max results (default 10)")


class GetIssueDetailInput(ToolInput):
    issue_id: str = Field(..., min_length=1, description="Issue ID or identifier (e.g. ENG-123)")


class CalculateRiceInput(ToolInput):
    reach: float = Field(..., ge=0, le=10, description="Reach score (0-10)")
    impact: float = Field(..., ge=0, le=3, description="Impact score (0-3)")
    confidence: float = Field(..., ge=0, le=1, description="Confidence (0-1)")
    effort: float = Field(..., gt=0, le=10, description="Effort in person-weeks (0.5-10)")


class CreateIssueInput(ToolInput):
    title: str = Field(..., min_length=1, description="Issue title")
    description: Optional[str] = Field(default=None, description="Markdown description")
    priority: Optional[int] = Field(
        default=None, ge=0, le=4, description="Priority: 0=None, 1=Urgent, 2=High, 3=Medium, 4=Low"
    )
    assignee_name: Optional[str] = Field(default=None, description="Name of the team member to assign")
    label_names: Optional[List[str]] = Field(default=None, description="Labels to apply")


class UpdateIssueInput(ToolInput):
    issue_id: str = Field(..., min_length=1, description="Issue ID or identifier (e.g. ENG-123)")
    title: Optional[str] = Field(default=None, description="New title")
    description: Optional[str] = Field(default=None, description="New markdown description")
    priority: Optional[int] = Field(
        default=None, ge=0, le=4, description="New priority: 0=None, 1=Urgent, 2=High, 3=Medium, 4=Low"
    )
    assignee_name: Optional[str] = Field(default=None, description="Name of the new assignee")
    status: Optional[str] = Field(default=None, description="Name of the new workflow state (e.g. 'In Progress')")


class DeleteIssueInput(ToolInput):
    issue_id: str = Field(..., min_length=1, description="Issue ID or identifier (e.g. ENG-123)")


class AddCommentInput(ToolInput):
    issue_id: str = Field(..., min_length=1, description="Issue ID or identifier (e.g. ENG-123)")
    body: str = Field(..., min_length=1, description="Markdown comment body")


class BulkUpdateFields(ToolInput):
    priority: Optional[int] = Field(
        default=None, ge=0, le=4, description="New priority: 0=None, 1=Urgent, 2=High, 3=Medium, 4=Low"
    )
    assignee_name: Optional[str] = Field(default=None, description="Name of the new assignee")
    status: Optional[str] = Field(default=None, description="Name of the new workflow state")


class BulkUpdateIssuesInput(ToolInput):
    issue_ids: List[str] = Field(..., min_length=1, max_length=50, description="Issue IDs or identifiers to update")
    updates: BulkUpdateFields = Field(..., description="Field changes applied to every issue")


# =====================================================================
# Preview generators
# =====================================================================

_ISSUE_FIELD_LABELS = (
    ("title", "Title"),
    ("description", "Description"),
    ("priority", "Priority"),
    ("assigneeName", "Assignee"),
    ("status", "Status"),
)


def _display(key: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if key == "priority":
        return priority_label(int(value))
    return format_value(value)


def preview_create_issue(args: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> List[PreviewField]:
    fields = [PreviewField(field="Title", new_value=str(args.get("title", "")))]
    if args.get("description"):
        fields.append(PreviewField(field="Description", new_value=str(args["description"])))
    if args.get("priority") is not None:
        fields.append(PreviewField(field="Priority", new_value=priority_label(args["priority"])))
    if args.get("assigneeName"):
        fields.append(PreviewField(field="Assignee", new_value=str(args["assigneeName"])))
    if args.get("labelNames"):
        fields.append(PreviewField(field="Labels", new_value=", ".join(args["labelNames"])))
    return fields


def preview_update_issue(args: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> List[PreviewField]:
    fields = [PreviewField(field="Issue", new_value=str(args.get("issueId", "")))]
    for key, label in _ISSUE_FIELD_LABELS:
        if args.get(key) is None:
            continue
        fields.append(
            PreviewField(
                field=label,
                old_value=_display(key, (current or {}).get(key)),
                new_value=_display(key, args[key]) or "",
            )
        )
    return fields


def preview_delete_issue(args: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> List[PreviewField]:
    title = (current or {}).get("title")
    return [
        PreviewField(field="Issue", new_value=str(args.get("issueId", ""))),
        PreviewField(field="Title", old_value=title, new_value="(deleted)"),
    ]


def preview_add_comment(args: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> List[PreviewField]:
    return [
        PreviewField(field="Issue", new_value=str(args.get("issueId", ""))),
        PreviewField(field="Comment", new_value=str(args.get("body", ""))),
    ]


def preview_bulk_update_issues(args: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> List[PreviewField]:
    issue_ids = list(args.get("issueIds") or [])
    updates = args.get("updates") or {}
    fields = [PreviewField(field="Issues", new_value=f"{len(issue_ids)} issues: {', '.join(issue_ids)}")]
    for key, label in _ISSUE_FIELD_LABELS:
        if updates.get(key) is None:
            continue
        fields.append(PreviewField(field=label, new_value=_display(key, updates[key]) or ""))
    return fields


# =====================================================================
# Catalog
# =====================================================================


def rice_score(reach: float, impact: float, confidence: float, effort: float) -> float:
    """RICE = reach * impact * confidence / effort, rounded to two decimals."""
    return round((reach * impact * confidence) / effort, 2)


def build_builtin_tools(tracker: IssueTracker) -> List[ToolDefinition]:
    """Create the built-in tool definitions bound to ``tracker``."""

    async def search_issues(args: Dict[str, Any]) -> Dict[str, Any]:
        params = SearchIssuesInput.model_validate(args)
        issues = await tracker.search_issues(params.query, params.limit)
        return {"count": len(issues), "issues": [issue.summary() for issue in issues]}

    async def get_issue_detail(args: Dict[str, Any]) -> Dict[str, Any]:
        params = GetIssueDetailInput.model_validate(args)
        issue = await tracker.get_issue(params.issue_id)
        if issue is None:
            return {"error": f"Issue not found: {params.issue_id}"}
        detail = issue.summary()
        detail.update({"id": issue.id, "description": issue.description, "labels": issue.labels})
        return detail

    async def calculate_rice(args: Dict[str, Any]) -> Dict[str, Any]:
        params = CalculateRiceInput.model_validate(args)
        return {
            "reach": params.reach,
            "impact": params.impact,
            "confidence": params.confidence,
            "effort": params.effort,
            "score": rice_score(params.reach, params.impact, params.confidence, params.effort),
        }

    async def load_issue_snapshot(args: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        issue = await tracker.get_issue(str(args["issueId"]))
        return issue.snapshot() if issue is not None else None

    async def create_issue(args: Dict[str, Any]) -> Dict[str, Any]:
        params = CreateIssueInput.model_validate(args)
        issue = await tracker.create_issue(
            title=params.title,
            description=params.description,
            priority=params.priority,
            assignee_name=params.assignee_name,
            label_names=params.label_names,
        )
        return {
            "success": True,
            "issueId": issue.id,
            "identifier": issue.identifier,
            "title": issue.title,
            "url": issue.url,
        }

    async def update_issue(args: Dict[str, Any]) -> Dict[str, Any]:
        params = UpdateIssueInput.model_validate(args)
        issue = await tracker.update_issue(
            params.issue_id,
            title=params.title,
            description=params.description,
            priority=params.priority,
            assignee_name=params.assignee_name,
            status=params.status,
        )
        return {"success": True, "issueId": issue.id, "identifier": issue.identifier, "url": issue.url}

    async def delete_issue(args: Dict[str, Any]) -> Dict[str, Any]:
        params = DeleteIssueInput.model_validate(args)
        if not await tracker.delete_issue(params.issue_id):
            return {"error": f"Could not delete issue {params.issue_id}"}
        return {"success": True, "identifier": params.issue_id}

    async def add_comment(args: Dict[str, Any]) -> Dict[str, Any]:
        params = AddCommentInput.model_validate(args)
        comment = await tracker.add_comment(params.issue_id, params.body)
        return {
            "success": True,
            "issueIdentifier": params.issue_id,
            "commentId": comment.get("id"),
            "url": comment.get("url"),
        }

    async def bulk_update_issues(args: Dict[str, Any]) -> Dict[str, Any]:
        params = BulkUpdateIssuesInput.model_validate(args)
        updated: List[str] = []
        failures: List[Dict[str, str]] = []
        for issue_id in params.issue_ids:
            try:
                issue = await tracker.update_issue(
                    issue_id,
                    priority=params.updates.priority,
                    assignee_name=params.updates.assignee_name,
                    status=params.updates.status,
                )
            except Exception as e:
                failures.append({"issueId": issue_id, "error": str(e)})
                continue
            updated.append(issue.identifier)

        total = len(params.issue_ids)
        result: Dict[str, Any] = {
            "updatedCount": len(updated),
            "failedCount": len(failures),
            "totalCount": total,
            "updated": updated,
            "failures": failures,
        }
        if not updated:
            result.update({"success": False, "error": f"All {total} updates failed: {failures[0]['error']}"})
        elif failures:
            result.update({"success": True, "partialSuccess": True})
        else:
            result["success"] = True
        return result

    linear = ToolCategory.linear.value
    return [
        ToolDefinition(
            name="search_issues",
            description="Search for issues by keyword in title or description",
            summary="Search issues by keyword",
            input_schema=SearchIssuesInput,
            handler=search_issues,
        ),
        ToolDefinition(
            name="get_issue_detail",
            description="Get full details of a specific issue by ID or identifier",
            summary="Get details of a specific issue",
            input_schema=GetIssueDetailInput,
            handler=get_issue_detail,
        ),
        ToolDefinition(
            name="calculate_rice",
            description="Calculate the RICE prioritization score (reach * impact * confidence / effort)",
            summary="Calculate RICE score",
            input_schema=CalculateRiceInput,
            handler=calculate_rice,
        ),
        ToolDefinition(
            name="create_issue",
            description="Create a new issue in Linear. Requires user approval before it is created.",
            summary="Create a new issue in Linear",
            input_schema=CreateIssueInput,
            requires_approval=True,
            category=linear,
            preview=preview_create_issue,
            handler=create_issue,
        ),
        ToolDefinition(
            name="update_issue",
            description="Update fields of an existing Linear issue. Requires user approval before it is applied.",
            summary="Update an existing issue",
            input_schema=UpdateIssueInput,
            requires_approval=True,
            category=linear,
            preview=preview_update_issue,
            handler=update_issue,
            load_current=load_issue_snapshot,
        ),
        ToolDefinition(
            name="delete_issue",
            description="Delete (move to trash) a Linear issue. Requires user approval before it is deleted.",
            summary="Delete an issue",
            input_schema=DeleteIssueInput,
            requires_approval=True,
            category=linear,
            destructive=True,
            preview=preview_delete_issue,
            handler=delete_issue,
            load_current=load_issue_snapshot,
        ),
        ToolDefinition(
            name="add_comment",
            description="Add a comment to a Linear issue. Requires user approval before it is posted.",
            summary="Comment on an issue",
            input_schema=AddCommentInput,
            requires_approval=True,
            category=linear,
            preview=preview_add_comment,
            handler=add_comment,
        ),
        ToolDefinition(
            name="bulk_update_issues",
            description=(
                "Apply the same priority/assignee/status change to several Linear issues at once. "
                "Requires user approval before it is applied."
            ),
            summary="Update several issues at once",
            input_schema=BulkUpdateIssuesInput,
            requires_approval=True,
            category=linear,
            preview=preview_bulk_update_issues,
            handler=bulk_update_issues,
        ),
    ]


def build_default_registry(tracker: IssueTracker) -> ToolRegistry:
    """Build the process-wide tool registry for ``tracker``."""
    return ToolRegistry(build_builtin_tools(tracker))
