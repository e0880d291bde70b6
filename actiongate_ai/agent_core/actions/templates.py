"""Human-readable descriptions and result summaries for write tools.

Both are lookup tables keyed by tool name. Tools without an entry fall back
to ``Execute <tool_name>`` for descriptions and to a generic summary of the
raw payload, so a newly registered write tool works without a template.
"""

import json
from typing import Any, Callable, Dict, List

from ..integrations.models import priority_label

DescriptionTemplate = Callable[[Dict[str, Any]], str]
SummaryTemplate = Callable[[Dict[str, Any]], str]

_COMMENT_PREVIEW_CHARS = 80
_LARGE_BATCH = 10
_RAW_SUMMARY_CHARS = 200


def _describe_create_issue(args: Dict[str, Any]) -> str:
    title = str(args.get("title") or "Untitled")
    parts: List[str] = []
    if args.get("priority") is not None:
        parts.append(f"Priority: {priority_label(int(args['priority']))}")
    if args.get("assigneeName"):
        parts.append(f"Assignee: {args['assigneeName']}")
    suffix = f" ({', '.join(parts)})" if parts else ""
    return f"Create issue: {title}{suffix}"


def _describe_update_issue(args: Dict[str, Any]) -> str:
    identifier = str(args.get("issueId") or "unknown")
    changed = [
        label
        for key, label in (
            ("title", "title"),
            ("description", "description"),
            ("priority", "priority"),
            ("assigneeName", "assignee"),
            ("status", "status"),
        )
        if args.get(key) is not None
    ]
    return f"Update {identifier}: {', '.join(changed) if changed else 'fields'}"


def _describe_delete_issue(args: Dict[str, Any]) -> str:
    return f"Delete issue: {args.get('issueId') or 'unknown'}"


def _describe_add_comment(args: Dict[str, Any]) -> str:
    identifier = str(args.get("issueId") or "unknown")
    body = str(args.get("body") or "")
    if len(body) > _COMMENT_PREVIEW_CHARS:
        body = body[:_COMMENT_PREVIEW_CHARS] + "..."
    return f"Comment on {identifier}: {body}"


def _describe_bulk_update_issues(args: Dict[str, Any]) -> str:
    count = len(args.get("issueIds") or [])
    updates = args.get("updates") or {}
    parts: List[str] = []
    if updates.get("priority") is not None:
        parts.append(f"set priority to {priority_label(int(updates['priority']))}")
    if updates.get("assigneeName"):
        parts.append(f"assign to {updates['assigneeName']}")
    if updates.get("status"):
        parts.append(f"set status to {updates['status']}")
    summary = ", ".join(parts) if parts else "update fields"
    large = " (large batch)" if count > _LARGE_BATCH else ""
    return f"Update {count} issues: {summary}{large}"


DESCRIPTION_TEMPLATES: Dict[str, DescriptionTemplate] = {
    "create_issue": _describe_create_issue,
    "update_issue": _describe_update_issue,
    "delete_issue": _describe_delete_issue,
    "add_comment": _describe_add_comment,
    "bulk_update_issues": _describe_bulk_update_issues,
}


def _summarize_bulk_update(payload: Dict[str, Any]) -> str:
    if payload.get("partialSuccess"):
        return (
            f"Updated {payload.get('updatedCount', 0)}/{payload.get('totalCount', 0)} issues "
            f"({payload.get('failedCount', 0)} failed)"
        )
    return f"Updated {payload.get('updatedCount', 0)} issues successfully"


SUMMARY_TEMPLATES: Dict[str, SummaryTemplate] = {
    "create_issue": lambda p: f"Created {p.get('identifier') or p.get('issueId') or 'unknown'}: {p.get('title') or ''}",
    "update_issue": lambda p: f"Updated {p.get('identifier') or p.get('issueId') or 'unknown'}",
    "delete_issue": lambda p: f"Deleted {p.get('identifier') or 'unknown'}",
    "add_comment": lambda p: f"Comment added to {p.get('issueIdentifier') or 'unknown'}",
    "bulk_update_issues": _summarize_bulk_update,
}


def describe_action(tool_name: str, args: Dict[str, Any]) -> str:
    """Build the one-line description shown on an approval card."""
    template = DESCRIPTION_TEMPLATES.get(tool_name)
    if template is None:
        return f"Execute {tool_name}"
    return template(args)


def summarize_result(tool_name: str, payload: Dict[str, Any]) -> str:
    """Build the human summary recorded as the result of a succeeded action."""
    template = SUMMARY_TEMPLATES.get(tool_name)
    if template is not None:
        return template(payload)
    if payload.get("success"):
        return "Action completed successfully"
    return json.dumps(payload, default=str)[:_RAW_SUMMARY_CHARS]
