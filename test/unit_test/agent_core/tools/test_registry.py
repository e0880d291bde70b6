from __future__ import annotations

from typing import Any, Dict, Optional

import pytest
from pydantic import Field

from actiongate_ai.agent_core.errors import RegistryError, ToolArgumentsError, UnknownToolError
from actiongate_ai.agent_core.schemas.domain import PreviewField
from actiongate_ai.agent_core.tools.definitions import ToolDefinition, ToolInput, format_value, generic_preview
from actiongate_ai.agent_core.tools.registry import ToolRegistry


class _LookupInput(ToolInput):
    issue_id: str = Field(..., min_length=1)


class _PostInput(ToolInput):
    channel_name: str
    text: str
    pinned: Optional[bool] = None


def _lookup() -> ToolDefinition:
    return ToolDefinition(name="lookup", description="Look something up", input_schema=_LookupInput)


def _post(**overrides: Any) -> ToolDefinition:
    fields: Dict[str, Any] = dict(
        name="post_message",
        description="Post a message to a channel",
        summary="Post a message",
        input_schema=_PostInput,
        requires_approval=True,
        category="chat",
    )
    fields.update(overrides)
    return ToolDefinition(**fields)


def test_duplicate_names_are_rejected() -> None:
    with pytest.raises(ValueError, match="Duplicate tool definition: lookup"):
        ToolRegistry([_lookup(), _lookup()])


def test_get_unknown_tool_raises() -> None:
    reg = ToolRegistry([_lookup()])

    with pytest.raises(UnknownToolError) as exc_info:
        reg.get("missing")
    assert exc_info.value.message == "Unknown tool: missing"
    assert isinstance(exc_info.value, RegistryError)


def test_is_write_tool_follows_requires_approval() -> None:
    reg = ToolRegistry([_lookup(), _post()])

    assert reg.is_write_tool("lookup") is False
    assert reg.is_write_tool("post_message") is True
    with pytest.raises(UnknownToolError):
        reg.is_write_tool("missing")


def test_registry_preserves_registration_order_and_membership() -> None:
    reg = ToolRegistry([_post(), _lookup()])

    assert [d.name for d in reg.get_definitions()] == ["post_message", "lookup"]
    assert "lookup" in reg
    assert "missing" not in reg
    assert len(reg) == 2


def test_validate_arguments_accepts_both_casings_and_returns_camel_case() -> None:
    reg = ToolRegistry([_post()])

    from_camel = reg.validate_arguments("post_message", {"channelName": "eng", "text": "hi"})
    from_snake = reg.validate_arguments("post_message", {"channel_name": "eng", "text": "hi"})

    assert from_camel == from_snake == {"channelName": "eng", "text": "hi"}


def test_validate_arguments_rejects_missing_and_unknown_fields() -> None:
    reg = ToolRegistry([_post()])

    with pytest.raises(ToolArgumentsError) as missing:
        reg.validate_arguments("post_message", {"text": "hi"})
    assert "channelName" in missing.value.message or "channel_name" in missing.value.message
    assert missing.value.tool_name == "post_message"

    with pytest.raises(ToolArgumentsError):
        reg.validate_arguments("post_message", {"channelName": "eng", "text": "hi", "sneaky": True})


def test_to_openai_tools_uses_camel_case_schema() -> None:
    reg = ToolRegistry([_post()])

    [tool] = reg.to_openai_tools()

    assert tool["type"] == "function"
    assert tool["function"]["name"] == "post_message"
    assert tool["function"]["description"] == "Post a message to a channel"
    properties = tool["function"]["parameters"]["properties"]
    assert set(properties) == {"channelName", "text", "pinned"}
    assert set(tool["function"]["parameters"]["required"]) == {"channelName", "text"}


def test_generic_preview_lists_non_null_arguments() -> None:
    reg = ToolRegistry([_post()])

    preview = reg.generate_preview("post_message", {"channelName": "eng", "text": "hi", "pinned": None})

    assert preview == [
        PreviewField(field="channelName", new_value="eng"),
        PreviewField(field="text", new_value="hi"),
    ]


def test_generic_preview_fills_old_values_from_current() -> None:
    preview = generic_preview({"text": "new", "tags": ["a", "b"]}, {"text": "old"})

    assert preview[0] == PreviewField(field="text", old_value="old", new_value="new")
    assert preview[1] == PreviewField(field="tags", new_value='["a", "b"]')


def test_custom_preview_overrides_generic() -> None:
    def _preview(args: Dict[str, Any], current: Optional[Dict[str, Any]] = None):
        return [PreviewField(field="Channel", new_value=f"#{args['channelName']}")]

    reg = ToolRegistry([_post(preview=_preview)])

    assert reg.generate_preview("post_message", {"channelName": "eng", "text": "hi"}) == [
        PreviewField(field="Channel", new_value="#eng")
    ]


def test_format_value() -> None:
    assert format_value("x") == "x"
    assert format_value(3) == "3"
    assert format_value({"k": "é"}) == '{"k": "é"}'


def test_write_summaries_are_grouped_by_category() -> None:
    reg = ToolRegistry(
        [
            _lookup(),
            _post(),
            _post(name="archive_channel", category="chat", destructive=True, summary="Archive a channel"),
            _post(name="create_page", category="docs", summary="Create a page"),
        ]
    )

    grouped = reg.get_write_summaries_grouped_by_category()

    assert list(grouped) == ["chat", "docs"]
    assert [d.name for d in grouped["chat"]] == ["post_message", "archive_channel"]


def test_capability_prompt_lists_read_and_write_tools() -> None:
    reg = ToolRegistry(
        [
            _lookup(),
            _post(),
            _post(name="archive_channel", destructive=True, summary="Archive a channel"),
        ]
    )

    prompt = reg.build_capability_prompt()

    assert "- lookup: Look something up" in prompt
    assert "[chat]" in prompt
    assert "- post_message: Post a message\n" in prompt
    assert "- archive_channel: Archive a channel (destructive)" in prompt
    assert "does NOT perform the change" in prompt
    assert prompt.index("lookup") < prompt.index("[chat]")


def test_capability_prompt_without_write_tools() -> None:
    prompt = ToolRegistry([_lookup()]).build_capability_prompt()

    assert "cannot make changes" in prompt
    assert "approval" not in prompt


def test_definitions_are_frozen() -> None:
    definition = _lookup()

    with pytest.raises(Exception):
        definition.name = "renamed"  # type: ignore[misc]
    assert definition.has_handler() is False
    assert list(definition.to_dict()["input_schema"]["properties"]) == ["issueId"]
