from __future__ import annotations

"""Tool registry.

The registry is the immutable catalog of tools the model can call. It is
built once at process start and handed by reference to both the conversation
loop and the approval manager.

The registry also renders the capability section of the system prompt from
its own contents, so what the model believes it can do always matches what
is actually registered.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import UnknownToolError
from ..schemas.domain import PreviewField
from .definitions import ToolDefinition


class ToolRegistry:
    """
    Immutable mapping of tool names to definitions.

    Notes:
        - Duplicate tool names are rejected at construction time.
        - ``get`` raises ``UnknownToolError`` for unregistered names; lookups
          never silently fall back.
        - All methods are pure lookups/formatting; none of them calls a handler.
    """

    def __init__(self, definitions: Iterable[ToolDefinition]) -> None:
        """
        Build the registry.

        Args:
            definitions: The tool definitions to register.

        Raises:
            ValueError: If two definitions share a name.
        """
        tools: Dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name in tools:
                raise ValueError(f"Duplicate tool definition: {definition.name}")
            tools[definition.name] = definition
        self._tools: Mapping[str, ToolDefinition] = MappingProxyType(tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> ToolDefinition:
        """
        Retrieve a tool definition by name.

        Args:
            name: The tool name requested by the model.

        Returns:
            The tool definition.

        Raises:
            UnknownToolError: If no tool is registered under ``name``.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def get_definitions(self) -> List[ToolDefinition]:
        """Return all tool definitions in registration order."""
        return list(self._tools.values())

    def to_openai_tools(self) -> List[Dict[str, Any]]:
        """Return the catalog in OpenAI function-calling format."""
        return [definition.to_openai_tool() for definition in self._tools.values()]

    def is_write_tool(self, name: str) -> bool:
        """
        Whether calling ``name`` requires human approval.

        Raises:
            UnknownToolError: If no tool is registered under ``name``.
        """
        return self.get(name).requires_approval

    def validate_arguments(self, name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        """Validate ``args`` against the schema of tool ``name`` and return the normalized arguments."""
        return self.get(name).validate_arguments(args)

    def generate_preview(
        self, name: str, args: Dict[str, Any], current: Optional[Dict[str, Any]] = None
    ) -> List[PreviewField]:
        """
        Build the before/after preview for a call of tool ``name``.

        Args:
            name: The tool name.
            args: Normalized tool arguments.
            current: Optional snapshot of the upstream values the call would change.

        Returns:
            Ordered preview lines. Tools without a bespoke generator get one
            line per non-null argument.
        """
        return self.get(name).generate_preview(args, current)

    def get_write_summaries_grouped_by_category(self) -> Dict[str, List[ToolDefinition]]:
        """Group the approval-requiring tools by category, preserving registration order."""
        grouped: Dict[str, List[ToolDefinition]] = {}
        for definition in self._tools.values():
            if definition.requires_approval:
                grouped.setdefault(definition.category, []).append(definition)
        return grouped

    def build_capability_prompt(self) -> str:
        """Render the capability section of the system prompt from the registry contents."""
        lines: List[str] = []
        read_tools = [d for d in self._tools.values() if not d.requires_approval]
        if read_tools:
            lines.append("You can look up information with these tools (they run immediately):")
            lines.extend(f"- {d.name}: {d.user_summary}" for d in read_tools)

        grouped = self.get_write_summaries_grouped_by_category()
        if grouped:
            if lines:
                lines.append("")
            lines.append("You can propose these changes. Each one requires the user's approval before it runs:")
            for category, definitions in grouped.items():
                lines.append(f"[{category}]")
                for d in definitions:
                    marker = " (destructive)" if d.destructive else ""
                    lines.append(f"- {d.name}: {d.user_summary}{marker}")
            lines.append("")
            lines.append(
                "Calling one of these tools does NOT perform the change. It creates a proposal that the user "
                "approves or declines in the interface. Tell the user what you proposed and wait for their decision; "
                "never claim that a proposed change has already been made."
            )
        else:
            if lines:
                lines.append("")
            lines.append("You cannot make changes to any external system.")
        return "\n".join(lines)
