"""Tool definitions.

A ``ToolDefinition`` describes one operation the model may call: its
name and description, the pydantic model validating its arguments, whether it
mutates an external system (and therefore requires human approval), how to
render a before/after preview of the change, and the async handler that
performs it.

Tool arguments travel in camelCase (the shape the model sees in the JSON
schema and the shape stored on proposals); input models use snake_case field
names with camelCase aliases.
"""

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import ToolArgumentsError
from ..schemas.domain import PreviewField, ToolCategory

ToolHandlerFn = Callable[[Dict[str, Any]], Awaitable[Any]]
PreviewFn = Callable[[Dict[str, Any], Optional[Dict[str, Any]]], List[PreviewField]]
SnapshotLoader = Callable[[Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]


class ToolInput(BaseModel):
    """Base model for tool argument schemas."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


def format_value(value: Any) -> str:
    """Render an argument value for display in a preview line."""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def generic_preview(args: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> List[PreviewField]:
    """Fallback preview: one line per non-null argument, in argument order."""
    fields: List[PreviewField] = []
    for key, value in args.items():
        if value is None:
            continue
        old = (current or {}).get(key)
        fields.append(
            PreviewField(
                field=key,
                old_value=format_value(old) if old is not None else None,
                new_value=format_value(value),
            )
        )
    return fields


class ToolDefinition(BaseModel):
    """Pydantic model for tool definitions.

    Provides a structured, validated way to define the tools available to the
    model with their argument schema, approval requirement and handler.
    """

    name: str = Field(..., description="Unique identifier for the tool")
    description: str = Field(..., description="Description of the tool shown to the model")
    summary: Optional[str] = Field(
        default=None, description="Short user-facing description used in the capability prompt"
    )
    input_schema: Type[BaseModel] = Field(..., description="Pydantic model class for argument validation")
    requires_approval: bool = Field(default=False, description="Whether calls must be approved before running")
    category: str = Field(default=ToolCategory.query.value, description="Grouping used in the capability prompt")
    destructive: bool = Field(default=False, description="Whether the operation removes data")
    preview: Optional[PreviewFn] = Field(default=None, description="Before/after preview generator")
    handler: Optional[ToolHandlerFn] = Field(default=None, description="Async handler executing the tool")
    load_current: Optional[SnapshotLoader] = Field(
        default=None, description="Async loader returning the current upstream values the tool would change"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def user_summary(self) -> str:
        return self.summary or self.description

    def to_dict(self) -> Dict[str, Any]:
        """Convert tool definition to dictionary format.

        Returns:
            Dictionary representation of tool definition with JSON schema
        """
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema.model_json_schema(by_alias=True),
        }

    def to_openai_tool(self) -> Dict[str, Any]:
        """Render the definition in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema.model_json_schema(by_alias=True),
            },
        }

    def validate_arguments(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Validate raw arguments against the input schema.

        Args:
            args: Arguments as produced by the model.

        Returns:
            The normalized arguments (camelCase keys, unset optionals dropped).

        Raises:
            ToolArgumentsError: If the arguments do not satisfy the schema.
        """
        try:
            model = self.input_schema.model_validate(args)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ())) or "arguments"
            raise ToolArgumentsError(
                self.name, f"{location}: {first.get('msg')}", errors=e.errors(include_url=False)
            ) from e
        return model.model_dump(by_alias=True, exclude_none=True, mode="json")

    def generate_preview(self, args: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> List[PreviewField]:
        if self.preview is not None:
            return self.preview(args, current)
        return generic_preview(args, current)

    def has_handler(self) -> bool:
        return self.handler is not None
