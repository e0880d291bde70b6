"""Tool catalog: definitions, the immutable registry and the built-in tools."""

from .builtin import build_builtin_tools, build_default_registry
from .definitions import ToolDefinition, ToolHandlerFn, ToolInput, generic_preview
from .registry import ToolRegistry

__all__ = [
    "ToolDefinition",
    "ToolHandlerFn",
    "ToolInput",
    "ToolRegistry",
    "build_builtin_tools",
    "build_default_registry",
    "generic_preview",
]
