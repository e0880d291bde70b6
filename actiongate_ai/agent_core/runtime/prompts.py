"""System prompt assembly for the conversation loop."""

from ..tools.registry import ToolRegistry

BASE_SYSTEM_PROMPT = """You are ActionGate, an assistant that helps an engineering team manage its work in Linear.

Use your tools to look up real data instead of guessing. Base your answers on tool results.

Some tools change data in Linear. Those changes are never applied directly: they are proposed to the user, \
who approves or declines them. After proposing a change, summarize what you proposed and stop; do not \
propose the same change twice."""


def build_system_prompt(registry: ToolRegistry, base_prompt: str = BASE_SYSTEM_PROMPT) -> str:
    """Compose the base instructions with the capability section rendered from ``registry``."""
    return f"{base_prompt}\n\n{registry.build_capability_prompt()}"
