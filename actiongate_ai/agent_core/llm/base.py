"""
Base LLM provider interface.

The conversation loop only needs a streaming chat-completions call with tool
definitions. Providers normalize their wire chunks into ``StreamChunk``
objects: content fragments, tool-call fragments (reassembled by ``index`` on
the consumer side) and the finish reason.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional


@dataclass
class ToolCallFragment:
    """One incremental piece of a tool call.

    The first fragment of a call carries ``id`` and ``name``; later fragments
    for the same ``index`` only carry more ``arguments`` text.
    """
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


@dataclass
class StreamChunk:
    """Standardized chunk format across providers"""
    content: Optional[str] = None
    tool_calls: List[ToolCallFragment] = field(default_factory=list)
    finish_reason: Optional[str] = None


class ChatCompletionProvider(ABC):
    """Abstract base class for streaming chat-completion providers"""

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def stream_chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream chat completion chunks.

        Args:
            messages: OpenAI-format message dicts (system, user, assistant, tool).
            tools: OpenAI-format function definitions the model may call.

        Yields:
            StreamChunk objects in arrival order.
        """
