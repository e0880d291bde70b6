"""LLM provider abstraction and the OpenAI streaming implementation."""

from .base import ChatCompletionProvider, StreamChunk, ToolCallFragment
from .openai_provider import OpenAIChatProvider

__all__ = ["ChatCompletionProvider", "OpenAIChatProvider", "StreamChunk", "ToolCallFragment"]
