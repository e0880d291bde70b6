"""
OpenAI chat-completions provider.
"""

from typing import Any, AsyncIterator, Dict, List, Optional

from openai import AsyncOpenAI

from .base import ChatCompletionProvider, StreamChunk, ToolCallFragment


class OpenAIChatProvider(ChatCompletionProvider):
    """OpenAI implementation of the streaming provider"""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o",
        *,
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(model)
        self.api_key = api_key
        self.base_url = base_url
        self.temperature = temperature
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Created on first use so the service can start without an API key.
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def stream_chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream chat completion from OpenAI"""
        kwargs: Dict[str, Any] = {}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            stream=True,
            **kwargs,
        )

        async for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = choice.delta
            fragments = [
                ToolCallFragment(
                    index=tc.index,
                    id=tc.id,
                    name=tc.function.name if tc.function else None,
                    arguments=(tc.function.arguments or "") if tc.function else "",
                )
                for tc in (delta.tool_calls or [])
            ]
            if delta.content or fragments or choice.finish_reason:
                yield StreamChunk(
                    content=delta.content or None,
                    tool_calls=fragments,
                    finish_reason=choice.finish_reason,
                )
