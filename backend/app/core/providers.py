"""
Provider routing: OpenAI-compatible chat completions against the primary
(DeepSeek) and fallback (Together AI) backends.

generate() is the non-streaming pipeline: primary with the web_search tool,
one round of tool execution, then the fallback without tools. stream() opens
a token stream against a single provider; the relay decides what to do when
it fails.
"""

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import httpx
from loguru import logger

from app.config import ChatConfig, ProviderConfig
from app.core.context import build_system_prompt
from app.core.errors import (
    ChatError,
    MalformedResponse,
    NoProviderAvailable,
    ProviderError,
    ProviderNotConfigured,
    StreamToolCall,
)
from app.core.markup import clean_content
from app.core.tools import WEB_SEARCH_TOOL, ToolExecutor


@dataclass
class Completion:
    content: str
    tool_calls: list[dict] | None = None


@dataclass
class ChatResult:
    content: str
    provider: str
    # assistant tool request + tool results, in the order they were exchanged
    trace: list[dict] = field(default_factory=list)


def _well_formed(message) -> bool:
    """content is text or null; tool_calls, when present, is a list of objects."""
    if not isinstance(message, dict):
        return False
    content = message.get("content")
    if content is not None and not isinstance(content, str):
        return False
    tool_calls = message.get("tool_calls")
    if tool_calls is not None:
        if not isinstance(tool_calls, list) or not all(isinstance(c, dict) for c in tool_calls):
            return False
    return True


class ProviderRouter:
    def __init__(
        self,
        config: ChatConfig,
        tools: ToolExecutor | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.tools = tools or ToolExecutor(config.search, transport=transport)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.provider_timeout, connect=10.0),
            transport=self._transport,
        )

    def build_request(
        self,
        provider: ProviderConfig,
        history: list[dict],
        use_tools: bool = False,
        tools_prompt: bool | None = None,
        stream: bool = False,
    ) -> dict:
        """
        Request body for one completion call. Tools are only attached for a
        provider that supports them; tools_prompt defaults to whether tools
        are offered.
        """
        offer_tools = use_tools and provider.supports_tools
        if tools_prompt is None:
            tools_prompt = offer_tools

        body: dict = {
            "model": provider.model,
            "messages": [
                {"role": "system", "content": build_system_prompt(tools_prompt)},
                *history,
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if stream:
            body["stream"] = True
        if offer_tools:
            body["tools"] = [WEB_SEARCH_TOOL]
        return body

    @staticmethod
    def _headers(provider: ProviderConfig) -> dict[str, str]:
        return {"Authorization": f"Bearer {provider.api_key}"}

    async def complete(
        self,
        provider: ProviderConfig,
        history: list[dict],
        use_tools: bool = False,
        tools_prompt: bool | None = None,
    ) -> Completion:
        if not provider.configured:
            raise ProviderNotConfigured(provider.name)

        body = self.build_request(provider, history, use_tools, tools_prompt)
        try:
            async with self._client() as client:
                resp = await client.post(provider.endpoint, json=body, headers=self._headers(provider))
        except httpx.HTTPError as e:
            raise ProviderError(provider.name, detail=str(e)) from e

        if not resp.is_success:
            logger.error("{} API error {}: {}", provider.name, resp.status_code, resp.text[:500])
            raise ProviderError(provider.name, status=resp.status_code)

        try:
            message = resp.json()["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError):
            message = None
        if not _well_formed(message):
            logger.error("Unexpected {} response: {}", provider.name, resp.text[:500])
            raise MalformedResponse(provider.name)

        return Completion(
            content=clean_content(message.get("content")),
            tool_calls=message.get("tool_calls") or None,
        )

    async def stream(
        self,
        provider: ProviderConfig,
        history: list[dict],
        use_tools: bool = False,
    ) -> AsyncIterator[str]:
        """
        Yield raw content fragments from a streaming completion.

        Tool-call deltas are not executed here; a stream that carried only a
        tool call raises StreamToolCall once it ends.
        """
        if not provider.configured:
            raise ProviderNotConfigured(provider.name)

        body = self.build_request(provider, history, use_tools, stream=True)
        saw_tool_call = False
        saw_content = False

        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", provider.endpoint, json=body, headers=self._headers(provider)
                ) as resp:
                    if not resp.is_success:
                        error_body = await resp.aread()
                        logger.error("{} stream error {}: {}", provider.name, resp.status_code, error_body[:500])
                        raise ProviderError(provider.name, status=resp.status_code)

                    async for line in resp.aiter_lines():
                        line = line.strip()
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if not data or data == "[DONE]":
                            continue
                        try:
                            chunk = json.loads(data)
                        except json.JSONDecodeError:
                            continue
                        if not isinstance(chunk, dict):
                            continue

                        choices = chunk.get("choices") or [{}]
                        delta = (choices[0] or {}).get("delta") or {}
                        if delta.get("tool_calls"):
                            saw_tool_call = True
                        content = delta.get("content")
                        if isinstance(content, str) and content:
                            saw_content = True
                            yield content
        except httpx.HTTPError as e:
            raise ProviderError(provider.name, detail=str(e)) from e

        if saw_tool_call and not saw_content:
            raise StreamToolCall(provider.name)

    async def _primary_turn(self, history: list[dict], use_tools: bool) -> ChatResult:
        primary = self.config.primary
        result = await self.complete(primary, history, use_tools=use_tools)

        if not result.tool_calls:
            logger.info("✓ Response from {}", primary.name)
            return ChatResult(result.content, primary.name)

        logger.info("✓ {} requesting {} tool call(s)", primary.name, len(result.tool_calls))
        trace = await self.tools.execute(result.tool_calls, result.content)

        # Tools are withheld on the synthesis call so the turn always terminates.
        final = await self.complete(primary, [*history, *trace], use_tools=False, tools_prompt=True)
        logger.info("✓ Response from {} (with tools)", primary.name)
        return ChatResult(final.content, primary.name, trace)

    async def generate(
        self, history: list[dict], use_tools: bool = False, skip_primary: bool = False
    ) -> ChatResult:
        """
        Primary (optionally with web_search), then fallback without tools.
        Each provider is tried at most once; skip_primary is set when the
        primary already failed earlier in the turn.
        """
        if not skip_primary:
            try:
                return await self._primary_turn(history, use_tools)
            except ChatError as e:
                logger.warning("{} unavailable: {}", self.config.primary.name, e)

        fallback = self.config.fallback
        try:
            result = await self.complete(fallback, history)
            logger.info("✓ Response from {} (fallback), {} chars", fallback.name, len(result.content))
            return ChatResult(result.content, fallback.name)
        except ChatError as e:
            logger.warning("{} fallback unavailable: {}", fallback.name, e)

        raise NoProviderAvailable(configured=self.config.any_provider_configured)
