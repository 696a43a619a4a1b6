"""
Stream relay: turns one chat turn into server-sent events.

    INIT ──no credentials──────────────────────────────▶ FAILED
      │
      ▼
    STREAM_PRIMARY ──complete──▶ persist ──────────────▶ DONE
      │ open/read failure, or tool call without content
      ▼
    FALLBACK_NONSTREAM ──answer──▶ word-by-word ▶ persist ▶ DONE
      │ every provider failed
      ▼
    FAILED

A failed primary stream goes straight to the fallback provider; a stream that
ended in a tool call reruns the primary so the tool can be executed. If
content had already been sent, a {"reset": true} event precedes the
fallback answer.

Nothing is persisted unless the answer is complete. A client disconnect
closes or cancels the generator; the upstream response is released by its
context manager on the way out and the partial answer is dropped.
"""

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing

from loguru import logger

from app.config import ChatConfig
from app.core.errors import ChatError, NoProviderAvailable, StreamToolCall
from app.core.markup import MarkupStreamFilter
from app.core.providers import ChatResult, ProviderRouter

DONE = "data: [DONE]\n\n"
ALL_PROVIDERS_UNAVAILABLE = "All LLM providers unavailable"
NOT_CONFIGURED = (
    "No LLM configured. Please add DEEPSEEK_API_KEY or TOGETHER_API_KEY to your .env file."
)

PersistFn = Callable[[ChatResult], Awaitable[None]]


def sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


# Tells the client to drop content already shown; the fallback answer follows.
RESET = sse({"reset": True})


class StreamRelay:
    def __init__(self, config: ChatConfig, router: ProviderRouter):
        self.config = config
        self.router = router

    async def _finish(self, result: ChatResult, conversation_id: str, persist: PersistFn) -> AsyncIterator[str]:
        try:
            await persist(result)
        except Exception as e:
            # The client already has the content; losing the save must not fail the stream.
            logger.error("Failed to persist reply for {}: {}", conversation_id, e)
        yield sse({"conversationId": conversation_id})
        yield DONE

    async def _stream_primary(self, history: list[dict], use_web_search: bool) -> AsyncIterator[str]:
        markup = MarkupStreamFilter()
        upstream = self.router.stream(self.config.primary, history, use_tools=use_web_search)
        async with aclosing(upstream):
            async for fragment in upstream:
                clean = markup.feed(fragment)
                if clean:
                    yield clean
        tail = markup.flush()
        if tail:
            yield tail

    async def replay(self, result: ChatResult, conversation_id: str, persist: PersistFn) -> AsyncIterator[str]:
        """Simulated streaming of a complete answer, one word per event, then finish."""
        for word in result.content.split(" "):
            yield sse({"content": word + " "})
            if self.config.word_delay:
                await asyncio.sleep(self.config.word_delay)
        async for event in self._finish(result, conversation_id, persist):
            yield event

    async def run(
        self,
        conversation_id: str,
        history: list[dict],
        use_web_search: bool,
        persist: PersistFn,
    ) -> AsyncIterator[str]:
        # INIT
        if not self.config.any_provider_configured:
            logger.warning("[relay] no provider configured")
            yield sse({"error": NOT_CONFIGURED, "setup": self.config.setup_hints()})
            yield DONE
            return

        # STREAM_PRIMARY
        # The primary is skipped in the fallback unless it asked for a tool,
        # which only the non-streaming pipeline can execute.
        skip_primary = False
        if self.config.primary.configured:
            parts: list[str] = []
            try:
                async with aclosing(self._stream_primary(history, use_web_search)) as fragments:
                    async for content in fragments:
                        parts.append(content)
                        yield sse({"content": content})
            except StreamToolCall as e:
                logger.info("[relay] {}, running the tool pipeline", e)
            except ChatError as e:
                logger.warning("[relay] {} streaming failed: {}", self.config.primary.name, e)
                skip_primary = True
            except Exception as e:
                logger.exception("[relay] {} streaming error: {}", self.config.primary.name, e)
                skip_primary = True
            else:
                result = ChatResult("".join(parts), self.config.primary.name)
                async for event in self._finish(result, conversation_id, persist):
                    yield event
                return

            if parts:
                logger.warning("[relay] discarding {} streamed fragments, falling back", len(parts))
                yield RESET

        # FALLBACK_NONSTREAM
        try:
            result = await self.router.generate(
                history, use_tools=use_web_search, skip_primary=skip_primary
            )
        except NoProviderAvailable as e:
            logger.error("[relay] fallback pipeline failed: {}", e)
            yield sse({"error": ALL_PROVIDERS_UNAVAILABLE})
            return

        async for event in self.replay(result, conversation_id, persist):
            yield event
