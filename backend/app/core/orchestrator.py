from collections.abc import AsyncIterator
from contextlib import aclosing

import httpx
from loguru import logger

from app.config import ChatConfig
from app.core.context import history_for_provider
from app.core.knowledge import find_referenced_pain_points
from app.core.local_responder import generate_local_response
from app.core.providers import ChatResult, ProviderRouter
from app.core.relay import StreamRelay
from app.db.conversations import ConversationStore, title_from_message

LOCAL_PROVIDER = "local"


class ChatOrchestrator:
    """
    One chat turn: load history, get an answer, persist the exchange.

    The user message is stored together with the reply, so a turn that
    fails leaves the conversation's user/assistant alternation intact.
    """

    def __init__(
        self,
        config: ChatConfig,
        store: ConversationStore,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.store = store
        self.router = ProviderRouter(config, transport=transport)
        self.relay = StreamRelay(config, self.router)

    async def resolve_conversation(self, conversation_id: str | None, message: str) -> str:
        """Existing conversation id, or a new conversation titled after the message."""
        if conversation_id:
            conv = await self.store.get_conversation(conversation_id)
            if conv:
                return conv["conversation_id"]
            logger.info("Conversation {} not found, starting a new one", conversation_id)

        conv = await self.store.create_conversation(title_from_message(message))
        return conv["conversation_id"]

    async def _history(self, conversation_id: str, message: str) -> list[dict]:
        previous = await self.store.get_messages(conversation_id)
        return [*history_for_provider(previous), {"role": "user", "content": message}]

    async def _persist(self, conversation_id: str, message: str, result: ChatResult) -> dict:
        stored = await self.store.append_messages(
            conversation_id,
            [
                {"role": "user", "content": message},
                *result.trace,
                {
                    "role": "assistant",
                    "content": result.content,
                    "referenced_pain_points": find_referenced_pain_points(result.content),
                    "provider": result.provider,
                },
            ],
        )
        return stored[-1]

    async def reply(self, conversation_id: str, message: str, use_web_search: bool = False) -> tuple[dict, str]:
        """Non-streaming turn. Raises NoProviderAvailable when nothing answered."""
        async with self.store.lock(conversation_id):
            history = await self._history(conversation_id, message)
            result = await self.router.generate(history, use_tools=use_web_search)
            saved = await self._persist(conversation_id, message, result)
        return saved, result.provider

    async def reply_local(self, conversation_id: str, message: str) -> tuple[dict, str]:
        result = ChatResult(generate_local_response(message), LOCAL_PROVIDER)
        async with self.store.lock(conversation_id):
            saved = await self._persist(conversation_id, message, result)
        return saved, LOCAL_PROVIDER

    def _persister(self, conversation_id: str, message: str):
        async def persist(result: ChatResult) -> None:
            await self._persist(conversation_id, message, result)

        return persist

    async def stream(self, conversation_id: str, message: str, use_web_search: bool = False) -> AsyncIterator[str]:
        persist = self._persister(conversation_id, message)
        async with self.store.lock(conversation_id):
            history = await self._history(conversation_id, message)
            async with aclosing(self.relay.run(conversation_id, history, use_web_search, persist)) as events:
                async for event in events:
                    yield event

    async def stream_local(self, conversation_id: str, message: str) -> AsyncIterator[str]:
        result = ChatResult(generate_local_response(message), LOCAL_PROVIDER)
        persist = self._persister(conversation_id, message)
        async with self.store.lock(conversation_id):
            async for event in self.relay.replay(result, conversation_id, persist):
                yield event
