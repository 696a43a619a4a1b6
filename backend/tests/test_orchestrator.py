"""
Turn-level behaviour that the HTTP tests can't observe directly: client
disconnects mid-stream and concurrent turns on one conversation.
"""

import asyncio
import json

import httpx

from app.core.orchestrator import ChatOrchestrator
from chat_fakes import MemoryStore, make_config, parse_events, sse_line


class HangingStream(httpx.AsyncByteStream):
    """Sends one fragment, then stalls until the consumer goes away."""

    def __init__(self) -> None:
        self.closed = False

    async def __aiter__(self):
        yield sse_line({"content": "Hel"})
        await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class TestDisconnect:
    def test_closing_the_stream_releases_upstream_and_saves_nothing(self):
        store = MemoryStore()
        upstream = HangingStream()
        transport = httpx.MockTransport(lambda request: httpx.Response(200, stream=upstream))
        orchestrator = ChatOrchestrator(make_config(), store, transport=transport)

        async def scenario():
            cid = await orchestrator.resolve_conversation(None, "hi")
            events = orchestrator.stream(cid, "hi")
            first = await events.__anext__()
            await events.aclose()
            return cid, first

        cid, first = asyncio.run(scenario())

        assert parse_events(first) == [{"content": "Hel"}]
        assert upstream.closed
        assert store.messages[cid] == []


class TestSerialization:
    def test_concurrent_turns_see_each_other(self):
        store = MemoryStore()
        seen: list[list[dict]] = []
        answers = iter(["First answer", "Second answer"])

        async def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content)["messages"][1:])
            await asyncio.sleep(0.01)
            content = next(answers)
            return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})

        orchestrator = ChatOrchestrator(make_config(), store, transport=httpx.MockTransport(handler))

        async def scenario():
            cid = await orchestrator.resolve_conversation(None, "one")
            await asyncio.gather(orchestrator.reply(cid, "one"), orchestrator.reply(cid, "two"))
            return cid

        cid = asyncio.run(scenario())

        assert seen[1] == [
            {"role": "user", "content": "one"},
            {"role": "assistant", "content": "First answer"},
            {"role": "user", "content": "two"},
        ]
        assert [m["content"] for m in store.messages[cid]] == ["one", "First answer", "two", "Second answer"]
