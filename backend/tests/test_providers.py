"""
ProviderRouter against scripted endpoints: request shape, error mapping,
fallback ordering and the tool round trip.
"""

import asyncio

import httpx
import pytest

from app.core.errors import MalformedResponse, NoProviderAvailable, ProviderError, ProviderNotConfigured
from app.core.providers import ProviderRouter
from app.core.tools import WEB_SEARCH_TOOL
from chat_fakes import (
    DEEPSEEK,
    TAVILY,
    TOGETHER,
    Upstream,
    completion,
    make_config,
    search_results,
    sse_stream,
    tool_call,
)

HISTORY = [{"role": "user", "content": "What should we fix first?"}]


def _router(upstream: Upstream, **config) -> ProviderRouter:
    return ProviderRouter(make_config(**config), transport=upstream.transport)


class TestBuildRequest:
    def test_primary_gets_tools_and_search_prompt(self):
        router = ProviderRouter(make_config())
        body = router.build_request(router.config.primary, HISTORY, use_tools=True)

        assert body["model"] == "deepseek-chat"
        assert body["tools"] == [WEB_SEARCH_TOOL]
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 2048
        assert "CRITICAL RULES FOR WEB SEARCH" in body["messages"][0]["content"]
        assert body["messages"][1:] == HISTORY

    def test_fallback_never_gets_tools(self):
        router = ProviderRouter(make_config())
        body = router.build_request(router.config.fallback, HISTORY, use_tools=True)

        assert "tools" not in body
        assert "You do NOT have access to the internet" in body["messages"][0]["content"]

    def test_knowledge_base_in_system_prompt(self):
        router = ProviderRouter(make_config())
        system = router.build_request(router.config.primary, HISTORY)["messages"][0]["content"]

        assert "## Pain Point #1: Lead Intake → Inspection → Sale Handoffs" in system
        assert "## Pain Point #10: Training & SOPs" in system


class TestComplete:
    def test_not_configured_sends_nothing(self):
        upstream = Upstream()
        router = _router(upstream, primary=False)

        with pytest.raises(ProviderNotConfigured):
            asyncio.run(router.complete(router.config.primary, HISTORY))
        assert upstream.requests == []

    def test_bearer_credential(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, completion("ok"))
        router = _router(upstream)

        asyncio.run(router.complete(router.config.primary, HISTORY))

        assert upstream.calls(DEEPSEEK)[0].headers["authorization"] == "Bearer ds-key"

    def test_error_status(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, httpx.Response(429, text="slow down"))
        router = _router(upstream)

        with pytest.raises(ProviderError) as exc:
            asyncio.run(router.complete(router.config.primary, HISTORY))
        assert exc.value.status == 429
        assert str(exc.value) == "deepseek API error: 429"

    def test_transport_error(self):
        upstream = Upstream()
        upstream.add(TOGETHER, httpx.ReadTimeout("timed out"))
        router = _router(upstream)

        with pytest.raises(ProviderError) as exc:
            asyncio.run(router.complete(router.config.fallback, HISTORY))
        assert exc.value.status is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"choices": []},
            {"error": "nope"},
            {"choices": [{"message": None}]},
            {"choices": [{"message": {"content": ["x"]}}]},
            {"choices": [{"message": {"content": None, "tool_calls": "web_search"}}]},
            {"choices": [{"message": {"content": None, "tool_calls": ["web_search"]}}]},
        ],
    )
    def test_malformed_body(self, payload):
        upstream = Upstream()
        upstream.add(DEEPSEEK, httpx.Response(200, json=payload))
        router = _router(upstream)

        with pytest.raises(MalformedResponse):
            asyncio.run(router.complete(router.config.primary, HISTORY))

    def test_content_is_sanitized(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, completion("<｜tool▁calls▁begin｜> Start with #4. <|DSML|function_calls>"))
        router = _router(upstream)

        result = asyncio.run(router.complete(router.config.primary, HISTORY))

        assert result.content == "Start with #4."
        assert result.tool_calls is None


class TestGenerate:
    def test_primary_answers(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, completion("Primary answer"))

        result = asyncio.run(_router(upstream).generate(HISTORY))

        assert (result.content, result.provider, result.trace) == ("Primary answer", "deepseek", [])
        assert upstream.calls(TOGETHER) == []

    def test_fallback_tried_exactly_once(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, httpx.Response(500))
        upstream.add(TOGETHER, completion("Fallback answer"))

        result = asyncio.run(_router(upstream).generate(HISTORY, use_tools=True))

        assert (result.content, result.provider) == ("Fallback answer", "together")
        assert len(upstream.calls(DEEPSEEK)) == 1
        assert len(upstream.calls(TOGETHER)) == 1

    def test_malformed_primary_falls_back(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, httpx.Response(200, json={"choices": [{"message": {"content": {"text": "x"}}}]}))
        upstream.add(TOGETHER, completion("Fallback answer"))

        result = asyncio.run(_router(upstream).generate(HISTORY))

        assert (result.content, result.provider) == ("Fallback answer", "together")

    def test_skip_primary(self):
        upstream = Upstream()
        upstream.add(TOGETHER, completion("Fallback answer"))

        result = asyncio.run(_router(upstream).generate(HISTORY, use_tools=True, skip_primary=True))

        assert result.provider == "together"
        assert upstream.calls(DEEPSEEK) == []

    def test_skip_primary_without_fallback(self):
        upstream = Upstream()

        with pytest.raises(NoProviderAvailable) as exc:
            asyncio.run(_router(upstream, fallback=False).generate(HISTORY, skip_primary=True))
        assert exc.value.configured is True
        assert upstream.requests == []

    def test_everything_fails(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, httpx.Response(500))
        upstream.add(TOGETHER, httpx.Response(200, json={}))

        with pytest.raises(NoProviderAvailable) as exc:
            asyncio.run(_router(upstream).generate(HISTORY))
        assert exc.value.configured is True

    def test_nothing_configured(self):
        upstream = Upstream()

        with pytest.raises(NoProviderAvailable) as exc:
            asyncio.run(_router(upstream, primary=False, fallback=False).generate(HISTORY))
        assert exc.value.configured is False
        assert str(exc.value) == "No LLM configured"
        assert upstream.requests == []

    def test_tool_round_trip(self):
        upstream = Upstream()
        upstream.add(
            DEEPSEEK,
            completion("Let me check.", [tool_call("web_search", {"query": "roof storm season"})]),
            completion("Storm season peaks in spring, per Weather Desk."),
        )
        upstream.add(TAVILY, search_results(("Weather Desk", "Storms peak in spring.", "https://example.com/w")))

        result = asyncio.run(_router(upstream).generate(HISTORY, use_tools=True))

        assert result.content == "Storm season peaks in spring, per Weather Desk."
        assert [m["role"] for m in result.trace] == ["assistant", "tool"]
        assert result.trace[0]["content"] == "Let me check."
        assert "Weather Desk" in result.trace[1]["content"]

        synthesis = upstream.bodies(DEEPSEEK)[1]
        assert "tools" not in synthesis
        assert "CRITICAL RULES FOR WEB SEARCH" in synthesis["messages"][0]["content"]
        assert synthesis["messages"][-2]["tool_calls"][0]["id"] == "call_0"
        assert synthesis["messages"][-1]["tool_call_id"] == "call_0"

    def test_failed_synthesis_falls_back_without_trace(self):
        upstream = Upstream()
        upstream.add(
            DEEPSEEK,
            completion(None, [tool_call("web_search", {"query": "x"})]),
            httpx.Response(500),
        )
        upstream.add(TAVILY, search_results())
        upstream.add(TOGETHER, completion("Plain answer"))

        result = asyncio.run(_router(upstream).generate(HISTORY, use_tools=True))

        assert result.provider == "together"
        assert result.trace == []
        assert upstream.bodies(TOGETHER)[0]["messages"][1:] == HISTORY


class TestStream:
    def test_fragments_in_order(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, sse_stream("Hel", "lo"))
        router = _router(upstream)

        async def collect():
            return [f async for f in router.stream(router.config.primary, HISTORY)]

        assert asyncio.run(collect()) == ["Hel", "lo"]
        assert upstream.bodies(DEEPSEEK)[0]["stream"] is True

    def test_ignores_keepalives_and_bad_lines(self):
        upstream = Upstream()
        body = (
            b": keep-alive\n\n"
            b"data: not json\n\n"
            b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n'
            b'data: {"choices":[{"delta":{"content":"ok"}}]}\n\n'
            b"data: [DONE]\n\n"
        )
        upstream.add(DEEPSEEK, httpx.Response(200, content=body))
        router = _router(upstream)

        async def collect():
            return [f async for f in router.stream(router.config.primary, HISTORY)]

        assert asyncio.run(collect()) == ["ok"]

    def test_error_status(self):
        upstream = Upstream()
        upstream.add(DEEPSEEK, httpx.Response(401, text="bad key"))
        router = _router(upstream)

        async def collect():
            return [f async for f in router.stream(router.config.primary, HISTORY)]

        with pytest.raises(ProviderError):
            asyncio.run(collect())
