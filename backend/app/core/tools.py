"""
web_search tool: Tavily REST API via httpx, plus execution of model tool calls.

A failed or empty search always comes back as an explicit instruction not to
invent an answer; the model never sees silence where data was expected.
"""

import json

import httpx
from loguru import logger

from app.config import SearchConfig

WEB_SEARCH_TOOL = {
    "type": "function",
    "function": {
        "name": "web_search",
        "description": (
            "Search the web for current information, industry trends, best practices, "
            "pricing, tools, or case studies. Use this when you need real-time or "
            "up-to-date information beyond the knowledge base."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query. Be specific and include relevant keywords.",
                },
            },
            "required": ["query"],
        },
    },
}

SEARCH_UNAVAILABLE = (
    "Web search unavailable (no TAVILY_API_KEY configured). "
    "DO NOT make up information - say you cannot search the web."
)
SEARCH_FAILED = "Web search failed. DO NOT make up information - tell the user the search failed."
SEARCH_ERROR = (
    "Web search encountered an error. "
    "DO NOT make up information - tell the user the search failed."
)
SEARCH_BAD_ARGUMENTS = (
    "Web search could not run because the search request was malformed. "
    "DO NOT make up information - tell the user the search failed."
)
NO_RESULTS = "No results found for this query. Tell the user you couldn't find this information.\n"
RESULTS_HEADER = (
    "IMPORTANT: Only use information explicitly stated below. If the answer isn't in "
    "these results, say \"I couldn't find specific information about that.\"\n\n"
)


def tool_unavailable(name: str) -> str:
    return (
        f"Tool '{name}' is not available. "
        "DO NOT make up information - answer without it and say what you could not look up."
    )


def format_search_results(data: dict) -> str:
    text = RESULTS_HEADER

    answer = data.get("answer")
    if answer:
        text += f"## Quick Answer\n{answer}\n\n"

    results = data.get("results") or []
    if not results:
        return text + NO_RESULTS

    text += "## Search Results\n\n"
    for n, result in enumerate(results, start=1):
        text += f"**{n}. {result.get('title', 'Untitled')}**\n"
        text += f"{result.get('content', '')}\n"
        text += f"Source: {result.get('url', '')}\n\n"
    return text


class ToolExecutor:
    def __init__(self, search: SearchConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.search = search
        self._transport = transport

    async def web_search(self, query: str) -> str:
        if not self.search.api_key:
            logger.warning("[tools] web_search requested but TAVILY_API_KEY is not set")
            return SEARCH_UNAVAILABLE

        try:
            async with httpx.AsyncClient(
                timeout=self.search.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.search.endpoint,
                    json={
                        "api_key": self.search.api_key,
                        "query": query,
                        "search_depth": self.search.search_depth,
                        "include_answer": True,
                        "max_results": self.search.max_results,
                    },
                )
                if resp.status_code != 200:
                    logger.error("Tavily error {}: {}", resp.status_code, resp.text[:300])
                    return SEARCH_FAILED
                data = resp.json()
        except Exception as e:
            logger.error("[tools] web_search failed for {!r}: {}", query, e)
            return SEARCH_ERROR

        logger.info(
            "[tools] Tavily returned {} results for {!r}", len(data.get("results") or []), query
        )
        return format_search_results(data)

    async def _run_one(self, name: str, raw_arguments: str | dict | None) -> str:
        if name != "web_search":
            logger.warning("[tools] model requested unknown tool {!r}", name)
            return tool_unavailable(name)

        try:
            arguments = (
                raw_arguments if isinstance(raw_arguments, dict) else json.loads(raw_arguments or "")
            )
        except (TypeError, ValueError) as e:
            logger.warning("[tools] malformed arguments for {}: {}", name, e)
            return SEARCH_BAD_ARGUMENTS

        query = arguments.get("query") if isinstance(arguments, dict) else None
        if not isinstance(query, str) or not query.strip():
            logger.warning("[tools] web_search called without a query: {!r}", raw_arguments)
            return SEARCH_BAD_ARGUMENTS

        logger.info("[tools] → web_search({!r})", query)
        return await self.web_search(query)

    async def execute(self, tool_calls: list[dict], content: str = "") -> list[dict]:
        """
        Run every tool call in order and return the messages to append to the
        working history: the assistant's tool request, then one tool result
        per call.
        """
        appended = [{"role": "assistant", "content": content, "tool_calls": tool_calls}]
        for call in tool_calls:
            function = call.get("function") or {}
            name = function.get("name", "")
            result = await self._run_one(name, function.get("arguments"))
            appended.append(
                {
                    "role": "tool",
                    "tool_call_id": call.get("id"),
                    "name": name,
                    "content": result,
                }
            )
        return appended
