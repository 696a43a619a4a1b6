from functools import lru_cache

import tiktoken
from loguru import logger

from app.core.knowledge import format_knowledge_base

# Hard limit for a single user message.
MAX_MESSAGE_TOKENS = 8000

_PREAMBLE = """You are GuardianAI, an expert strategic advisor for Guardian Roofing & Siding.
You have deep knowledge of the company's 10 strategic pain points for 2026 and can provide insights, recommendations, and action plans.

Your capabilities:
1. Answer questions about any of the 10 pain points
2. Provide prioritization recommendations
3. Suggest quick wins and implementation strategies
4. Help create 90-day initiative plans
5. Identify dependencies between pain points
6. Calculate potential ROI and impact"""

_WITH_TOOLS = """
7. **Search the web** for real-time information, industry trends, competitive intelligence, and best practices

CRITICAL RULES FOR WEB SEARCH:
- When you use web_search, ONLY report information that is EXPLICITLY stated in the search results
- NEVER fill in gaps with assumed or hallucinated information
- If the search results don't contain specific information, say "I couldn't find specific information about [topic]"
- Always cite your sources when using web search results
- If search results are unclear or conflicting, acknowledge the uncertainty

When you need current information (market trends, pricing, regulations, case studies, tools), use the web_search function.

Always be:
- Concise and actionable
- Focused on business outcomes
- Specific with recommendations
- Aware of resource constraints
- HONEST about what you found vs. didn't find"""

_WITHOUT_TOOLS = """

IMPORTANT: You do NOT have access to the internet or web search. If asked about current events, specific people (like CEOs), or real-time information you don't have, clearly state: "I don't have access to search the web for this information. I can only help with Guardian Roofing's 10 strategic pain points."

Always be:
- Concise and actionable
- Focused on business outcomes
- Specific with recommendations
- Aware of resource constraints
- HONEST about what you don't know"""

_KNOWLEDGE = """

Here is your knowledge base of Guardian Roofing's 10 Pain Points:

{knowledge}

When referencing pain points, always cite them by number (e.g., "Pain Point #1: Lead Intake").
Format responses with clear headers and bullet points for readability."""


@lru_cache()
def _encoding() -> tiktoken.Encoding:
    return tiktoken.get_encoding("cl100k_base")


def count_tokens_text(text: str) -> int:
    """Count tokens in a plain string."""
    return len(_encoding().encode(text))


def message_token_count(message: str) -> int | None:
    """
    Token count of a user message when it is over MAX_MESSAGE_TOKENS, else None.

    Every token covers at least one UTF-8 byte, so messages with fewer bytes
    than the limit are accepted without encoding them.
    """
    if len(message.encode("utf-8")) <= MAX_MESSAGE_TOKENS:
        return None
    tokens = count_tokens_text(message)
    if tokens > MAX_MESSAGE_TOKENS:
        logger.warning("[context] message rejected: {} tokens > {}", tokens, MAX_MESSAGE_TOKENS)
        return tokens
    return None


@lru_cache(maxsize=2)
def build_system_prompt(with_tools: bool) -> str:
    """
    with_tools selects the web-search prompt. It is also used when
    synthesizing an answer from tool results, even though no tools are
    offered on that call.
    """
    body = _WITH_TOOLS if with_tools else _WITHOUT_TOOLS
    return _PREAMBLE + body + _KNOWLEDGE.format(knowledge=format_knowledge_base())


def history_for_provider(messages: list[dict]) -> list[dict]:
    """
    Replay persisted messages as provider context, oldest first.

    Only user turns and final assistant replies are sent. Tool requests and
    tool results from earlier turns were already folded into the reply that
    followed them.
    """
    history = []
    for m in messages:
        if m["role"] == "user" or (m["role"] == "assistant" and not m.get("tool_calls")):
            history.append({"role": m["role"], "content": m["content"]})
    return history
