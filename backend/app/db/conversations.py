"""
Conversation persistence.

ConversationStore is the interface the chat pipeline depends on; the
PostgreSQL implementation is used in production. Rows come back as plain
dicts with snake_case keys.
"""

import asyncio
import json
import uuid
import weakref

from loguru import logger

from app.core.context import count_tokens_text
from app.db import postgres

RECENT_LIMIT = 20
TITLE_LENGTH = 50


def new_conversation_id() -> str:
    return f"conv_{uuid.uuid4().hex[:16]}"


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:16]}"


def title_from_message(message: str) -> str:
    title = message[:TITLE_LENGTH].strip()
    if len(message) > TITLE_LENGTH:
        title += "..."
    return title


class ConversationStore:
    """
    Turns on one conversation are serialized through lock(): a turn reads the
    full history and appends to it, so two concurrent submissions must not
    interleave.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    async def create_conversation(self, title: str) -> dict:
        raise NotImplementedError

    async def get_conversation(self, conversation_id: str) -> dict | None:
        raise NotImplementedError

    async def get_messages(self, conversation_id: str) -> list[dict]:
        raise NotImplementedError

    async def list_recent(self, limit: int = RECENT_LIMIT) -> list[dict]:
        raise NotImplementedError

    async def append_messages(self, conversation_id: str, messages: list[dict]) -> list[dict]:
        """Persist messages in order, atomically. Returns the stored rows."""
        raise NotImplementedError


def _message_row(row) -> dict:
    data = dict(row)
    for key in ("tool_calls", "referenced_pain_points"):
        if isinstance(data.get(key), str):
            data[key] = json.loads(data[key])
    return data


class PostgresConversationStore(ConversationStore):
    async def create_conversation(self, title: str) -> dict:
        row = await postgres.fetch_one(
            """INSERT INTO conversations (conversation_id, title)
               VALUES ($1, $2)
               RETURNING conversation_id, title, created_at, updated_at""",
            new_conversation_id(),
            title,
        )
        logger.debug("Created conversation {}", row["conversation_id"])
        return dict(row)

    async def get_conversation(self, conversation_id: str) -> dict | None:
        row = await postgres.fetch_one(
            """SELECT conversation_id, title, created_at, updated_at
               FROM conversations WHERE conversation_id = $1""",
            conversation_id,
        )
        return dict(row) if row else None

    async def get_messages(self, conversation_id: str) -> list[dict]:
        rows = await postgres.fetch_all(
            """SELECT message_id, conversation_id, role, content, tool_calls, tool_call_id,
                      name, referenced_pain_points, provider, created_at
               FROM messages WHERE conversation_id = $1 ORDER BY id ASC""",
            conversation_id,
        )
        return [_message_row(r) for r in rows]

    async def list_recent(self, limit: int = RECENT_LIMIT) -> list[dict]:
        rows = await postgres.fetch_all(
            """SELECT conversation_id, title, created_at, updated_at
               FROM conversations
               ORDER BY updated_at DESC
               LIMIT $1""",
            limit,
        )
        return [dict(r) for r in rows]

    async def append_messages(self, conversation_id: str, messages: list[dict]) -> list[dict]:
        stored = []
        new_tokens = 0
        async with postgres.transaction() as conn:
            for m in messages:
                row = await conn.fetchrow(
                    """INSERT INTO messages (message_id, conversation_id, role, content, tool_calls,
                                             tool_call_id, name, referenced_pain_points, provider)
                       VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7, $8::jsonb, $9)
                       RETURNING message_id, conversation_id, role, content, tool_calls, tool_call_id,
                                 name, referenced_pain_points, provider, created_at""",
                    new_message_id(),
                    conversation_id,
                    m["role"],
                    m.get("content") or "",
                    json.dumps(m["tool_calls"]) if m.get("tool_calls") else None,
                    m.get("tool_call_id"),
                    m.get("name"),
                    json.dumps(m["referenced_pain_points"]) if m.get("referenced_pain_points") is not None else None,
                    m.get("provider"),
                )
                stored.append(_message_row(row))
                new_tokens += count_tokens_text(m.get("content") or "")

            await conn.execute(
                """UPDATE conversations SET
                       token_count   = token_count + $1,
                       message_count = message_count + $2,
                       updated_at    = NOW()
                   WHERE conversation_id = $3""",
                new_tokens,
                len(messages),
                conversation_id,
            )
        return stored
