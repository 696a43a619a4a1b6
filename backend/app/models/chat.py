from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(CamelModel):
    # Untyped so a missing or non-string message gets the chat error shape, not a 422.
    message: Any = None
    conversation_id: str | None = None
    use_web_search: bool = False
    stream: bool = True
    local: bool = False


class MessageOut(CamelModel):
    message_id: str
    conversation_id: str
    role: str
    content: str
    tool_calls: list[dict] | None = None
    tool_call_id: str | None = None
    name: str | None = None
    referenced_pain_points: list[int] | None = None
    provider: str | None = None
    created_at: datetime


class ConversationOut(CamelModel):
    conversation_id: str
    title: str | None
    created_at: datetime
    updated_at: datetime


class ConversationDetail(ConversationOut):
    messages: list[MessageOut]


class ChatReply(CamelModel):
    message: MessageOut
    conversation_id: str
    provider: str
