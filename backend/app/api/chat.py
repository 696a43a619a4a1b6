from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger

from app.core.context import MAX_MESSAGE_TOKENS, message_token_count
from app.core.errors import NoProviderAvailable
from app.core.orchestrator import ChatOrchestrator
from app.core.relay import ALL_PROVIDERS_UNAVAILABLE, NOT_CONFIGURED
from app.models.chat import ChatReply, ChatRequest, ConversationDetail, ConversationOut, MessageOut

router = APIRouter(prefix="/api/ai/chat", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.orchestrator


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


@router.post("")
async def chat(body: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    message = body.message
    if message is not None and not isinstance(message, str):
        return _error(400, "Message must be a string")
    if not message or not message.strip():
        return _error(400, "Message is required")

    # Checked before anything is created; the status can't change once streaming starts.
    tokens = message_token_count(message)
    if tokens is not None:
        return _error(400, "message_too_long", tokens=tokens, max=MAX_MESSAGE_TOKENS)

    try:
        conversation_id = await orchestrator.resolve_conversation(body.conversation_id, message)
    except Exception as e:
        logger.exception("Failed to resolve conversation: {}", e)
        return _error(500, "Failed to process message")

    if body.stream:
        if body.local:
            events = orchestrator.stream_local(conversation_id, message)
        else:
            events = orchestrator.stream(conversation_id, message, body.use_web_search)
        return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)

    try:
        if body.local:
            saved, provider = await orchestrator.reply_local(conversation_id, message)
        else:
            saved, provider = await orchestrator.reply(conversation_id, message, body.use_web_search)
    except NoProviderAvailable as e:
        if not e.configured:
            return _error(503, NOT_CONFIGURED, setup=orchestrator.config.setup_hints())
        return _error(503, ALL_PROVIDERS_UNAVAILABLE)
    except Exception as e:
        logger.exception("Error in AI chat: {}", e)
        return _error(500, "Failed to process message")

    return ChatReply(message=MessageOut(**saved), conversation_id=conversation_id, provider=provider)


@router.get("")
async def history(
    conversation_id: str | None = Query(None, alias="conversationId"),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    store = orchestrator.store
    try:
        if conversation_id:
            conv = await store.get_conversation(conversation_id)
            if not conv:
                return _error(404, "Conversation not found")
            messages = await store.get_messages(conversation_id)
            return ConversationDetail(**conv, messages=[MessageOut(**m) for m in messages])

        rows = await store.list_recent()
        return [ConversationOut(**r) for r in rows]
    except Exception as e:
        logger.exception("Error fetching conversations: {}", e)
        return _error(500, "Failed to fetch conversations")
