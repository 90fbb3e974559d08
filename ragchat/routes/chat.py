"""
Chat-related API routes.
Handles the streamed RAG chat turn and the per-owner message log.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse

from ..dependencies import AppContext, get_app_context
from ..errors import RagChatError, ValidationError
from ..logging_config import logger
from ..schemas import ChatBody
from ..services.conversation_service import delete_messages, get_messages
from ..services.rag_service import handle_chat, replay

router = APIRouter(prefix="/api", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _require_owner(user_id: Optional[str]) -> str:
    if not user_id:
        raise ValidationError("Unauthorized", status_code=401)
    return user_id


@router.post("/chat")
async def chat(payload: ChatBody, ctx: AppContext = Depends(get_app_context)):
    """
    Streaming RAG endpoint using Server-Sent Events (SSE).

    Workflow:
    1. Ensure the owner exists
    2. Retrieve context for the last message
    3. Open the upstream completion stream
    4. Store the user message
    5. Relay normalized text-delta events, then [DONE]

    Failures before the first event come back as a JSON error.
    """
    logger.info(
        "Chat request received",
        user_id=payload.user_id,
        messages=len(payload.messages),
        images=len(payload.images or []),
    )
    stream = handle_chat(ctx, payload.user_id, payload.messages, payload.images)
    try:
        first = await stream.__anext__()
    except StopAsyncIteration:
        return JSONResponse({"error": "Empty response from completion service"}, status_code=500)
    except RagChatError as e:
        logger.error("Chat request failed", user_id=payload.user_id, error=e.message)
        return JSONResponse(e.to_body(), status_code=e.status_code)
    except Exception as e:
        logger.error("Error processing chat request", exc_info=e, user_id=payload.user_id)
        return JSONResponse({"error": "Error processing chat request"}, status_code=500)

    return StreamingResponse(
        replay(first, stream),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/messages")
async def list_messages(
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    ctx: AppContext = Depends(get_app_context),
):
    """Chat history for the owner, newest first."""
    owner = _require_owner(user_id)
    messages = await run_in_threadpool(
        get_messages, ctx.engine, owner, limit or ctx.settings.history_limit
    )
    return {"messages": messages}


@router.delete("/messages")
async def clear_messages(
    user_id: Optional[str] = Query(None, alias="userId"),
    ctx: AppContext = Depends(get_app_context),
):
    owner = _require_owner(user_id)
    await run_in_threadpool(delete_messages, ctx.engine, owner)
    return {"ok": True}
