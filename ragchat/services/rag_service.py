"""
RAG (Retrieval-Augmented Generation) chat service.
Handles context retrieval, prompt assembly and streaming responses.
"""
import time
from typing import AsyncGenerator, AsyncIterator, Dict, List, Optional, Sequence

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from ..completion_client import DONE, normalize_stream, to_sse
from ..errors import CompletionError, ValidationError
from ..logging_config import logger
from ..schemas import ChatTurn
from .conversation_service import store_message
from .model_service import select_model
from .user_service import ensure_user

CONTEXT_PROMPT = (
    "You are a helpful AI assistant. Use the following context to answer questions when relevant:\n\n"
    "{context}\n\n"
    "If the context doesn't contain relevant information, answer based on your general knowledge."
)

NO_CONTEXT_PROMPT = (
    "You are a helpful AI assistant. No relevant document context was found for this question, "
    "so answer based on your general knowledge."
)


def build_context_message(context: str) -> Dict:
    """System message carrying the retrieved context; present even when empty."""
    if context:
        return {"role": "system", "content": CONTEXT_PROMPT.format(context=context)}
    return {"role": "system", "content": NO_CONTEXT_PROMPT}


def build_messages(turns: Sequence[ChatTurn], images: Sequence[str], context: str) -> List[Dict]:
    """
    Provider message list: the context message, then the conversation.
    Images are attached to the last turn as multimodal content parts, which
    keeps an image-only turn even when its text is empty.
    """
    messages = [build_context_message(context)]
    last_index = len(turns) - 1
    for index, turn in enumerate(turns):
        role = "assistant" if turn.role == "assistant" else "user"
        if role == "user" and images and index == last_index:
            content = [{"type": "text", "text": turn.content}] if turn.content else []
            content.extend({"type": "image_url", "image_url": {"url": img}} for img in images)
            messages.append({"role": role, "content": content})
        elif turn.content:
            messages.append({"role": role, "content": turn.content})
    return messages


async def _persist_message(ctx, owner_id: str, role: str, content: str, images: Optional[List[str]] = None) -> None:
    """Best-effort write to the chat log; failures are logged, not raised."""
    try:
        await run_in_threadpool(store_message, ctx.engine, owner_id, role, content, images)
    except SQLAlchemyError as e:
        logger.error("Error storing chat message", user_id=owner_id, role=role, error=str(e))


async def replay(first, rest: AsyncIterator) -> AsyncIterator:
    yield first
    async for event in rest:
        yield event


async def handle_chat(
    ctx,
    owner_id: Optional[str],
    turns: Sequence[ChatTurn],
    images: Optional[List[str]] = None,
) -> AsyncGenerator[str, None]:
    """
    Orchestrates one chat turn and yields SSE frames.

    All setup, up to and including the first upstream event, runs before the
    first frame is produced, so callers can prime the generator and turn early
    failures into a JSON error response.

    Yields:
        ``data: {"type": "text-delta", ...}`` frames in upstream order, then ``data: [DONE]``
    """
    start_time = time.time()
    if not owner_id:
        raise ValidationError("Unauthorized", status_code=401)
    if not turns:
        raise ValidationError("No messages provided")
    images = [img for img in (images or []) if img]

    # Child rows reference the user; make sure it exists before any write
    await run_in_threadpool(ensure_user, ctx.engine, owner_id)

    last_turn = turns[-1]
    context = await ctx.retriever.retrieve_context(last_turn.content)

    messages = build_messages(turns, images, context)
    model = select_model(ctx.settings, bool(images))
    logger.info(
        "Processing chat turn",
        user_id=owner_id,
        model=model,
        history_turns=len(turns),
        images=len(images),
        context_chars=len(context),
    )

    events = normalize_stream(ctx.completion.stream(model, messages))
    first = await events.__anext__()

    await _persist_message(ctx, owner_id, "user", last_turn.content, images or None)

    reply_parts: List[str] = []
    finished = False
    try:
        async for event in replay(first, events):
            if event == DONE:
                finished = True
            else:
                reply_parts.append(event["delta"]["text"])
            yield to_sse(event)
    except CompletionError as e:
        # Headers are already sent; end the stream early
        logger.error("Stream error", user_id=owner_id, error=str(e))

    reply = "".join(reply_parts).strip()
    if finished and reply:
        await _persist_message(ctx, owner_id, "assistant", reply)

    elapsed_ms = round((time.time() - start_time) * 1000, 2)
    logger.info("Chat turn completed", time_ms=elapsed_ms, finished=finished, reply_chars=len(reply))
