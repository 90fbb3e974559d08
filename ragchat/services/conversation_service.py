"""
Chat message log.
Messages are append-only and read back newest first.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..logging_config import logger


def new_message_id() -> str:
    return f"msg-{uuid.uuid4().hex}"


def store_message(
    engine: Engine,
    user_id: str,
    role: str,
    content: str,
    images: Optional[List[str]] = None,
) -> str:
    """
    Append a message to the owner's log.

    Args:
        engine: Primary store engine
        user_id: Owner id (the user row must exist)
        role: "user" or "assistant"
        content: The message text
        images: Optional image references attached to the message

    Returns:
        The new message id
    """
    message_id = new_message_id()
    with engine.begin() as conn:
        conn.execute(
            text("""
                INSERT INTO chat_messages (id, user_id, role, content, images)
                VALUES (:id, :uid, :role, :content, :images)
            """),
            {
                "id": message_id,
                "uid": user_id,
                "role": role,
                "content": content,
                "images": images or None,
            },
        )
    logger.debug("Stored message", user_id=user_id, role=role)
    return message_id


def get_messages(engine: Engine, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
    with engine.begin() as conn:
        rows = conn.execute(
            text("""
                SELECT id, role, content, images, created_at
                FROM chat_messages
                WHERE user_id = :uid
                ORDER BY created_at DESC
                LIMIT :limit
            """),
            {"uid": user_id, "limit": limit},
        ).mappings().all()

    messages = []
    for row in rows:
        msg = dict(row)
        if msg.get("created_at"):
            msg["created_at"] = msg["created_at"].isoformat()
        msg["images"] = list(msg.get("images") or [])
        messages.append(msg)
    return messages


def delete_messages(engine: Engine, user_id: str) -> None:
    with engine.begin() as conn:
        conn.execute(
            text("DELETE FROM chat_messages WHERE user_id = :uid"),
            {"uid": user_id},
        )
    logger.info("Deleted chat history", user_id=user_id)
