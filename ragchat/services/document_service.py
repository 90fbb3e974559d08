"""
Document records and their chunk listings.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError
from ..logging_config import logger


def create_document(
    engine: Engine,
    document_id: str,
    user_id: str,
    file_name: str,
    file_type: str,
    file_size: int,
    original_text: str,
) -> None:
    """
    Insert a document row. The owning user must already exist.

    Raises:
        StorageError: If the insert fails
    """
    try:
        with engine.begin() as conn:
            conn.execute(
                text("""
                    INSERT INTO documents (id, user_id, file_name, file_type, file_size, original_text)
                    VALUES (:id, :uid, :fn, :ft, :sz, :txt)
                """),
                {
                    "id": document_id,
                    "uid": user_id,
                    "fn": file_name,
                    "ft": file_type,
                    "sz": file_size,
                    "txt": original_text,
                },
            )
    except SQLAlchemyError as e:
        logger.error("Document creation failed", document_id=document_id, user_id=user_id, error=str(e))
        raise StorageError("Database error", details={"details": "Document creation failed"}) from e
    logger.info("Document created", document_id=document_id, file_name=file_name)


def list_documents(engine: Engine, user_id: str) -> List[Dict[str, Any]]:
    """
    Returns the owner's documents with chunk counts, newest first.
    """
    with engine.begin() as conn:
        rows = conn.execute(
            text("""
                SELECT d.id,
                       d.file_name,
                       d.file_type,
                       d.file_size,
                       d.created_at,
                       COALESCE(COUNT(c.id), 0) AS num_chunks
                FROM documents d
                LEFT JOIN chunks c ON c.document_id = d.id
                WHERE d.user_id = :uid
                GROUP BY d.id
                ORDER BY d.created_at DESC
            """),
            {"uid": user_id},
        ).mappings().all()
    return [dict(r) for r in rows]


def get_document(engine: Engine, document_id: str) -> Optional[Dict[str, Any]]:
    with engine.begin() as conn:
        row = conn.execute(
            text("""
                SELECT id, user_id, file_name, file_type, file_size, created_at
                FROM documents WHERE id = :id
            """),
            {"id": document_id},
        ).mappings().first()
    return dict(row) if row else None


def delete_document(engine: Engine, document_id: str, user_id: str) -> bool:
    """
    Delete an owner's document; its chunks go with it (ON DELETE CASCADE).

    Returns:
        False if no such document belongs to the owner
    """
    with engine.begin() as conn:
        result = conn.execute(
            text("DELETE FROM documents WHERE id = :id AND user_id = :uid"),
            {"id": document_id, "uid": user_id},
        )
    deleted = result.rowcount > 0
    if deleted:
        logger.info("Document deleted", document_id=document_id)
    return deleted
