"""
Document ingestion: extract -> chunk -> embed -> store, one chunk at a time.
"""
import uuid
from datetime import datetime, timezone

from fastapi.concurrency import run_in_threadpool

from ..chunking import chunk_text
from ..errors import EmbeddingError, ExtractionError, StorageError, ValidationError
from ..logging_config import logger
from ..schemas import IngestResult
from ..text_extraction import extract, is_image_type, is_supported_type, supported_types
from ..utils.helpers import preview_text
from .document_service import create_document
from .user_service import ensure_user


def new_document_id() -> str:
    return f"doc-{uuid.uuid4().hex}"


def chunk_record_id(document_id: str, index: int) -> str:
    return f"{document_id}-chunk-{index}"


def validate_upload(owner_id: str, mime_type: str, data: bytes) -> None:
    if not owner_id:
        raise ValidationError("User ID is required", status_code=401)
    if not data:
        raise ValidationError("No file provided")
    if not is_supported_type(mime_type):
        raise ValidationError(
            "Unsupported file type",
            details={"supportedTypes": supported_types()},
        )


async def ingest_file(ctx, owner_id: str, file_name: str, mime_type: str, data: bytes) -> IngestResult:
    """
    Turn an uploaded file into stored, retrievable chunks.

    Images are returned as data URLs and never touch storage. Documents are
    chunked and every chunk is embedded and stored in order; a chunk failure is
    counted and the upload carries on, so earlier chunks stay stored.

    Raises:
        ValidationError: missing owner, empty file, unsupported or blank document
        ExtractionError: the file could not be parsed
        StorageError: the user or document row could not be written
    """
    settings = ctx.settings
    validate_upload(owner_id, mime_type, data)
    logger.info("Processing upload", user_id=owner_id, file_name=file_name, mime_type=mime_type, size=len(data))

    if is_image_type(mime_type):
        data_url = extract(data, mime_type, max_image_bytes=settings.max_image_bytes)
        logger.info("Image processed", file_name=file_name)
        return IngestResult(
            is_image=True,
            file_name=file_name,
            file_type=mime_type,
            data_url=data_url,
        )

    try:
        text = await run_in_threadpool(extract, data, mime_type, settings.max_image_bytes)
    except ExtractionError:
        logger.error("Text extraction failed", file_name=file_name)
        raise

    if not text.strip():
        raise ValidationError("No text content found in document")

    await run_in_threadpool(ensure_user, ctx.engine, owner_id)

    document_id = new_document_id()
    await run_in_threadpool(
        create_document, ctx.engine, document_id, owner_id, file_name, mime_type, len(data), text,
    )

    chunks = list(chunk_text(text, settings.chunk_size, settings.chunk_overlap))
    logger.info("Created chunks", file_name=file_name, chunk_count=len(chunks))
    if not chunks:
        raise ValidationError("Failed to create text chunks")

    success_count = 0
    fail_count = 0
    warning_count = 0
    uploaded_at = datetime.now(timezone.utc).isoformat()

    for i, chunk in enumerate(chunks):
        record_id = chunk_record_id(document_id, i)
        try:
            vector = await ctx.embedder.embed(chunk)
            result = await ctx.store.store(
                record_id,
                vector,
                {
                    "content": chunk,
                    "document_id": document_id,
                    "chunk_index": i,
                    "file_name": file_name,
                    "file_type": mime_type,
                    "uploaded_at": uploaded_at,
                    "user_id": owner_id,
                },
            )
        except (EmbeddingError, StorageError) as e:
            fail_count += 1
            logger.error("Chunk failed", record_id=record_id, chunk_index=i, error=str(e))
            continue
        success_count += 1
        warning_count += len(result.warnings)

    logger.info(
        "Upload complete",
        document_id=document_id,
        succeeded=success_count,
        failed=fail_count,
        secondary_warnings=warning_count,
    )
    return IngestResult(
        file_name=file_name,
        file_type=mime_type,
        document_id=document_id,
        total_chunks=len(chunks),
        success_count=success_count,
        fail_count=fail_count,
        warning_count=warning_count,
        extracted_text=preview_text(text, 500),
    )
