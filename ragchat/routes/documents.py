"""
Document management API routes.
Handles document upload, listing, chunk inspection and deletion.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..dependencies import AppContext, get_app_context
from ..errors import ValidationError
from ..logging_config import bind_request_context, logger
from ..services.document_service import delete_document as remove_document
from ..services.document_service import get_document, list_documents as fetch_documents
from ..services.ingestion_service import ingest_file

router = APIRouter(prefix="/api", tags=["documents"])


# ==================== Document Upload ====================

@router.post("/upload")
async def upload_document(
    file: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Form(None, alias="userId"),
    ctx: AppContext = Depends(get_app_context),
):
    """
    Upload one document or image.

    Supported formats: PDF, DOCX, DOC, TXT and common image types.

    Process:
    1. Extract text from the file (images become data URLs and stop here)
    2. Split text into chunks
    3. Embed and store each chunk

    Returns:
        Per-chunk success/failure counts and a preview of the extracted text
    """
    if file is None:
        raise ValidationError("No file provided")
    if not user_id:
        raise ValidationError("User ID is required", status_code=401)

    data = await file.read()
    with bind_request_context(user_id=user_id, file_name=file.filename):
        result = await ingest_file(
            ctx,
            owner_id=user_id,
            file_name=file.filename or "upload",
            mime_type=file.content_type or "",
            data=data,
        )
    return JSONResponse(result.model_dump(by_alias=True, exclude_none=True))


# ==================== Document Listing ====================

@router.get("/documents")
async def list_documents(
    user_id: Optional[str] = Query(None, alias="userId"),
    ctx: AppContext = Depends(get_app_context),
):
    """
    Returns the owner's documents with chunk counts.
    """
    if not user_id:
        raise ValidationError("User ID is required", status_code=401)
    documents = await run_in_threadpool(fetch_documents, ctx.engine, user_id)
    logger.info("Listed documents", user_id=user_id, count=len(documents))
    return {"documents": documents}


@router.get("/documents/{doc_id}/chunks")
async def list_document_chunks(
    doc_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    ctx: AppContext = Depends(get_app_context),
):
    """Stored chunks of one document in chunk_index order."""
    if not user_id:
        raise ValidationError("User ID is required", status_code=401)
    document = await run_in_threadpool(get_document, ctx.engine, doc_id)
    if not document or document["user_id"] != user_id:
        return JSONResponse({"error": "Document not found"}, status_code=404)
    chunks = await run_in_threadpool(ctx.store.primary.chunks_for_document, doc_id)
    return {"document_id": doc_id, "chunks": chunks}


# ==================== Document Deletion ====================

@router.delete("/documents/{doc_id}")
async def delete_document(
    doc_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    ctx: AppContext = Depends(get_app_context),
):
    """
    Deletes a document and all its chunks (ON DELETE CASCADE).
    The secondary index keeps its shadow copies; it is not authoritative.
    """
    if not user_id:
        raise ValidationError("User ID is required", status_code=401)
    with bind_request_context(user_id=user_id, document_id=doc_id):
        deleted = await run_in_threadpool(remove_document, ctx.engine, doc_id, user_id)
        if not deleted:
            logger.warning("Document not found for deletion")
            return JSONResponse({"error": "Document not found"}, status_code=404)
    return {"ok": True, "deleted": doc_id}
