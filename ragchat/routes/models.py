"""
Model and health API routes.
"""
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from ..dependencies import AppContext, get_app_context
from ..logging_config import logger
from ..services.model_service import get_available_models

router = APIRouter(prefix="/api", tags=["models"])


@router.get("/models")
async def list_available_models(ctx: AppContext = Depends(get_app_context)):
    """
    Return the completion models grouped by capability.

    Example response:
    {
        "text": ["microsoft/phi-3-medium-128k-instruct"],
        "vision": ["google/gemini-flash-1.5"]
    }
    """
    return get_available_models(ctx.settings)


@router.get("/health")
async def health(ctx: AppContext = Depends(get_app_context)):
    status = {
        "status": "ok",
        "secondary_index": ctx.store.secondary is not None,
    }
    try:
        status["chunks"] = await run_in_threadpool(ctx.store.primary.count)
    except SQLAlchemyError as e:
        logger.error("Health check failed", error=str(e))
        status["status"] = "degraded"
    return status
