"""
Main FastAPI application entry point.
Responsibilities: App setup, router registration, startup/shutdown hooks.
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .db.migrations import run_sql_migrations
from .dependencies import AppContext, build_context
from .errors import RagChatError
from .logging_config import logger, setup_logging
from .routes import chat, documents, models


async def rag_error_handler(request: Request, exc: RagChatError):
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    logger.warning("Rejected malformed request", path=request.url.path, errors=len(errors))
    return JSONResponse({"error": message}, status_code=400)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application. When no context is given one is built from the
    environment at startup, after running migrations.
    """
    app = FastAPI(title="RAG Chat", version=__version__)
    app.state.context = context

    app.add_exception_handler(RagChatError, rag_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(chat.router)
    app.include_router(documents.router)
    app.include_router(models.router)

    @app.on_event("startup")
    async def startup_event():
        """Build clients and initialize the database on startup."""
        if app.state.context is not None:
            return
        settings = get_settings()
        setup_logging(settings.log_level, settings.json_logs)
        app.state.context = build_context(settings)

        logger.info("Running database migrations...")
        run_sql_migrations(app.state.context.engine)
        logger.info("Database migrations completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release pooled database connections."""
        ctx = app.state.context
        if ctx is not None and hasattr(ctx.engine, "dispose"):
            ctx.engine.dispose()
        logger.info("Application shutting down")

    return app


app = create_app()
