"""
Process-wide collaborators, built once by the application entry point and
handed to request handlers through FastAPI's dependency injection.
"""
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request

from .completion_client import CompletionClient
from .config import Settings
from .db import create_db_engine
from .embedding import EmbeddingClient
from .logging_config import logger
from .retrieval import ContextRetriever
from .vector_store import DualVectorStore, PgVectorStore, PineconeIndex


@dataclass
class AppContext:
    settings: Settings
    engine: Any
    embedder: Any
    store: Any
    retriever: Any
    completion: Any


def build_context(settings: Settings) -> AppContext:
    engine = create_db_engine(settings.database_url)
    headers = {"HTTP-Referer": settings.app_url, "X-Title": settings.app_title}

    embedder = EmbeddingClient(
        api_key=settings.openrouter_api_key,
        model=settings.embedding_model,
        base_url=settings.openrouter_base_url,
        dimensions=settings.embedding_dimensions,
        max_chars=settings.embedding_max_chars,
        default_headers=headers,
    )
    if not settings.openrouter_api_key:
        logger.warning("OPENROUTER_API_KEY not set, embeddings and completions disabled")

    secondary: Optional[PineconeIndex] = None
    if settings.secondary_index_enabled:
        secondary = PineconeIndex(
            api_key=settings.pinecone_api_key,
            host=settings.pinecone_index_host,
            namespace=settings.pinecone_namespace,
        )
        logger.info("Pinecone secondary index enabled", host=settings.pinecone_index_host)
    else:
        logger.warning("Pinecone not configured, secondary index disabled")

    store = DualVectorStore(
        PgVectorStore(engine, settings.embedding_dimensions),
        secondary,
        dimensions=settings.embedding_dimensions,
    )
    retriever = ContextRetriever(embedder, store, top_k=settings.retrieval_top_k)
    completion = CompletionClient(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        app_url=settings.app_url,
        app_title=settings.app_title,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
    )
    return AppContext(
        settings=settings,
        engine=engine,
        embedder=embedder,
        store=store,
        retriever=retriever,
        completion=completion,
    )


def get_app_context(request: Request) -> AppContext:
    return request.app.state.context
