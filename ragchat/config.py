"""
Application configuration.
Values come from the process environment; a local .env is loaded for development.
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()  # loads .env in local dev; no effect in Docker if env vars provided


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the RAG pipeline and its collaborators."""

    database_url: Optional[str] = None

    # OpenRouter (embedding + completion services)
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    app_url: str = "http://localhost:3000"
    app_title: str = "AI RAG Chat"

    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_max_chars: int = 8000

    text_model: str = "microsoft/phi-3-medium-128k-instruct"
    vision_model: str = "google/gemini-flash-1.5"
    temperature: float = 0.7
    max_tokens: int = 1024

    # Pinecone secondary index (optional)
    pinecone_api_key: Optional[str] = None
    pinecone_index_host: Optional[str] = None
    pinecone_namespace: str = ""

    chunk_size: int = 1000
    chunk_overlap: int = 200
    retrieval_top_k: int = 10
    max_image_bytes: int = 10 * 1024 * 1024
    history_limit: int = 50

    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def secondary_index_enabled(self) -> bool:
        return bool(self.pinecone_api_key and self.pinecone_index_host)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
            openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", cls.openrouter_base_url),
            app_url=os.getenv("APP_URL") or os.getenv("NEXT_PUBLIC_APP_URL") or cls.app_url,
            app_title=os.getenv("APP_TITLE", cls.app_title),
            embedding_model=os.getenv("EMBEDDING_MODEL", cls.embedding_model),
            embedding_dimensions=_env_int("EMBEDDING_DIMENSIONS", cls.embedding_dimensions),
            embedding_max_chars=_env_int("EMBEDDING_MAX_CHARS", cls.embedding_max_chars),
            text_model=os.getenv("TEXT_MODEL", cls.text_model),
            vision_model=os.getenv("VISION_MODEL", cls.vision_model),
            temperature=_env_float("COMPLETION_TEMPERATURE", cls.temperature),
            max_tokens=_env_int("COMPLETION_MAX_TOKENS", cls.max_tokens),
            pinecone_api_key=os.getenv("PINECONE_API_KEY") or None,
            pinecone_index_host=os.getenv("PINECONE_INDEX_HOST") or None,
            pinecone_namespace=os.getenv("PINECONE_NAMESPACE", cls.pinecone_namespace),
            chunk_size=_env_int("CHUNK_SIZE", cls.chunk_size),
            chunk_overlap=_env_int("CHUNK_OVERLAP", cls.chunk_overlap),
            retrieval_top_k=_env_int("RETRIEVAL_TOP_K", cls.retrieval_top_k),
            max_image_bytes=_env_int("MAX_IMAGE_BYTES", cls.max_image_bytes),
            history_limit=_env_int("HISTORY_LIMIT", cls.history_limit),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            json_logs=_env_bool("JSON_LOGS", cls.json_logs),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
