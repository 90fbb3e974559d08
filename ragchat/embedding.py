"""
Embedding client for the hosted embedding service (OpenAI-compatible API).
"""
import re
from typing import Optional, Sequence

from openai import APIError, APIStatusError, AsyncOpenAI

from .errors import EmbeddingError
from .logging_config import logger

DEFAULT_DIMENSIONS = 1536
DEFAULT_MAX_CHARS = 8000

_WHITESPACE_RE = re.compile(r"\s+")


def validate_dimensions(vector: Optional[Sequence[float]], expected: int = DEFAULT_DIMENSIONS) -> None:
    """Reject any vector whose length is not exactly ``expected``."""
    size = len(vector) if vector is not None else 0
    if size != expected:
        raise EmbeddingError(
            f"Invalid embedding dimensions: {size}, expected {expected}"
        )


def clean_text(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """Truncate, collapse whitespace runs and trim."""
    return _WHITESPACE_RE.sub(" ", text[:max_chars]).strip()


class EmbeddingClient:
    """
    Turns text into a fixed-length vector with one service call per invocation.

    No retries happen here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "text-embedding-3-small",
        base_url: str = "https://openrouter.ai/api/v1",
        dimensions: int = DEFAULT_DIMENSIONS,
        max_chars: int = DEFAULT_MAX_CHARS,
        default_headers: Optional[dict] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.dimensions = dimensions
        self.max_chars = max_chars
        if client is None and api_key:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                max_retries=0,
                default_headers=default_headers,
            )
        self._client = client

    async def embed(self, text: str) -> list:
        """
        Embed a single text.

        Raises:
            EmbeddingError: empty input, missing credential, upstream failure,
                missing vector or wrong dimensionality
        """
        cleaned = clean_text(text or "", self.max_chars)
        if not cleaned:
            raise EmbeddingError("Empty text provided for embedding", status_code=400)
        if self._client is None:
            raise EmbeddingError("OPENROUTER_API_KEY is not set")

        logger.debug("Embedding text", chars=len(cleaned), model=self.model)
        try:
            response = await self._client.embeddings.create(model=self.model, input=cleaned)
        except APIStatusError as e:
            raise EmbeddingError(f"Embedding API failed ({e.status_code})") from e
        except APIError as e:
            raise EmbeddingError(f"Embedding API request failed: {e}") from e

        data = getattr(response, "data", None) or []
        embedding = getattr(data[0], "embedding", None) if data else None
        if not embedding:
            raise EmbeddingError("Invalid embedding response from API")

        validate_dimensions(embedding, self.dimensions)
        return list(embedding)
