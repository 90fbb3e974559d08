"""
Streaming chat completions from an OpenAI-compatible endpoint (OpenRouter),
and translation of the SDK's chunk stream into normalized text-delta events.
"""
import json
from typing import AsyncIterator, Dict, List, Optional, Union

import httpx
from openai import APIError, APIStatusError, AsyncOpenAI

from .errors import CompletionError
from .logging_config import logger

DONE = "[DONE]"


def text_delta(text: str) -> Dict:
    return {"type": "text-delta", "delta": {"text": text}}


def to_sse(event: Union[Dict, str]) -> str:
    if event == DONE:
        return f"data: {DONE}\n\n"
    return f"data: {json.dumps(event)}\n\n"


def chunk_text_delta(chunk) -> Optional[str]:
    """Text carried by one streamed chunk; None for role-only or empty chunks."""
    choices = getattr(chunk, "choices", None) or []
    if not choices or choices[0].delta is None:
        return None
    return choices[0].delta.content or None


async def normalize_stream(chunks: AsyncIterator) -> AsyncIterator[Union[Dict, str]]:
    """
    Yields one text-delta event per upstream delta, in arrival order,
    then a single DONE once the upstream finishes.
    """
    async for chunk in chunks:
        delta = chunk_text_delta(chunk)
        if delta:
            yield text_delta(delta)
    yield DONE


class CompletionClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://openrouter.ai/api/v1",
        app_url: str = "http://localhost:3000",
        app_title: str = "AI RAG Chat",
        temperature: float = 0.7,
        max_tokens: int = 1024,
        connect_timeout: float = 10.0,
        read_timeout: float = 120.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.temperature = temperature
        self.max_tokens = max_tokens
        if client is None and api_key:
            # read_timeout bounds the gap between chunks, not the whole reply
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                max_retries=0,
                timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
                default_headers={"HTTP-Referer": app_url, "X-Title": app_title},
            )
        self._client = client

    async def stream(self, model: str, messages: List[Dict]) -> AsyncIterator:
        """
        Stream completion chunks for ``messages``.

        Raises CompletionError on the first iteration if the request is rejected
        or the service is unreachable, and mid-stream if the connection drops.
        """
        if self._client is None:
            raise CompletionError("OPENROUTER_API_KEY is not set")

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=True,
            )
        except APIStatusError as e:
            logger.error("Completion API error", status=e.status_code, body=str(e.body)[:500])
            raise CompletionError("Error processing chat request") from e
        except APIError as e:
            logger.error("Completion service unreachable", error=str(e))
            raise CompletionError("Completion service unreachable") from e

        logger.info("Completion stream opened", model=model)
        try:
            async for chunk in response:
                yield chunk
        except (APIError, httpx.HTTPError) as e:
            raise CompletionError("Completion stream interrupted") from e
