"""Shared pytest fixtures and in-memory collaborators."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from openai.types.chat import ChatCompletionChunk
from openai.types.chat.chat_completion_chunk import Choice, ChoiceDelta

from ragchat.config import Settings
from ragchat.dependencies import AppContext
from ragchat.errors import EmbeddingError
from ragchat.retrieval import ContextRetriever
from ragchat.vector_store import DualVectorStore

DIMS = 1536


def vector(value: float = 0.1, dims: int = DIMS) -> list[float]:
    return [value] * dims


class FakeEmbedder:
    """Returns a constant vector; fails on the call numbers listed in ``fail_on``."""

    def __init__(self, dims: int = DIMS, fail_on: set[int] | None = None):
        self.dims = dims
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        index = len(self.calls)
        self.calls.append(text)
        if index in self.fail_on:
            raise EmbeddingError("Embedding API failed (500)")
        return vector(0.1, self.dims)


class FakePrimary:
    """Dict-backed stand-in for PgVectorStore, keyed by record id."""

    def __init__(self, rows: list[dict] | None = None):
        self.rows: dict[str, dict] = {}
        self.search_calls = 0
        for row in rows or []:
            self.rows[row["id"]] = row

    def upsert(self, record_id, document_id, chunk_index, content, vector, metadata):
        self.rows[record_id] = {
            "id": record_id,
            "document_id": document_id,
            "chunk_index": chunk_index,
            "content": content,
            "embedding": list(vector),
            "metadata": json.loads(json.dumps(metadata)),
        }

    def search(self, vector, top_k=5):
        self.search_calls += 1
        rows = []
        for row in self.rows.values():
            score = 1 + sum(a * b for a, b in zip(row.get("embedding") or [], vector))
            rows.append({**row, "similarity": score})
        rows.sort(key=lambda r: r["similarity"], reverse=True)
        return rows[:top_k]

    def chunks_for_document(self, document_id):
        rows = [r for r in self.rows.values() if r["document_id"] == document_id]
        return sorted(rows, key=lambda r: r["chunk_index"])

    def count(self):
        return len(self.rows)


class FakeSecondary:
    def __init__(self, matches: list[dict] | None = None, fail_upsert=False, fail_query=False):
        self.matches = matches or []
        self.fail_upsert = fail_upsert
        self.fail_query = fail_query
        self.upserts: list[tuple] = []
        self.queries = 0

    async def upsert(self, record_id, values, metadata):
        if self.fail_upsert:
            raise RuntimeError("Pinecone /vectors/upsert failed (503)")
        self.upserts.append((record_id, list(values), dict(metadata)))

    async def query(self, vector, top_k=5):
        self.queries += 1
        if self.fail_query:
            raise RuntimeError("Pinecone /query failed (503)")
        return self.matches[:top_k]


class FakeCompletion:
    """Replays canned completion chunks; records the request it was given."""

    def __init__(self, chunks=None, error: Exception | None = None, error_after: int | None = None):
        self.chunks = list(chunks or [])
        self.error = error
        self.error_after = error_after
        self.requests: list[tuple] = []

    async def stream(self, model, messages):
        self.requests.append((model, messages))
        if self.error is not None and self.error_after is None:
            raise self.error
        for i, chunk in enumerate(self.chunks):
            if self.error_after is not None and i == self.error_after:
                raise self.error
            yield chunk


def completion_chunk(text: str | None, role: str | None = None) -> ChatCompletionChunk:
    return ChatCompletionChunk(
        id="gen-1",
        object="chat.completion.chunk",
        created=0,
        model="test-model",
        choices=[Choice(index=0, delta=ChoiceDelta(content=text, role=role), finish_reason=None)],
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="postgresql://localhost/test",
        openrouter_api_key="sk-test",
        chunk_size=1000,
        chunk_overlap=200,
    )


@pytest.fixture
def primary() -> FakePrimary:
    return FakePrimary()


@pytest.fixture
def secondary() -> FakeSecondary:
    return FakeSecondary()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def app_context(settings, primary, secondary, embedder) -> AppContext:
    store = DualVectorStore(primary, secondary, dimensions=DIMS)
    return AppContext(
        settings=settings,
        engine=MagicMock(name="engine"),
        embedder=embedder,
        store=store,
        retriever=ContextRetriever(embedder, store, top_k=10),
        completion=FakeCompletion([completion_chunk("Hi")]),
    )
