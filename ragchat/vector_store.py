"""
Dual vector store: Postgres/pgvector as the store of record, with an optional
Pinecone index kept as a best-effort shadow copy and used only as a search
fallback.
"""
import json
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from fastapi.concurrency import run_in_threadpool
from pgvector.sqlalchemy import Vector
from sqlalchemy import Integer, bindparam
from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .embedding import DEFAULT_DIMENSIONS, validate_dimensions
from .errors import SecondaryStoreWarning, StorageError
from .logging_config import logger

# Metadata keys that map onto dedicated primary-store columns
RECORD_KEYS = ("content", "document_id", "chunk_index")


@dataclass
class MatchResult:
    """A search hit in the shape shared by both backing stores."""

    id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    score: float = 0.0


@dataclass
class StoreResult:
    """Outcome of a store call: the primary write succeeded, with any secondary warnings."""

    id: str
    warnings: List[SecondaryStoreWarning] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


def match_from_primary(row: Dict[str, Any]) -> MatchResult:
    metadata = row.get("metadata") or {}
    if isinstance(metadata, str):
        metadata = json.loads(metadata)
    metadata = dict(metadata)
    metadata.setdefault("document_id", row.get("document_id"))
    metadata.setdefault("chunk_index", row.get("chunk_index"))
    return MatchResult(
        id=row["id"],
        text=row.get("content") or "",
        metadata=metadata,
        score=float(row.get("similarity") or 0.0),
    )


def match_from_secondary(match: Dict[str, Any]) -> MatchResult:
    metadata = dict(match.get("metadata") or {})
    text = metadata.get("content") or metadata.get("chunk_content") or ""
    if not isinstance(text, str):
        text = ""
    return MatchResult(
        id=match["id"],
        text=text,
        metadata=metadata,
        score=float(match.get("score") or 0.0),
    )


def flatten_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Pinecone metadata accepts scalars only; JSON-encode the rest, drop nulls."""
    clean = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            clean[key] = value
        else:
            clean[key] = json.dumps(value)
    return clean


class PgVectorStore:
    """Primary store: the ``chunks`` table with a pgvector column."""

    def __init__(self, engine: Engine, dimensions: int = DEFAULT_DIMENSIONS):
        self.engine = engine
        self.dimensions = dimensions

    def upsert(
        self,
        record_id: str,
        document_id: str,
        chunk_index: int,
        content: str,
        vector: Sequence[float],
        metadata: Dict[str, Any],
    ) -> None:
        validate_dimensions(vector, self.dimensions)
        stmt = sa_text("""
            INSERT INTO chunks (id, document_id, chunk_index, content, embedding, metadata)
            VALUES (:id, :doc, :idx, :content, :emb, CAST(:meta AS JSONB))
            ON CONFLICT (id) DO UPDATE SET
                content = EXCLUDED.content,
                embedding = EXCLUDED.embedding,
                metadata = EXCLUDED.metadata
        """).bindparams(bindparam("emb", type_=Vector(self.dimensions)))
        with self.engine.begin() as conn:
            conn.execute(
                stmt,
                {
                    "id": record_id,
                    "doc": document_id,
                    "idx": chunk_index,
                    "content": content,
                    "emb": list(vector),
                    "meta": json.dumps(metadata, default=str),
                },
            )

    def search(self, vector: Sequence[float], top_k: int = 5) -> List[Dict[str, Any]]:
        """Closest rows first; similarity = 1 - (negative inner product)."""
        validate_dimensions(vector, self.dimensions)
        stmt = sa_text("""
            SELECT
                c.id,
                c.document_id,
                c.chunk_index,
                c.content,
                c.metadata,
                1 - (c.embedding <#> :qv) AS similarity
            FROM chunks c
            ORDER BY c.embedding <#> :qv
            LIMIT :k
        """).bindparams(
            bindparam("qv", type_=Vector(self.dimensions)),
            bindparam("k", type_=Integer()),
        )
        t = perf_counter()
        with self.engine.begin() as conn:
            rows = conn.execute(stmt, {"qv": list(vector), "k": top_k}).mappings().all()
        logger.info("Primary search finished", rows=len(rows), ms=round((perf_counter() - t) * 1000, 2))
        return [dict(r) for r in rows]

    def chunks_for_document(self, document_id: str) -> List[Dict[str, Any]]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                sa_text("""
                    SELECT id, document_id, chunk_index, content, metadata,
                           vector_dims(embedding) AS embedding_dims,
                           created_at
                    FROM chunks
                    WHERE document_id = :doc
                    ORDER BY chunk_index
                """),
                {"doc": document_id},
            ).mappings().all()
        return [dict(r) for r in rows]

    def count(self) -> int:
        with self.engine.begin() as conn:
            return int(conn.execute(sa_text("SELECT COUNT(*) FROM chunks")).scalar() or 0)


class PineconeIndex:
    """Secondary index spoken to over Pinecone's REST data plane."""

    def __init__(self, api_key: str, host: str, namespace: str = "", timeout: float = 30.0):
        self.api_key = api_key
        self.host = host if host.startswith("http") else f"https://{host}"
        self.host = self.host.rstrip("/")
        self.namespace = namespace
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Api-Key": self.api_key, "Content-Type": "application/json"}

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(f"{self.host}{path}", json=payload, headers=self._headers) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise RuntimeError(f"Pinecone {path} failed ({resp.status}): {body[:200]}")
                return await resp.json()

    async def upsert(self, record_id: str, values: Sequence[float], metadata: Dict[str, Any]) -> None:
        payload = {
            "vectors": [{"id": record_id, "values": list(values), "metadata": flatten_metadata(metadata)}],
        }
        if self.namespace:
            payload["namespace"] = self.namespace
        await self._post("/vectors/upsert", payload)

    async def query(self, vector: Sequence[float], top_k: int = 5) -> List[Dict[str, Any]]:
        payload = {"vector": list(vector), "topK": top_k, "includeMetadata": True}
        if self.namespace:
            payload["namespace"] = self.namespace
        data = await self._post("/query", payload)
        return data.get("matches") or []


class DualVectorStore:
    """
    Writes go to the primary first (fatal on failure), then best-effort to the
    secondary. Searches read the primary and only consult the secondary when
    the primary returns nothing. Results are never merged across stores.
    """

    def __init__(self, primary, secondary=None, dimensions: int = DEFAULT_DIMENSIONS):
        self.primary = primary
        self.secondary = secondary
        self.dimensions = dimensions

    async def store(self, record_id: str, vector: Sequence[float], metadata: Dict[str, Any]) -> StoreResult:
        """
        Persist one embedding record.

        ``metadata`` must carry ``content``, ``document_id`` and ``chunk_index``;
        the remaining keys become the stored metadata mapping.

        Raises:
            EmbeddingError: vector has the wrong dimensionality
            StorageError: the primary write failed
        """
        validate_dimensions(vector, self.dimensions)
        missing = [k for k in RECORD_KEYS if metadata.get(k) is None]
        if missing:
            raise StorageError(f"Missing record fields for {record_id}: {', '.join(missing)}")

        extra = {k: v for k, v in metadata.items() if k not in RECORD_KEYS}
        try:
            await run_in_threadpool(
                self.primary.upsert,
                record_id,
                metadata["document_id"],
                int(metadata["chunk_index"]),
                metadata["content"],
                vector,
                extra,
            )
        except SQLAlchemyError as e:
            logger.error("Primary store write failed", record_id=record_id, error=str(e))
            raise StorageError(f"Primary store write failed for {record_id}") from e
        logger.debug("Stored in primary", record_id=record_id)

        result = StoreResult(id=record_id)
        if self.secondary is not None:
            try:
                await self.secondary.upsert(record_id, vector, metadata)
            except Exception as e:
                warning = SecondaryStoreWarning(record_id, e)
                logger.warning("Secondary index write failed", record_id=record_id, error=str(e))
                result.warnings.append(warning)
        return result

    async def search(self, vector: Sequence[float], top_k: int = 5) -> List[MatchResult]:
        """
        Raises:
            EmbeddingError: vector has the wrong dimensionality
            StorageError: the primary read failed
        """
        validate_dimensions(vector, self.dimensions)
        try:
            rows = await run_in_threadpool(self.primary.search, vector, top_k)
        except SQLAlchemyError as e:
            logger.error("Primary store search failed", error=str(e))
            raise StorageError("Primary store search failed") from e

        if rows:
            logger.info("Found matches in primary store", count=len(rows))
            return [match_from_primary(r) for r in rows]

        if self.secondary is None:
            logger.info("No matches found in primary store")
            return []

        try:
            matches = await self.secondary.query(vector, top_k)
        except Exception as e:
            logger.warning("Secondary index query failed", error=str(e))
            return []
        logger.info("Found matches in secondary index", count=len(matches))
        return [match_from_secondary(m) for m in matches]
