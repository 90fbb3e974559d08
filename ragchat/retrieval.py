"""
Context retrieval: embed the query, search the vector store, re-rank the hits
lexically and join their text into one context block.
"""
from typing import Callable, List

from .logging_config import logger
from .vector_store import MatchResult

# Biases the query embedding towards extraction-style matches. Tunable.
DEFAULT_QUERY_TEMPLATE = "Use the document only. Extract the answer. Question: {query}"

CONTEXT_SEPARATOR = "\n\n"

Reranker = Callable[[str, List[MatchResult]], List[MatchResult]]


def lexical_score(query: str, content: str) -> float:
    """1.0 for a full substring hit, plus 0.1 for every query word present."""
    q = query.lower()
    c = (content or "").lower()
    score = 1.0 if q in c else 0.0
    for word in q.split():
        if word in c:
            score += 0.1
    return score


def lexical_rerank(query: str, matches: List[MatchResult]) -> List[MatchResult]:
    """
    Reorder matches by lexical overlap with the original query.
    The vector similarity score does not take part in the ordering.
    """
    return sorted(matches, key=lambda m: lexical_score(query, m.text), reverse=True)


class ContextRetriever:
    def __init__(
        self,
        embedder,
        store,
        top_k: int = 10,
        query_template: str = DEFAULT_QUERY_TEMPLATE,
        reranker: Reranker = lexical_rerank,
    ):
        self.embedder = embedder
        self.store = store
        self.top_k = top_k
        self.query_template = query_template
        self.reranker = reranker

    def rewrite_query(self, query: str) -> str:
        return self.query_template.format(query=query)

    async def retrieve_matches(self, query: str) -> List[MatchResult]:
        """Embed, over-fetch and re-rank. Errors propagate."""
        if not query or not query.strip():
            return []
        vector = await self.embedder.embed(self.rewrite_query(query))
        matches = await self.store.search(vector, self.top_k)
        return self.reranker(query, matches)

    async def retrieve_context(self, query: str) -> str:
        """
        Best-effort context for ``query``; any failure yields an empty string.
        """
        if not query or not query.strip():
            return ""

        logger.info("Retrieving context", query=query[:100])
        try:
            matches = await self.retrieve_matches(query)
        except Exception as e:
            logger.error("Context retrieval failed", error=str(e))
            return ""

        if not matches:
            logger.info("No relevant context found")
            return ""

        context = CONTEXT_SEPARATOR.join(m.text for m in matches if m.text)
        logger.info("Retrieved context", chars=len(context), chunks=len(matches))
        return context
