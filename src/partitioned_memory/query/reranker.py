"""
Semantic reranking of search candidates.

A linear pass over already-fetched records: each record's stored vectors are
compared with the query vector and the best cosine similarity becomes its
score. Ranking is an enhancement, so a failing embedding provider leaves the
candidates in their original order.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from partitioned_memory.embeddings.protocol import TextEmbedding
from partitioned_memory.query.result import Err, Ok, Result

logger = logging.getLogger(__name__)

SCORE_ATTRIBUTE = "score"
EMBEDDING_ATTRIBUTE = "embedding"


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors, clamped to [-1, 1].

    Returns 0.0 for empty, mismatched-length or zero-magnitude vectors instead of raising.
    """
    if not vec1 or not vec2 or len(vec1) != len(vec2):
        return 0.0

    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    magnitude1 = sum(a * a for a in vec1) ** 0.5
    magnitude2 = sum(b * b for b in vec2) ** 0.5

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    similarity = dot_product / (magnitude1 * magnitude2)
    if not math.isfinite(similarity):
        return 0.0

    return max(-1.0, min(1.0, similarity))


def best_similarity(query_vector: Sequence[float], embeddings: Any) -> float:
    """Highest similarity between the query and any of a record's stored vectors (0.0 if none)."""
    if not isinstance(embeddings, list) or len(embeddings) == 0:
        return 0.0
    return max(cosine_similarity(query_vector, embedding) for embedding in embeddings)


async def score_items(
    items: List[Dict[str, Any]],
    query: str,
    embedding: TextEmbedding,
) -> Result:
    """
    Score and order records against a query.

    Records whose score is not positive are dropped; the rest are sorted by
    score, highest first (stable for ties). Each returned record is a copy
    with a ``score`` attribute.

    Returns:
        Ok(scored records) or Err(provider error)
    """
    try:
        query_vector = await embedding.embed_query(query)
    except Exception as e:
        return Err(e)

    scored = []
    for item in items:
        score = best_similarity(query_vector, item.get(EMBEDDING_ATTRIBUTE))
        if score > 0:
            scored.append({**item, SCORE_ATTRIBUTE: score})

    scored.sort(key=lambda item: item[SCORE_ATTRIBUTE], reverse=True)
    return Ok(scored)


async def rerank(
    items: List[Dict[str, Any]],
    query: Optional[str],
    embedding: Optional[TextEmbedding],
) -> List[Dict[str, Any]]:
    """
    Rerank records by similarity to ``query``.

    Items pass through unchanged when there is no query or no embedding
    provider, or when the provider fails.
    """
    if not query or embedding is None:
        return items

    result = await score_items(items, query, embedding)
    if isinstance(result, Err):
        # Fail open: ranking is optional
        logger.warning(f"Semantic rerank skipped, embedding provider failed: {result.error}")
        return items

    logger.debug(f"Reranked {len(items)} candidates, {len(result.value)} with positive scores")
    return result.value
