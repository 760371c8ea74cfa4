"""Search items under a namespace prefix with an optional value filter and query."""

import asyncio
import logging
from typing import List, Optional

from partitioned_memory.embeddings.protocol import TextEmbedding
from partitioned_memory.models import MemoryItem, SearchItem, SearchOperation
from partitioned_memory.query.filters import build_filter_expression
from partitioned_memory.query.optimizer import plan_search
from partitioned_memory.query.paginator import BoundedPaginator
from partitioned_memory.query.reranker import SCORE_ATTRIBUTE, rerank
from partitioned_memory.query.verifier import paginate
from partitioned_memory.validation import validate_namespace, validate_pagination, validate_user_id

logger = logging.getLogger(__name__)


async def search_operation(
    paginator: BoundedPaginator,
    user_id: str,
    op: SearchOperation,
    embedding: Optional[TextEmbedding] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> List[SearchItem]:
    """
    Find items whose namespace is ``op.namespace_prefix`` or nested under it.

    The offset/limit window is taken in sort key order; when a query and an
    embedding provider are present the window is then reranked by similarity
    and items without a positive score are dropped.

    Raises:
        ValidationError: If the owner, prefix, filter or window is malformed
        ResourceLimitError: If the scan hits the iteration or memory cap
    """
    validate_user_id(user_id)
    if op.namespace_prefix:
        validate_namespace(op.namespace_prefix)
    validate_pagination(op.limit, op.offset)

    plan = plan_search(user_id, op.namespace_prefix, build_filter_expression(op.filter))
    target = paginator.limits.search_target(op.limit, op.offset)
    if target == 0:
        return []

    candidates = await paginator.collect(plan, target, cancel_event=cancel_event)
    window = paginate(list(candidates.values()), op.offset, op.limit)
    ranked = await rerank(window, op.query, embedding)

    results = []
    for record in ranked:
        item = MemoryItem.from_record(record)
        results.append(SearchItem(**item.model_dump(), score=record.get(SCORE_ATTRIBUTE)))

    logger.debug(
        f"Search {op.namespace_prefix}: {len(candidates)} candidates, {len(results)} returned"
    )
    return results
