"""Put or delete a memory item, embedding indexed fragments of its value."""

import logging
import time
from typing import List, Optional

from partitioned_memory.embeddings.protocol import TextEmbedding
from partitioned_memory.models import PutOperation, join_namespace, make_sort_key
from partitioned_memory.retry import RetryOptions, call_with_retry
from partitioned_memory.storage.protocols import MemoryBackend
from partitioned_memory.utils.json_path import extract_texts
from partitioned_memory.utils.ttl import calculate_ttl_timestamp
from partitioned_memory.validation import (
    validate_embeddings,
    validate_json_paths,
    validate_key,
    validate_namespace,
    validate_ttl_days,
    validate_user_id,
    validate_value,
)

logger = logging.getLogger(__name__)


async def _embed_value(
    op: PutOperation, embedding: Optional[TextEmbedding]
) -> Optional[List[List[float]]]:
    if embedding is None or not op.index:
        return None

    texts = extract_texts(op.value, op.index)
    if not texts:
        return None

    vectors = await embedding.embed_documents(texts)
    validate_embeddings(vectors)
    return vectors


async def put_operation(
    backend: MemoryBackend,
    user_id: str,
    op: PutOperation,
    embedding: Optional[TextEmbedding] = None,
    ttl_days: Optional[int] = None,
    retry_options: RetryOptions = RetryOptions(),
) -> None:
    """
    Store ``op.value`` under (owner, namespace, key), or delete the item when the value is None.

    Index paths are validated before any embedding call. An existing item
    keeps its creation time.

    Raises:
        ValidationError: If any input or the produced embeddings are malformed
    """
    validate_user_id(user_id)
    validate_namespace(op.namespace)
    validate_key(op.key)
    sort_key = make_sort_key(op.namespace, op.key)

    if op.value is None:
        deleted = await call_with_retry(backend.delete_item, user_id, sort_key, options=retry_options)
        logger.debug(f"Delete {sort_key}: {'deleted' if deleted else 'not found'}")
        return

    validate_value(op.value)
    validate_ttl_days(ttl_days)
    if op.index is not None:
        validate_json_paths(op.index)

    vectors = await _embed_value(op, embedding)

    now = int(time.time() * 1000)
    record = {
        "user_id": user_id,
        "namespace_key": sort_key,
        "namespace": join_namespace(op.namespace),
        "key": op.key,
        "value": op.value,
        "created_at": now,
        "updated_at": now,
    }
    if vectors is not None:
        record["embedding"] = vectors
    if ttl_days:
        record["ttl"] = calculate_ttl_timestamp(ttl_days)

    await call_with_retry(backend.put_item, record, options=retry_options)
    logger.debug(
        f"Stored {sort_key} ({len(vectors) if vectors else 0} embedding(s), ttl_days={ttl_days})"
    )
