"""Get a single memory item."""

import logging
from typing import Optional

from partitioned_memory.models import GetOperation, MemoryItem, make_sort_key
from partitioned_memory.retry import RetryOptions, call_with_retry
from partitioned_memory.storage.protocols import MemoryBackend
from partitioned_memory.validation import validate_key, validate_namespace, validate_user_id

logger = logging.getLogger(__name__)


async def get_operation(
    backend: MemoryBackend,
    user_id: str,
    op: GetOperation,
    retry_options: RetryOptions = RetryOptions(),
) -> Optional[MemoryItem]:
    """
    Read one item by namespace and key.

    Returns:
        The item if found, None otherwise

    Raises:
        ValidationError: If the owner, namespace or key is malformed
    """
    validate_user_id(user_id)
    validate_namespace(op.namespace)
    validate_key(op.key)

    record = await call_with_retry(
        backend.get_item, user_id, make_sort_key(op.namespace, op.key), options=retry_options
    )
    if record is None:
        logger.debug(f"Item not found: {op.namespace}/{op.key}")
        return None

    return MemoryItem.from_record(record, namespace=list(op.namespace))
