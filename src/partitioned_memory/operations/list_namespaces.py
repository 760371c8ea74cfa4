"""List the distinct namespaces an owner has stored items under."""

import asyncio
import logging
from typing import List, Optional

from partitioned_memory.models import ListNamespacesOperation
from partitioned_memory.query.optimizer import plan_namespace_listing
from partitioned_memory.query.paginator import BoundedPaginator
from partitioned_memory.query.verifier import paginate, verify_namespaces
from partitioned_memory.validation import (
    validate_match_conditions,
    validate_max_depth,
    validate_pagination,
    validate_user_id,
)

logger = logging.getLogger(__name__)


async def list_namespaces_operation(
    paginator: BoundedPaginator,
    user_id: str,
    op: ListNamespacesOperation,
    cancel_event: Optional[asyncio.Event] = None,
) -> List[List[str]]:
    """
    List matching namespaces, each prefixed with the owner id, sorted by joined path.

    Raises:
        ValidationError: If the owner, conditions, depth or window is malformed
        ResourceLimitError: If the scan hits the iteration or memory cap
    """
    validate_user_id(user_id)
    validate_pagination(op.limit, op.offset)
    validate_max_depth(op.max_depth)
    validate_match_conditions(op.match_conditions)

    plan = plan_namespace_listing(user_id, op.match_conditions)
    target = paginator.limits.namespace_target(op.limit, op.offset)
    if target == 0:
        return []

    candidates = await paginator.collect(plan, target, cancel_event=cancel_event)
    namespaces = verify_namespaces(candidates.keys(), user_id, op.match_conditions, op.max_depth)

    logger.debug(
        f"List namespaces: {len(candidates)} candidates, {len(namespaces)} verified"
    )
    return paginate(namespaces, op.offset, op.limit)
