"""
Bounded pagination over backend query pages.

Drives repeated backend pages into an in-memory candidate set, stopping when
the backend is exhausted or enough candidates are collected. Two safety
limits abort the scan instead of truncating it: a cap on the number of pages
and a cap on the number of candidates held in memory.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from partitioned_memory.errors import (
    IterationLimitExceededError,
    MemoryLimitExceededError,
    QueryCancelledError,
)
from partitioned_memory.query.optimizer import QueryPlan
from partitioned_memory.retry import RetryOptions, call_with_retry
from partitioned_memory.storage.protocols import MemoryBackend, QueryPage

logger = logging.getLogger(__name__)

MAX_LOOP_ITERATIONS = 100
MAX_TOTAL_ITEMS_IN_MEMORY = 10000
CANDIDATE_MULTIPLIER = 10


@dataclass(frozen=True)
class PaginationLimits:
    """
    Safety limits for a single query.

    Attributes:
        max_iterations: Maximum number of backend pages per query
        max_items_in_memory: Maximum number of candidates accumulated per query
        candidate_multiplier: Over-fetch factor for namespace listing, which
            loses candidates to exact-match filtering after the scan
    """

    max_iterations: int = MAX_LOOP_ITERATIONS
    max_items_in_memory: int = MAX_TOTAL_ITEMS_IN_MEMORY
    candidate_multiplier: int = CANDIDATE_MULTIPLIER

    def namespace_target(self, limit: int, offset: int) -> int:
        return min((limit + offset) * self.candidate_multiplier, self.max_items_in_memory)

    def search_target(self, limit: int, offset: int) -> int:
        return limit + offset


class BoundedPaginator:
    """
    Collects distinct candidates for a query plan, page by page.

    Backend calls run in a worker thread and go through the retry policy.
    Each call to ``collect`` builds a fresh accumulator; the paginator holds
    no per-query state.
    """

    def __init__(
        self,
        backend: MemoryBackend,
        limits: PaginationLimits = PaginationLimits(),
        retry_options: RetryOptions = RetryOptions(),
    ):
        self.backend = backend
        self.limits = limits
        self.retry_options = retry_options

    def _page_limit(
        self, plan: QueryPlan, target_size: int, collected: int, scanned: int
    ) -> Optional[int]:
        if not plan.page_limited:
            return None
        # Never smaller than the records scanned so far: page sizes grow geometrically
        return min(max(1, target_size - collected, scanned), self.limits.max_items_in_memory)

    async def _fetch_page(
        self, plan: QueryPlan, limit: Optional[int], token: Optional[Any]
    ) -> QueryPage:
        return await call_with_retry(
            self.backend.query,
            plan.partition_key,
            options=self.retry_options,
            sort_key_condition=plan.sort_key_condition,
            filter_expression=plan.filter_expression,
            projection=plan.projection,
            limit=limit,
            continuation_token=token,
        )

    async def collect(
        self,
        plan: QueryPlan,
        target_size: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Collect candidates until exhausted or ``target_size`` distinct ones are held.

        Args:
            plan: Backend scan description
            target_size: Number of distinct candidates that is enough
            cancel_event: Optional event checked between pages

        Returns:
            Candidates keyed by ``plan.candidate_attribute``, in backend order

        Raises:
            IterationLimitExceededError: If more than ``max_iterations`` pages are needed
            MemoryLimitExceededError: If a page would push the accumulator over ``max_items_in_memory``
            QueryCancelledError: If ``cancel_event`` is set between pages
        """
        candidates: Dict[str, Dict[str, Any]] = {}
        if plan.unsatisfiable:
            logger.debug(f"{plan.operation}: plan cannot match, skipping backend scan")
            return candidates

        token = None
        iteration = 0
        scanned = 0

        while True:
            iteration += 1
            if iteration > self.limits.max_iterations:
                raise IterationLimitExceededError(
                    f"{plan.operation} operation exceeded maximum iteration limit"
                )

            if iteration > 1 and cancel_event is not None and cancel_event.is_set():
                raise QueryCancelledError(f"{plan.operation} operation cancelled")

            page_limit = self._page_limit(plan, target_size, len(candidates), scanned)
            page = await self._fetch_page(plan, page_limit, token)
            scanned += page.scanned_count

            fresh: Dict[str, Dict[str, Any]] = {}
            for item in page.items:
                candidate_key = item.get(plan.candidate_attribute)
                if candidate_key is None or candidate_key in candidates:
                    continue
                fresh.setdefault(candidate_key, item)

            if len(candidates) + len(fresh) > self.limits.max_items_in_memory:
                raise MemoryLimitExceededError(
                    f"{plan.operation} operation exceeded maximum items in memory limit"
                )
            candidates.update(fresh)

            token = page.continuation_token
            if token is None or len(candidates) >= target_size:
                break

        logger.debug(
            f"{plan.operation}: collected {len(candidates)} candidates "
            f"in {iteration} page(s), scanned {scanned} record(s)"
        )
        return candidates
