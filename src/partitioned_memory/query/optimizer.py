"""
Backend query optimizer.

Derives the concrete, wildcard-free parts of match conditions and turns them
into backend-native range and filter conditions. Those conditions only shrink
the candidate set; exact matching is done afterwards by the verifier.

Stored records do not carry the owner id in their namespace, so pattern
segments that may sit at the owner position are never pushed to the backend.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from partitioned_memory.models import WILDCARD, MatchCondition, join_namespace
from partitioned_memory.query.expressions import (
    AnyOf,
    BeginsWith,
    Comparison,
    Contains,
    FilterExpression,
    SortKeyCondition,
    combine,
)

logger = logging.getLogger(__name__)

NAMESPACE_ATTRIBUTE = "namespace"
SORT_KEY_ATTRIBUTE = "namespace_key"


@dataclass(frozen=True)
class QueryPlan:
    """
    A backend scan description shared by namespace listing and search.

    Attributes:
        operation: Human-readable operation name used in error messages
        partition_key: Owner id
        sort_key_condition: Optional begins_with range on the sort key
        filter_expression: Optional backend-side filter
        projection: Attributes to fetch (None fetches whole records)
        candidate_attribute: Record attribute identifying a distinct candidate
        page_limited: Ask the backend for at most the number of still-missing candidates per page
        unsatisfiable: True when no record can match; no backend call is made
    """

    operation: str
    partition_key: str
    sort_key_condition: Optional[SortKeyCondition] = None
    filter_expression: Optional[FilterExpression] = None
    projection: Optional[Tuple[str, ...]] = None
    candidate_attribute: str = SORT_KEY_ATTRIBUTE
    page_limited: bool = False
    unsatisfiable: bool = False


def _concrete_head(pattern: Sequence[str]) -> List[str]:
    head = []
    for part in pattern:
        if part == WILDCARD:
            break
        head.append(part)
    return head


def _concrete_tail(pattern: Sequence[str]) -> List[str]:
    tail = []
    for part in reversed(pattern):
        if part == WILDCARD:
            break
        tail.insert(0, part)
    return tail


def concrete_prefix(pattern: Sequence[str]) -> str:
    """Join the segments before the first wildcard ("" if it starts with one)."""
    return join_namespace(_concrete_head(pattern))


def concrete_suffix(pattern: Sequence[str]) -> str:
    """Join the segments after the last wildcard, in original order."""
    return join_namespace(_concrete_tail(pattern))


def concrete_fragments(conditions: Sequence[MatchCondition]) -> Tuple[str, List[str]]:
    """
    Concrete prefix of the first prefix condition and the concrete suffix of each suffix condition.

    Returns:
        (concrete prefix or "", list of concrete suffixes in condition order)
    """
    prefix_condition = next((c for c in conditions if c.match_type == "prefix"), None)
    prefix = concrete_prefix(prefix_condition.path) if prefix_condition else ""
    suffixes = [concrete_suffix(c.path) for c in conditions if c.match_type == "suffix"]
    return prefix, suffixes


def plan_namespace_listing(owner: str, conditions: Sequence[MatchCondition]) -> QueryPlan:
    """
    Build the backend scan for listing namespaces under an owner.

    The prefix condition with the longest concrete head narrows the sort key
    range. Each suffix condition with a concrete tail adds a contains() filter
    on the stored namespace.
    """
    operation = "List namespaces"
    sort_key_condition = None
    unsatisfiable = False

    prefix_heads = [_concrete_head(c.path) for c in conditions if c.match_type == "prefix"]
    for head in prefix_heads:
        if head and head[0] != owner:
            unsatisfiable = True

    best_head = max(prefix_heads, key=len, default=[])
    namespace_prefix = join_namespace(best_head[1:])
    if namespace_prefix:
        # No trailing separator, so nested namespaces stay in range
        sort_key_condition = SortKeyCondition(begins_with=namespace_prefix)

    clauses = []
    for condition in conditions:
        if condition.match_type != "suffix":
            continue
        tail = _concrete_tail(condition.path)
        if len(tail) == len(condition.path) and len(tail) > 1:
            # Fully concrete: the leading segment may be the owner
            tail = tail[1:]
        fragment = join_namespace(tail)
        if fragment:
            clauses.append(Contains(NAMESPACE_ATTRIBUTE, fragment))

    plan = QueryPlan(
        operation=operation,
        partition_key=owner,
        sort_key_condition=sort_key_condition,
        filter_expression=FilterExpression(tuple(clauses)) if clauses else None,
        projection=(NAMESPACE_ATTRIBUTE,),
        candidate_attribute=NAMESPACE_ATTRIBUTE,
        unsatisfiable=unsatisfiable,
    )
    logger.debug(
        f"Namespace listing plan: range={sort_key_condition}, "
        f"filter={plan.filter_expression}, unsatisfiable={unsatisfiable}"
    )
    return plan


def namespace_scope(namespace_prefix: Sequence[str]) -> Optional[FilterExpression]:
    """Exact hierarchical prefix test on the stored namespace."""
    if not namespace_prefix:
        return None
    prefix = join_namespace(namespace_prefix)
    return FilterExpression(
        (
            AnyOf(
                (
                    Comparison((NAMESPACE_ATTRIBUTE,), "=", prefix),
                    BeginsWith(NAMESPACE_ATTRIBUTE, prefix + "/"),
                )
            ),
        )
    )


def plan_search(
    owner: str,
    namespace_prefix: Sequence[str],
    value_filter: Optional[FilterExpression] = None,
) -> QueryPlan:
    """
    Build the backend scan for a search.

    Search filtering is exact on the backend: the namespace scope clause and
    the compiled value filter need no re-verification.
    """
    sort_key_condition = None
    if namespace_prefix:
        sort_key_condition = SortKeyCondition(begins_with=join_namespace(namespace_prefix))

    plan = QueryPlan(
        operation="Search",
        partition_key=owner,
        sort_key_condition=sort_key_condition,
        filter_expression=combine(namespace_scope(namespace_prefix), value_filter),
        candidate_attribute=SORT_KEY_ATTRIBUTE,
        page_limited=True,
    )
    logger.debug(f"Search plan: range={sort_key_condition}, filter={plan.filter_expression}")
    return plan
