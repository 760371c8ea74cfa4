"""
Exact-match verification of namespace candidates.

Backend filtering is an I/O optimization only. Every candidate is checked
here against the full condition set before it is returned.
"""

from typing import Iterable, List, Optional, Sequence, TypeVar

from partitioned_memory.models import MatchCondition, join_namespace, split_namespace
from partitioned_memory.query.matcher import matches_all, within_depth

T = TypeVar("T")


def verify_namespaces(
    candidates: Iterable[str],
    owner: str,
    conditions: Sequence[MatchCondition],
    max_depth: Optional[int] = None,
) -> List[List[str]]:
    """
    Deduplicate, verify and sort stored namespaces.

    Args:
        candidates: Stored namespace strings (without the owner segment)
        owner: Owner id prepended to each namespace
        conditions: Match conditions, all of which must hold
        max_depth: Optional maximum path length, owner included

    Returns:
        Matching full paths, sorted by their "/"-joined form
    """
    paths = []
    for namespace in set(candidates):
        path = [owner, *split_namespace(namespace)]
        if matches_all(path, conditions) and within_depth(path, max_depth):
            paths.append(path)

    paths.sort(key=join_namespace)
    return paths


def paginate(items: Sequence[T], offset: int, limit: int) -> List[T]:
    return list(items[offset : offset + limit])
