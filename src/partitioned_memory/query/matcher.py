"""
Namespace matching with wildcard segments.

Pure functions over namespace paths. A path here is the full path, owner id
first, as returned by namespace listing.
"""

from typing import Iterable, Optional, Sequence

from partitioned_memory.models import WILDCARD, MatchCondition


def matches_prefix(path: Sequence[str], pattern: Sequence[str]) -> bool:
    """True when every pattern segment is a wildcard or equals the path segment at the same index."""
    if len(pattern) > len(path):
        return False

    for pattern_part, path_part in zip(pattern, path):
        if pattern_part != WILDCARD and pattern_part != path_part:
            return False

    return True


def matches_suffix(path: Sequence[str], pattern: Sequence[str]) -> bool:
    """Like matches_prefix, aligned to the end of the path."""
    if len(pattern) > len(path):
        return False

    offset = len(path) - len(pattern)
    return matches_prefix(path[offset:], pattern)


def matches(path: Sequence[str], condition: MatchCondition) -> bool:
    if condition.match_type == "prefix":
        return matches_prefix(path, condition.path)
    if condition.match_type == "suffix":
        return matches_suffix(path, condition.path)
    return False


def matches_all(path: Sequence[str], conditions: Iterable[MatchCondition]) -> bool:
    return all(matches(path, condition) for condition in conditions)


def within_depth(path: Sequence[str], max_depth: Optional[int]) -> bool:
    # Depth counts the owner segment
    return max_depth is None or len(path) <= max_depth
