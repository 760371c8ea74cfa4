"""
Store query engine.

Turns namespace listing and search requests into bounded backend scans:
- matcher: wildcard-aware prefix/suffix namespace matching
- optimizer: backend range and filter conditions from match conditions
- paginator: page collection under iteration and memory limits
- verifier: exact re-check, dedup and deterministic ordering
- filters: value filter compilation
- reranker: cosine similarity reranking with fail-open semantics
"""

from partitioned_memory.query.expressions import FilterExpression, SortKeyCondition
from partitioned_memory.query.filters import build_filter_expression
from partitioned_memory.query.matcher import matches, matches_prefix, matches_suffix
from partitioned_memory.query.optimizer import (
    QueryPlan,
    concrete_prefix,
    concrete_suffix,
    plan_namespace_listing,
    plan_search,
)
from partitioned_memory.query.paginator import BoundedPaginator, PaginationLimits
from partitioned_memory.query.reranker import cosine_similarity, rerank
from partitioned_memory.query.verifier import paginate, verify_namespaces

__all__ = [
    "BoundedPaginator",
    "FilterExpression",
    "PaginationLimits",
    "QueryPlan",
    "SortKeyCondition",
    "build_filter_expression",
    "concrete_prefix",
    "concrete_suffix",
    "cosine_similarity",
    "matches",
    "matches_prefix",
    "matches_suffix",
    "paginate",
    "plan_namespace_listing",
    "plan_search",
    "rerank",
    "verify_namespaces",
]
