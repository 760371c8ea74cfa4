"""
partitioned-memory: Hierarchical key-value memory store with semantic search over partitioned backends.

Core components:
- store: MemoryStore facade with typed batch dispatch
- query: Namespace matching, backend query planning, bounded pagination, reranking
- operations: get, put/delete, search and namespace listing
- storage: Backend protocol with in-memory, Redis and SQLAlchemy implementations
- embeddings: Embedding provider protocol and OpenAI adapter
- models: Operations, match conditions and returned items
"""

__version__ = "0.1.0"

from partitioned_memory.config import StoreSettings
from partitioned_memory.errors import (
    IterationLimitExceededError,
    MemoryLimitExceededError,
    QueryCancelledError,
    ResourceLimitError,
    ValidationError,
)
from partitioned_memory.factory import create_backend, create_store
from partitioned_memory.models import (
    GetOperation,
    ListNamespacesOperation,
    MatchCondition,
    MemoryItem,
    Operation,
    PutOperation,
    SearchItem,
    SearchOperation,
)
from partitioned_memory.query.paginator import PaginationLimits
from partitioned_memory.retry import RetryOptions
from partitioned_memory.store import MemoryStore

__all__ = [
    "__version__",
    # Store
    "MemoryStore",
    "StoreSettings",
    "create_backend",
    "create_store",
    "PaginationLimits",
    "RetryOptions",
    # Models
    "GetOperation",
    "ListNamespacesOperation",
    "MatchCondition",
    "MemoryItem",
    "Operation",
    "PutOperation",
    "SearchItem",
    "SearchOperation",
    # Errors
    "IterationLimitExceededError",
    "MemoryLimitExceededError",
    "QueryCancelledError",
    "ResourceLimitError",
    "ValidationError",
]
