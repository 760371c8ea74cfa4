"""Store operations: get, put (and delete), search and namespace listing."""

from partitioned_memory.operations.get import get_operation
from partitioned_memory.operations.list_namespaces import list_namespaces_operation
from partitioned_memory.operations.put import put_operation
from partitioned_memory.operations.search import search_operation

__all__ = [
    "get_operation",
    "list_namespaces_operation",
    "put_operation",
    "search_operation",
]
