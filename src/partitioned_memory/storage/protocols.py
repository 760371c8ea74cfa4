"""
Backend access port.

The memory store talks to its backend through this protocol. A backend is
a partitioned key-value table: records are grouped by partition key (the
owner id) and ordered by a string sort key (``"<namespace>#<key>"``).
Implementations can use various databases (Redis, SQL, in-memory, etc.)
as long as they satisfy the protocol interface.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from partitioned_memory.query.expressions import FilterExpression, SortKeyCondition


@dataclass
class QueryPage:
    """
    One page of a backend query.

    Attributes:
        items: Records that passed the filter expression (projected if requested)
        continuation_token: Opaque cursor for the next page, None when exhausted
        scanned_count: Number of records examined before filtering
    """

    items: List[Dict[str, Any]] = field(default_factory=list)
    continuation_token: Optional[Any] = None
    scanned_count: int = 0


class MemoryBackend(Protocol):
    """
    Protocol for partitioned key-value storage of memory records.

    Records are dicts with at least ``user_id``, ``namespace_key``,
    ``namespace``, ``key``, ``value``, ``created_at`` and ``updated_at``,
    and optionally ``embedding`` and ``ttl``.
    """

    def query(
        self,
        partition_key: str,
        sort_key_condition: Optional[SortKeyCondition] = None,
        filter_expression: Optional[FilterExpression] = None,
        projection: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        continuation_token: Optional[Any] = None,
    ) -> QueryPage:
        """
        Read one page of records from a partition in sort key order.

        Args:
            partition_key: Owner id
            sort_key_condition: Optional range condition on the sort key
            filter_expression: Optional filter applied after reading; filtered-out
                records still count towards ``limit`` and ``scanned_count``
            projection: Attribute names to return (None returns whole records)
            limit: Maximum number of records to examine
            continuation_token: Cursor returned by the previous page

        Returns:
            The page of matching records and the cursor for the next one
        """
        ...

    def get_item(self, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        """
        Read a single record.

        Returns:
            The record if found and not expired, None otherwise
        """
        ...

    def put_item(self, record: Dict[str, Any]) -> None:
        """
        Insert or update a record.

        When a record with the same keys exists, its ``created_at`` is kept and
        every other attribute is replaced.
        """
        ...

    def delete_item(self, partition_key: str, sort_key: str) -> bool:
        """
        Delete a record.

        Returns:
            True if a record was deleted, False if none existed
        """
        ...
