"""
In-memory backend implementation.

Provides a simple in-process partitioned table, suitable for testing and
development. For production, use the Redis or SQLAlchemy implementation.
"""

import bisect
import copy
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from partitioned_memory.query.expressions import FilterExpression, SortKeyCondition
from partitioned_memory.storage.protocols import QueryPage
from partitioned_memory.utils.ttl import is_expired

logger = logging.getLogger(__name__)


def project(record: Dict[str, Any], projection: Optional[Sequence[str]]) -> Dict[str, Any]:
    if projection is None:
        return copy.deepcopy(record)
    return {name: copy.deepcopy(record[name]) for name in projection if name in record}


class InMemoryBackend:
    """
    In-memory implementation of the MemoryBackend protocol.

    Records live in a dict per partition; sort keys are kept in a sorted list
    so range scans and continuation are bisections. Data is lost on restart.
    """

    def __init__(self, page_size: int = 1000):
        """
        Initialize the backend.

        Args:
            page_size: Records examined per page when the caller sets no limit
        """
        self._partitions: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._sort_keys: Dict[str, List[str]] = {}
        self._page_size = page_size
        self._lock = threading.Lock()

        logger.info(f"InMemoryBackend initialized (page_size={page_size})")

    def query(
        self,
        partition_key: str,
        sort_key_condition: Optional[SortKeyCondition] = None,
        filter_expression: Optional[FilterExpression] = None,
        projection: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        continuation_token: Optional[Any] = None,
    ) -> QueryPage:
        """Read one page of a partition in sort key order."""
        page_size = limit if limit is not None else self._page_size
        prefix = sort_key_condition.begins_with if sort_key_condition else ""

        with self._lock:
            records = self._partitions.get(partition_key, {})
            sort_keys = self._sort_keys.get(partition_key, [])

            if continuation_token is not None:
                start = bisect.bisect_right(sort_keys, continuation_token)
            else:
                start = bisect.bisect_left(sort_keys, prefix)

            scanned = []
            for sort_key in sort_keys[start:]:
                if not sort_key.startswith(prefix):
                    break
                scanned.append(sort_key)
                if len(scanned) >= page_size:
                    break

            items = []
            expired = []
            for sort_key in scanned:
                record = records[sort_key]
                if is_expired(record):
                    expired.append(sort_key)
                    continue
                if filter_expression and not filter_expression.evaluate(record):
                    continue
                items.append(project(record, projection))

            # A full page may have more behind it
            token = scanned[-1] if len(scanned) >= page_size else None

            for sort_key in expired:
                self._remove(partition_key, sort_key)

        logger.debug(
            f"Query partition={partition_key} range={sort_key_condition} "
            f"scanned={len(scanned)} returned={len(items)} purged={len(expired)}"
        )
        return QueryPage(items=items, continuation_token=token, scanned_count=len(scanned))

    def get_item(self, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._partitions.get(partition_key, {}).get(sort_key)
            if record is None:
                return None
            if is_expired(record):
                self._remove(partition_key, sort_key)
                return None
            return copy.deepcopy(record)

    def put_item(self, record: Dict[str, Any]) -> None:
        partition_key = record["user_id"]
        sort_key = record["namespace_key"]

        with self._lock:
            records = self._partitions.setdefault(partition_key, {})
            sort_keys = self._sort_keys.setdefault(partition_key, [])

            stored = copy.deepcopy(record)
            existing = records.get(sort_key)
            if existing is None:
                bisect.insort(sort_keys, sort_key)
            elif not is_expired(existing):
                stored["created_at"] = existing["created_at"]
            records[sort_key] = stored

        logger.debug(f"Stored record {partition_key}/{sort_key}")

    def _remove(self, partition_key: str, sort_key: str) -> bool:
        # Caller holds the lock
        records = self._partitions.get(partition_key, {})
        if sort_key not in records:
            return False

        del records[sort_key]
        sort_keys = self._sort_keys[partition_key]
        sort_keys.pop(bisect.bisect_left(sort_keys, sort_key))
        return True

    def delete_item(self, partition_key: str, sort_key: str) -> bool:
        with self._lock:
            if not self._remove(partition_key, sort_key):
                return False

        logger.debug(f"Deleted record {partition_key}/{sort_key}")
        return True

    def clear(self):
        """Clear ALL records from the backend."""
        with self._lock:
            count = sum(len(records) for records in self._partitions.values())
            self._partitions.clear()
            self._sort_keys.clear()
        logger.info(f"Cleared all records ({count} total)")
