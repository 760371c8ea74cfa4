"""
Redis backend implementation.

Each partition is a sorted set of sort keys (all scored 0, so ordered
lexicographically) plus a hash mapping sort key to the JSON-encoded record.
Range scans use ZRANGEBYLEX; the continuation token is the last sort key
examined.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from partitioned_memory.query.expressions import FilterExpression, SortKeyCondition
from partitioned_memory.storage.memory import project
from partitioned_memory.storage.protocols import QueryPage
from partitioned_memory.utils.ttl import is_expired

try:
    import redis
except ImportError:
    redis = None  # type: ignore

logger = logging.getLogger(__name__)


class RedisBackend:
    """
    Redis implementation of the MemoryBackend protocol.

    Survives restarts and works across multiple replicas. Writes preserve
    ``created_at`` inside a WATCH/MULTI transaction.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        key_prefix: str = "memory:",
        page_size: int = 1000,
        client: Optional[Any] = None,
    ):
        """
        Initialize the Redis backend.

        Args:
            host: Redis host
            port: Redis port
            db: Redis database number
            key_prefix: Prefix for Redis keys (default: "memory:")
            page_size: Records examined per page when the caller sets no limit
            client: Existing redis.Redis client (host/port/db are ignored)
        """
        if client is None:
            if redis is None:
                raise ImportError(
                    "redis package is required for RedisBackend. "
                    "Install with: pip install partitioned-memory[redis]"
                )
            client = redis.Redis(host=host, port=port, db=db, decode_responses=True)

            try:
                client.ping()
            except redis.ConnectionError as e:
                logger.error(f"Failed to connect to Redis: {e}")
                raise

        self.client = client
        self._key_prefix = key_prefix
        self._page_size = page_size

        logger.info(f"RedisBackend initialized (key_prefix={key_prefix}, page_size={page_size})")

    def _keys_key(self, partition_key: str) -> str:
        return f"{self._key_prefix}{partition_key}:keys"

    def _items_key(self, partition_key: str) -> str:
        return f"{self._key_prefix}{partition_key}:items"

    @staticmethod
    def _range_bounds(prefix: str, continuation_token: Optional[str]):
        if continuation_token is not None:
            lower = f"({continuation_token}"
        elif prefix:
            lower = f"[{prefix}"
        else:
            lower = "-"

        # 0xff never occurs in UTF-8, so it sorts after every key with this prefix
        upper = b"[" + prefix.encode("utf-8") + b"\xff" if prefix else "+"
        return lower, upper

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
        lower, upper = self._range_bounds(prefix, continuation_token)

        sort_keys = self.client.zrangebylex(
            self._keys_key(partition_key), lower, upper, start=0, num=page_size
        )

        items = []
        expired = []
        if sort_keys:
            raw_records = self.client.hmget(self._items_key(partition_key), sort_keys)
            for sort_key, raw in zip(sort_keys, raw_records):
                if raw is None:
                    continue
                record = json.loads(raw)
                if is_expired(record):
                    expired.append(sort_key)
                    continue
                if filter_expression and not filter_expression.evaluate(record):
                    continue
                items.append(project(record, projection))

        token = sort_keys[-1] if len(sort_keys) >= page_size else None
        if expired:
            self._purge(partition_key, expired)

        logger.debug(
            f"Query partition={partition_key} range={sort_key_condition} "
            f"scanned={len(sort_keys)} returned={len(items)} purged={len(expired)}"
        )
        return QueryPage(items=items, continuation_token=token, scanned_count=len(sort_keys))

    def get_item(self, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        raw = self.client.hget(self._items_key(partition_key), sort_key)
        if raw is None:
            return None

        record = json.loads(raw)
        if is_expired(record):
            self._purge(partition_key, [sort_key])
            return None
        return record

    def put_item(self, record: Dict[str, Any]) -> None:
        partition_key = record["user_id"]
        sort_key = record["namespace_key"]
        items_key = self._items_key(partition_key)
        keys_key = self._keys_key(partition_key)

        def write(pipe):
            stored = dict(record)
            existing = pipe.hget(items_key, sort_key)
            previous = json.loads(existing) if existing is not None else None
            if previous is not None and not is_expired(previous):
                stored["created_at"] = previous["created_at"]

            pipe.multi()
            pipe.hset(items_key, sort_key, json.dumps(stored))
            pipe.zadd(keys_key, {sort_key: 0})

        self.client.transaction(write, items_key)
        logger.debug(f"Stored record {partition_key}/{sort_key}")

    def _purge(self, partition_key: str, sort_keys: List[str]) -> None:
        """Remove expired records found while reading, unless rewritten in the meantime."""
        items_key = self._items_key(partition_key)
        keys_key = self._keys_key(partition_key)

        def remove(pipe):
            raw_records = pipe.hmget(items_key, sort_keys)
            stale = [
                sort_key
                for sort_key, raw in zip(sort_keys, raw_records)
                if raw is not None and is_expired(json.loads(raw))
            ]

            pipe.multi()
            if stale:
                pipe.hdel(items_key, *stale)
                pipe.zrem(keys_key, *stale)

        self.client.transaction(remove, items_key)

    def delete_item(self, partition_key: str, sort_key: str) -> bool:
        pipeline = self.client.pipeline()
        pipeline.hdel(self._items_key(partition_key), sort_key)
        pipeline.zrem(self._keys_key(partition_key), sort_key)
        deleted, _ = pipeline.execute()

        logger.debug(f"Deleted record {partition_key}/{sort_key} (found={bool(deleted)})")
        return bool(deleted)

    def clear_partition(self, partition_key: str) -> int:
        """Delete every record of one owner."""
        count = self.client.zcard(self._keys_key(partition_key))
        self.client.delete(self._keys_key(partition_key), self._items_key(partition_key))

        logger.info(f"Cleared {count} records for partition {partition_key}")
        return count
