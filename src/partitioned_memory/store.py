import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

import pydantic

from partitioned_memory.embeddings.protocol import TextEmbedding
from partitioned_memory.errors import ValidationError
from partitioned_memory.models import (
    GetOperation,
    ListNamespacesOperation,
    MatchCondition,
    MemoryItem,
    PutOperation,
    SearchItem,
    SearchOperation,
    parse_operation,
)
from partitioned_memory.operations import (
    get_operation,
    list_namespaces_operation,
    put_operation,
    search_operation,
)
from partitioned_memory.query.paginator import BoundedPaginator, PaginationLimits
from partitioned_memory.retry import RetryOptions
from partitioned_memory.storage.protocols import MemoryBackend
from partitioned_memory.validation import validate_batch_size, validate_user_id

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _build(model: Type[ModelT], **fields: Any) -> ModelT:
    """Construct an operation model, raising ValidationError on malformed fields."""
    try:
        return model(**fields)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {e}") from e


class MemoryStore:
    """
    Hierarchical key-value memory store over a partitioned backend.

    Every item belongs to an owner (the backend partition) and lives at a
    namespace path under a key. Searches can be reranked by similarity when
    an embedding provider is configured.

    Example:
        store = MemoryStore(InMemoryBackend(), embedding=OpenAIEmbedding())
        await store.put(["notes", "work"], "standup", {"text": "ship it"}, user_id="u1",
                        index=["$.text"])
        results = await store.search(["notes"], user_id="u1", query="release")
    """

    def __init__(
        self,
        backend: MemoryBackend,
        embedding: Optional[TextEmbedding] = None,
        ttl_days: Optional[int] = None,
        limits: PaginationLimits = PaginationLimits(),
        retry_options: RetryOptions = RetryOptions(),
    ):
        self.backend = backend
        self.embedding = embedding
        self.ttl_days = ttl_days
        self.retry_options = retry_options
        self.paginator = BoundedPaginator(backend, limits, retry_options)

        self._handlers = {
            "get": self._get,
            "put": self._put,
            "search": self._search,
            "list_namespaces": self._list_namespaces,
        }

        logger.info(
            f"MemoryStore initialized (backend={type(backend).__name__}, "
            f"embedding={embedding.model_name if embedding else None}, ttl_days={ttl_days})"
        )

    async def _get(self, op: GetOperation, user_id: str) -> Optional[MemoryItem]:
        return await get_operation(self.backend, user_id, op, self.retry_options)

    async def _put(self, op: PutOperation, user_id: str) -> None:
        return await put_operation(
            self.backend, user_id, op, self.embedding, self.ttl_days, self.retry_options
        )

    async def _search(self, op: SearchOperation, user_id: str) -> List[SearchItem]:
        return await search_operation(self.paginator, user_id, op, self.embedding)

    async def _list_namespaces(self, op: ListNamespacesOperation, user_id: str) -> List[List[str]]:
        return await list_namespaces_operation(self.paginator, user_id, op)

    async def batch(
        self,
        operations: Sequence[Union[Dict[str, Any], pydantic.BaseModel]],
        user_id: str,
    ) -> List[Any]:
        """
        Run independent operations concurrently.

        Operations are dicts or operation models tagged by ``kind``. The owner
        and batch size are checked, and every operation parsed, before any of
        them starts.

        Returns:
            One result per operation, in input order: a MemoryItem or None for
            get, None for put, a list of SearchItem for search and a list of
            namespace paths for list_namespaces

        Raises:
            ValidationError: If the batch or any operation is malformed
        """
        validate_user_id(user_id)
        validate_batch_size(len(operations))

        try:
            parsed = [parse_operation(op) for op in operations]
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid operation: {e}") from e

        for op in parsed:
            if op.kind not in self._handlers:
                raise ValidationError(f"Unsupported operation: {op.kind}")

        logger.debug(f"Batch of {len(parsed)} operation(s) for user {user_id}")
        return list(await asyncio.gather(*(self._handlers[op.kind](op, user_id) for op in parsed)))

    async def get(self, namespace: List[str], key: str, user_id: str) -> Optional[MemoryItem]:
        return await self._get(_build(GetOperation, namespace=namespace, key=key), user_id)

    async def put(
        self,
        namespace: List[str],
        key: str,
        value: Any,
        user_id: str,
        index: Optional[List[str]] = None,
    ) -> None:
        """Store a value. Passing ``index`` embeds the value fragments at those JSON paths."""
        op = _build(PutOperation, namespace=namespace, key=key, value=value, index=index)
        await self._put(op, user_id)

    async def delete(self, namespace: List[str], key: str, user_id: str) -> None:
        await self._put(_build(PutOperation, namespace=namespace, key=key, value=None), user_id)

    async def search(
        self,
        namespace_prefix: List[str],
        user_id: str,
        query: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None,
        limit: int = 10,
        offset: int = 0,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[SearchItem]:
        op = _build(
            SearchOperation,
            namespace_prefix=namespace_prefix,
            filter=filter,
            query=query,
            limit=limit,
            offset=offset,
        )
        return await search_operation(
            self.paginator, user_id, op, self.embedding, cancel_event=cancel_event
        )

    async def list_namespaces(
        self,
        user_id: str,
        prefix: Optional[List[str]] = None,
        suffix: Optional[List[str]] = None,
        max_depth: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[List[str]]:
        """
        List namespaces (owner id first) matching an optional prefix and suffix pattern.

        Patterns are matched against the full path including the owner id and
        may use "*" for any single segment.
        """
        conditions = []
        if prefix:
            conditions.append(_build(MatchCondition, match_type="prefix", path=prefix))
        if suffix:
            conditions.append(_build(MatchCondition, match_type="suffix", path=suffix))

        op = _build(
            ListNamespacesOperation,
            match_conditions=conditions,
            max_depth=max_depth,
            limit=limit,
            offset=offset,
        )
        return await list_namespaces_operation(
            self.paginator, user_id, op, cancel_event=cancel_event
        )
