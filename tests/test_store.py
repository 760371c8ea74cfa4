"""
Unit tests for MemoryStore.

Runs the store end to end on the in-memory backend, with a mocked
embedding provider.
"""

import asyncio
import time
from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest

from partitioned_memory import (
    GetOperation,
    MemoryItem,
    MemoryStore,
    PaginationLimits,
    PutOperation,
    SearchItem,
    ValidationError,
)
from partitioned_memory.errors import IterationLimitExceededError, QueryCancelledError
from partitioned_memory.retry import RetryOptions
from partitioned_memory.storage.memory import InMemoryBackend

VECTORS = {
    "cats": [1.0, 0.0, 0.0],
    "dogs": [0.0, 1.0, 0.0],
    "kittens": [0.9, 0.1, 0.0],
}


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def mock_embedding():
    """Mock embedding provider mapping known words to fixed vectors."""
    embedding = Mock()
    embedding.model_name = "mock-embedding"
    embedding.dimension = 3
    embedding.embed_query = AsyncMock(return_value=[1.0, 0.0, 0.0])
    embedding.embed_documents = AsyncMock(
        side_effect=lambda texts: [VECTORS.get(text, [0.0, 0.0, 1.0]) for text in texts]
    )
    return embedding


@pytest.fixture
def store(backend, mock_embedding):
    return MemoryStore(backend, embedding=mock_embedding)


async def populate(store):
    for namespace in (["docs", "guides"], ["docs", "tutorials"], ["blog", "posts"]):
        await store.put(namespace, "item", {"text": "/".join(namespace)}, user_id="u")


@pytest.mark.asyncio
async def test_put_and_get(store):
    await store.put(["notes"], "k1", {"text": "hello"}, user_id="u1")

    item = await store.get(["notes"], "k1", user_id="u1")

    assert isinstance(item, MemoryItem)
    assert item.namespace == ["notes"]
    assert item.key == "k1"
    assert item.value == {"text": "hello"}
    assert isinstance(item.created_at, datetime)
    assert item.created_at == item.updated_at


@pytest.mark.asyncio
async def test_get_missing_returns_none(store):
    assert await store.get(["notes"], "missing", user_id="u1") is None


@pytest.mark.asyncio
async def test_items_are_isolated_per_owner(store):
    await store.put(["notes"], "k1", "mine", user_id="u1")

    assert await store.get(["notes"], "k1", user_id="u2") is None
    assert await store.list_namespaces(user_id="u2") == []


@pytest.mark.asyncio
async def test_update_keeps_created_at(store):
    await store.put(["notes"], "k1", "v1", user_id="u1")
    first = await store.get(["notes"], "k1", user_id="u1")
    await asyncio.sleep(0.01)

    await store.put(["notes"], "k1", "v2", user_id="u1")
    second = await store.get(["notes"], "k1", user_id="u1")

    assert second.value == "v2"
    assert second.created_at == first.created_at
    assert second.updated_at > first.updated_at


@pytest.mark.asyncio
async def test_delete(store):
    await store.put(["notes"], "k1", "v1", user_id="u1")

    await store.delete(["notes"], "k1", user_id="u1")

    assert await store.get(["notes"], "k1", user_id="u1") is None


@pytest.mark.asyncio
async def test_put_with_index_stores_embeddings(store, backend, mock_embedding):
    await store.put(["pets"], "k1", {"text": "cats", "n": 1}, user_id="u1", index=["$.text"])

    mock_embedding.embed_documents.assert_awaited_once_with(["cats"])
    record = backend.get_item("u1", "pets#k1")
    assert record["embedding"] == [[1.0, 0.0, 0.0]]
    assert record["namespace"] == "pets"


@pytest.mark.asyncio
async def test_put_without_index_does_not_embed(store, backend, mock_embedding):
    await store.put(["pets"], "k1", {"text": "cats"}, user_id="u1")

    mock_embedding.embed_documents.assert_not_called()
    assert "embedding" not in backend.get_item("u1", "pets#k1")


@pytest.mark.asyncio
async def test_put_rejects_prototype_path_before_embedding(store, backend, mock_embedding):
    with pytest.raises(ValidationError, match="disallowed"):
        await store.put(
            ["pets"], "k1", {"text": "cats"}, user_id="u1", index=["$.__proto__.polluted"]
        )

    mock_embedding.embed_documents.assert_not_called()
    assert backend.get_item("u1", "pets#k1") is None


@pytest.mark.asyncio
async def test_put_rejects_invalid_embeddings(store, backend, mock_embedding):
    mock_embedding.embed_documents = AsyncMock(return_value=[[float("nan"), 0.0, 0.0]])

    with pytest.raises(ValidationError):
        await store.put(["pets"], "k1", {"text": "cats"}, user_id="u1", index=["$.text"])

    assert backend.get_item("u1", "pets#k1") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "namespace,key",
    [([], "k"), (["a/b"], "k"), (["a"], "k#1"), (["a"], "")],
)
async def test_put_rejects_invalid_location(store, namespace, key):
    with pytest.raises(ValidationError):
        await store.put(namespace, key, "v", user_id="u1")


@pytest.mark.asyncio
async def test_ttl_sets_expiry(backend):
    store = MemoryStore(backend, ttl_days=1)

    await store.put(["notes"], "k1", "v1", user_id="u1")

    ttl = backend.get_item("u1", "notes#k1")["ttl"]
    assert time.time() + 86000 < ttl <= time.time() + 86400


@pytest.mark.asyncio
async def test_invalid_ttl_rejected(backend):
    store = MemoryStore(backend, ttl_days=5000)

    with pytest.raises(ValidationError):
        await store.put(["notes"], "k1", "v1", user_id="u1")


@pytest.mark.asyncio
async def test_list_namespaces_prefix(store):
    await populate(store)
    result = await store.list_namespaces(user_id="u", prefix=["u", "docs"])

    assert result == [["u", "docs", "guides"], ["u", "docs", "tutorials"]]


@pytest.mark.asyncio
async def test_list_namespaces_wildcard_prefix(store):
    await populate(store)
    result = await store.list_namespaces(user_id="u", prefix=["u", "*", "guides"])

    assert result == [["u", "docs", "guides"]]


@pytest.mark.asyncio
async def test_list_namespaces_all_sorted(store):
    await populate(store)
    result = await store.list_namespaces(user_id="u")

    assert result == [["u", "blog", "posts"], ["u", "docs", "guides"], ["u", "docs", "tutorials"]]


@pytest.mark.asyncio
async def test_list_namespaces_suffix(store):
    await populate(store)
    assert await store.list_namespaces(user_id="u", suffix=["*", "posts"]) == [
        ["u", "blog", "posts"]
    ]
    assert await store.list_namespaces(user_id="u", suffix=["u", "blog", "posts"]) == [
        ["u", "blog", "posts"]
    ]


@pytest.mark.asyncio
async def test_list_namespaces_foreign_owner_prefix_is_empty(store):
    await populate(store)
    assert await store.list_namespaces(user_id="u", prefix=["other", "docs"]) == []


@pytest.mark.asyncio
async def test_list_namespaces_max_depth_and_window(store):
    for namespace in (["a"], ["a", "b"], ["a", "b", "c"], ["z"]):
        await store.put(namespace, "k", 1, user_id="u")
        await store.put(namespace, "k2", 2, user_id="u")

    assert await store.list_namespaces(user_id="u", max_depth=2) == [["u", "a"], ["u", "z"]]
    assert await store.list_namespaces(user_id="u", limit=2, offset=1) == [
        ["u", "a", "b"],
        ["u", "a", "b", "c"],
    ]
    assert await store.list_namespaces(user_id="u", limit=0) == []


@pytest.mark.asyncio
async def test_list_namespaces_validates_before_backend_call(backend):
    backend.query = Mock()
    store = MemoryStore(backend)

    with pytest.raises(ValidationError):
        await store.list_namespaces(user_id="u", limit=1001)
    with pytest.raises(ValidationError):
        await store.list_namespaces(user_id="u", max_depth=0)
    with pytest.raises(ValidationError):
        await store.list_namespaces(user_id="u", prefix=["u", "a#b"])

    backend.query.assert_not_called()


@pytest.mark.asyncio
async def test_convenience_methods_raise_validation_error_on_malformed_fields(backend):
    backend.query = Mock()
    backend.get_item = Mock()
    backend.put_item = Mock()
    store = MemoryStore(backend)

    with pytest.raises(ValidationError):
        await store.search(["docs"], user_id="u", limit=1.5)
    with pytest.raises(ValidationError):
        await store.list_namespaces("u", prefix=["u", 3])
    with pytest.raises(ValidationError):
        await store.list_namespaces("u", suffix="docs")
    with pytest.raises(ValidationError):
        await store.get(["docs"], 5, user_id="u")
    with pytest.raises(ValidationError):
        await store.put("docs", "k", "v", user_id="u")
    with pytest.raises(ValidationError):
        await store.delete(["docs"], None, user_id="u")

    backend.query.assert_not_called()
    backend.get_item.assert_not_called()
    backend.put_item.assert_not_called()


@pytest.mark.asyncio
async def test_search_prefix_is_hierarchical(store):
    await store.put(["docs"], "a", 1, user_id="u1")
    await store.put(["docs", "guides"], "b", 2, user_id="u1")
    await store.put(["docsx"], "c", 3, user_id="u1")

    results = await store.search(["docs"], user_id="u1")

    assert [(r.namespace, r.key) for r in results] == [(["docs"], "a"), (["docs", "guides"], "b")]
    assert all(isinstance(r, SearchItem) and r.score is None for r in results)


@pytest.mark.asyncio
async def test_search_whole_partition(store):
    await store.put(["docs"], "a", 1, user_id="u1")
    await store.put(["notes"], "b", 2, user_id="u1")

    results = await store.search([], user_id="u1")

    assert [r.key for r in results] == ["a", "b"]


@pytest.mark.asyncio
async def test_search_with_filter(store):
    for i in range(6):
        await store.put(["scores"], f"k{i}", {"n": i, "even": i % 2 == 0}, user_id="u1")

    results = await store.search(["scores"], user_id="u1", filter={"n": {"$gte": 2}, "even": True})

    assert [r.value["n"] for r in results] == [2, 4]


@pytest.mark.asyncio
async def test_search_window(store):
    for i in range(5):
        await store.put(["items"], f"k{i}", i, user_id="u1")

    results = await store.search(["items"], user_id="u1", limit=2, offset=2)

    assert [r.key for r in results] == ["k2", "k3"]


@pytest.mark.asyncio
async def test_search_with_query_reranks(store, mock_embedding):
    await store.put(["pets"], "dog", {"text": "dogs"}, user_id="u1", index=["$.text"])
    await store.put(["pets"], "kitten", {"text": "kittens"}, user_id="u1", index=["$.text"])
    await store.put(["pets"], "cat", {"text": "cats"}, user_id="u1", index=["$.text"])
    await store.put(["pets"], "plain", {"text": "cats"}, user_id="u1")

    results = await store.search(["pets"], user_id="u1", query="cats")

    assert [r.key for r in results] == ["cat", "kitten"]
    assert results[0].score == pytest.approx(1.0)
    assert 0 < results[1].score < 1
    mock_embedding.embed_query.assert_awaited_once_with("cats")


@pytest.mark.asyncio
async def test_search_rerank_fails_open(store, mock_embedding):
    await store.put(["pets"], "dog", {"text": "dogs"}, user_id="u1", index=["$.text"])
    await store.put(["pets"], "plain", {"text": "none"}, user_id="u1")
    mock_embedding.embed_query.side_effect = RuntimeError("provider down")

    results = await store.search(["pets"], user_id="u1", query="cats")

    assert [r.key for r in results] == ["dog", "plain"]
    assert all(r.score is None for r in results)


@pytest.mark.asyncio
async def test_search_invalid_filter_operator(store):
    with pytest.raises(ValidationError):
        await store.search(["docs"], user_id="u1", filter={"n": {"$in": [1, 2]}})


@pytest.mark.asyncio
async def test_search_selective_filter_scans_past_many_records(store):
    for i in range(150):
        await store.put(["docs"], f"k{i:04d}", {"status": "draft"}, user_id="u")
    await store.put(["docs"], "k9999", {"status": "active"}, user_id="u")

    results = await store.search(["docs"], user_id="u", filter={"status": "active"}, limit=1)

    assert [r.key for r in results] == ["k9999"]


@pytest.mark.asyncio
async def test_search_iteration_limit():
    backend = InMemoryBackend()
    store = MemoryStore(backend, limits=PaginationLimits(max_iterations=3))
    for i in range(10):
        await store.put(["items"], f"k{i}", {"match": i == 9}, user_id="u1")

    with pytest.raises(IterationLimitExceededError):
        await store.search(["items"], user_id="u1", filter={"match": True}, limit=1)


@pytest.mark.asyncio
async def test_search_cancelled():
    backend = InMemoryBackend(page_size=1)
    store = MemoryStore(backend)
    for i in range(3):
        await store.put(["items"], f"k{i}", {"match": False}, user_id="u1")
    cancel_event = asyncio.Event()
    cancel_event.set()

    with pytest.raises(QueryCancelledError):
        await store.search(
            ["items"], user_id="u1", filter={"match": True}, limit=1, cancel_event=cancel_event
        )


@pytest.mark.asyncio
async def test_batch_runs_operations_in_order(store):
    results = await store.batch(
        [
            {"kind": "put", "namespace": ["docs"], "key": "a", "value": {"text": "x"}},
            PutOperation(namespace=["docs", "sub"], key="b", value=2),
            {"kind": "list_namespaces", "limit": 10},
        ],
        user_id="u1",
    )

    assert results[0] is None
    assert results[1] is None

    results = await store.batch(
        [
            GetOperation(namespace=["docs"], key="a"),
            {"kind": "get", "namespace": ["docs"], "key": "missing"},
            {"kind": "search", "namespace_prefix": ["docs"]},
            {
                "kind": "list_namespaces",
                "match_conditions": [{"match_type": "prefix", "path": ["u1", "docs"]}],
            },
        ],
        user_id="u1",
    )

    assert results[0].value == {"text": "x"}
    assert results[1] is None
    assert [item.key for item in results[2]] == ["a", "b"]
    assert results[3] == [["u1", "docs"], ["u1", "docs", "sub"]]


@pytest.mark.asyncio
async def test_batch_rejects_unknown_operation_before_running(store, backend):
    with pytest.raises(ValidationError, match="Invalid operation"):
        await store.batch(
            [
                {"kind": "put", "namespace": ["docs"], "key": "a", "value": 1},
                {"namespace": ["docs"], "key": "a"},
            ],
            user_id="u1",
        )

    assert backend.get_item("u1", "docs#a") is None


@pytest.mark.asyncio
async def test_batch_size_limits(store):
    with pytest.raises(ValidationError):
        await store.batch([], user_id="u1")

    too_many = [{"kind": "get", "namespace": ["docs"], "key": "a"}] * 101
    with pytest.raises(ValidationError, match="exceeds maximum"):
        await store.batch(too_many, user_id="u1")


@pytest.mark.asyncio
async def test_batch_surfaces_operation_failure(store):
    with pytest.raises(ValidationError):
        await store.batch(
            [
                {"kind": "get", "namespace": ["docs"], "key": "a"},
                {"kind": "search", "namespace_prefix": ["docs"], "limit": 5000},
            ],
            user_id="u1",
        )


@pytest.mark.asyncio
async def test_batch_rejects_invalid_user_id(store):
    with pytest.raises(ValidationError):
        await store.batch([{"kind": "get", "namespace": ["docs"], "key": "a"}], user_id="")


@pytest.mark.asyncio
async def test_backend_errors_are_retried(backend):
    class ThrottlingException(Exception):
        pass

    backend.get_item = Mock(side_effect=[ThrottlingException(), None])
    store = MemoryStore(backend, retry_options=RetryOptions(base_delay=0, max_delay=0))

    assert await store.get(["docs"], "a", user_id="u1") is None
    assert backend.get_item.call_count == 2
