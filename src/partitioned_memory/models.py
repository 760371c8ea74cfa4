from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

NamespaceMatchType = Literal["prefix", "suffix"]

WILDCARD = "*"


class MemoryItem(BaseModel):
    """A stored value with its location and timestamps."""

    namespace: List[str]
    key: str
    value: Any
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: dict, namespace: Optional[List[str]] = None) -> "MemoryItem":
        """Build an item from a backend record (timestamps in epoch milliseconds)."""
        return cls(
            namespace=namespace if namespace is not None else split_namespace(record["namespace"]),
            key=record["key"],
            value=record.get("value"),
            created_at=from_epoch_ms(record["created_at"]),
            updated_at=from_epoch_ms(record["updated_at"]),
        )


class SearchItem(MemoryItem):
    """An item returned from a search, with its similarity score when ranked."""

    score: Optional[float] = None


class MatchCondition(BaseModel):
    """
    A prefix or suffix pattern used to filter namespaces.

    Pattern segments are concrete strings or "*", which matches exactly one
    segment at that position. Patterns are matched against the full path,
    owner id included.
    """

    match_type: NamespaceMatchType
    path: List[str]


class GetOperation(BaseModel):
    kind: Literal["get"] = "get"
    namespace: List[str]
    key: str


class PutOperation(BaseModel):
    """Store a value; ``value=None`` deletes the item."""

    kind: Literal["put"] = "put"
    namespace: List[str]
    key: str
    value: Any = None
    index: Optional[List[str]] = Field(
        default=None, description="JSON paths of value fragments to embed"
    )


class SearchOperation(BaseModel):
    kind: Literal["search"] = "search"
    namespace_prefix: List[str] = Field(default_factory=list)
    filter: Optional[Dict[str, Any]] = None
    query: Optional[str] = None
    limit: int = 10
    offset: int = 0


class ListNamespacesOperation(BaseModel):
    kind: Literal["list_namespaces"] = "list_namespaces"
    match_conditions: List[MatchCondition] = Field(default_factory=list)
    max_depth: Optional[int] = None
    limit: int = 100
    offset: int = 0


Operation = Annotated[
    Union[GetOperation, PutOperation, SearchOperation, ListNamespacesOperation],
    Field(discriminator="kind"),
]

_operation_adapter = TypeAdapter(Operation)


def parse_operation(data: Union[dict, BaseModel]):
    """Parse a raw mapping into the matching operation model."""
    if isinstance(data, BaseModel):
        return data
    return _operation_adapter.validate_python(data)


def join_namespace(namespace: List[str]) -> str:
    return "/".join(namespace)


def split_namespace(namespace: str) -> List[str]:
    return namespace.split("/") if namespace else []


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def make_sort_key(namespace: List[str], key: str) -> str:
    """Sort key of an item: ``"<namespace>#<key>"``."""
    return f"{join_namespace(namespace)}#{key}"
