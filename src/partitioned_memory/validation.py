"""
Input validation for store operations.

Every check raises ValidationError and runs before any backend or
embedding call.
"""

import json
import math
from numbers import Number
from typing import Any, List, Optional, Sequence

from partitioned_memory.errors import ValidationError
from partitioned_memory.models import WILDCARD, MatchCondition
from partitioned_memory.utils.json_path import parse_json_path
from partitioned_memory.utils.ttl import calculate_ttl_timestamp

MAX_USER_ID_LENGTH = 256
MAX_KEY_LENGTH = 1024
MAX_NAMESPACE_DEPTH = 20
MAX_VALUE_SIZE = 400 * 1024
MAX_EMBEDDING_DIMENSIONS = 10000
MAX_EMBEDDINGS_PER_ITEM = 100
MAX_LIMIT = 1000
MAX_OFFSET = 10000
MAX_DEPTH = 100
MAX_BATCH_SIZE = 100
MAX_JSONPATH_LENGTH = 500
MAX_JSONPATH_COUNT = 50
MAX_TTL_DAYS = 365 * 5

RESERVED_CHARACTERS = ("#", "/")
DISALLOWED_JSONPATH_PATTERNS = ("__proto__", "constructor", "prototype")


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_user_id(user_id: Any) -> None:
    if not isinstance(user_id, str):
        raise ValidationError("User ID must be a string")

    if len(user_id) == 0:
        raise ValidationError("User ID cannot be empty")

    if len(user_id) > MAX_USER_ID_LENGTH:
        raise ValidationError(
            f"User ID exceeds maximum length of {MAX_USER_ID_LENGTH} characters"
        )


def _validate_segment(part: Any, allow_wildcard: bool = False) -> None:
    if not isinstance(part, str):
        raise ValidationError("Namespace parts must be strings")

    if len(part) == 0:
        raise ValidationError("Namespace parts cannot be empty strings")

    if allow_wildcard and part == WILDCARD:
        return

    for character in RESERVED_CHARACTERS:
        if character in part:
            raise ValidationError(f'Namespace parts cannot contain "{character}" character')


def validate_namespace(namespace: Any) -> None:
    """Namespaces are non-empty lists of at most 20 non-empty segments without "#" or "/"."""
    if not isinstance(namespace, (list, tuple)):
        raise ValidationError("Namespace must be a list")

    if len(namespace) == 0:
        raise ValidationError("Namespace cannot be empty")

    if len(namespace) > MAX_NAMESPACE_DEPTH:
        raise ValidationError(
            f"Namespace depth exceeds maximum of {MAX_NAMESPACE_DEPTH} levels"
        )

    for part in namespace:
        _validate_segment(part)


def validate_match_conditions(conditions: Sequence[MatchCondition]) -> None:
    for condition in conditions:
        # Patterns include the owner segment
        if len(condition.path) > MAX_NAMESPACE_DEPTH + 1:
            raise ValidationError(
                f"Match condition path exceeds maximum of {MAX_NAMESPACE_DEPTH + 1} segments"
            )
        for part in condition.path:
            _validate_segment(part, allow_wildcard=True)


def validate_key(key: Any) -> None:
    if not isinstance(key, str):
        raise ValidationError("Key must be a string")

    if len(key) == 0:
        raise ValidationError("Key cannot be empty")

    if len(key) > MAX_KEY_LENGTH:
        raise ValidationError(f"Key exceeds maximum length of {MAX_KEY_LENGTH} characters")

    if "#" in key:
        raise ValidationError('Key cannot contain "#" character')


def validate_value(value: Any) -> None:
    try:
        size = len(json.dumps(value))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Value must be JSON serializable: {e}") from e

    if size > MAX_VALUE_SIZE:
        raise ValidationError(
            f"Value size ({size} bytes) exceeds maximum of {MAX_VALUE_SIZE} bytes"
        )


def validate_pagination(limit: Any, offset: Any) -> None:
    if not _is_integer(limit):
        raise ValidationError("Limit must be an integer")
    if limit < 0:
        raise ValidationError("Limit cannot be negative")
    if limit > MAX_LIMIT:
        raise ValidationError(f"Limit cannot exceed {MAX_LIMIT}")

    if not _is_integer(offset):
        raise ValidationError("Offset must be an integer")
    if offset < 0:
        raise ValidationError("Offset cannot be negative")
    if offset > MAX_OFFSET:
        raise ValidationError(f"Offset cannot exceed {MAX_OFFSET}")


def validate_max_depth(max_depth: Optional[Any]) -> None:
    if max_depth is None:
        return

    if not _is_integer(max_depth):
        raise ValidationError("max_depth must be an integer")

    if max_depth < 1:
        raise ValidationError("max_depth must be at least 1")

    if max_depth > MAX_DEPTH:
        raise ValidationError(f"max_depth cannot exceed {MAX_DEPTH}")


def validate_batch_size(count: Any) -> None:
    if not _is_integer(count):
        raise ValidationError("Operations count must be an integer")

    if count < 1:
        raise ValidationError("Batch must contain at least one operation")

    if count > MAX_BATCH_SIZE:
        raise ValidationError(
            f"Batch size ({count}) exceeds maximum of {MAX_BATCH_SIZE} operations"
        )


def validate_ttl_days(ttl_days: Optional[Any]) -> None:
    if ttl_days is None:
        return

    if not _is_integer(ttl_days):
        raise ValidationError("TTL days must be an integer")

    if ttl_days <= 0:
        raise ValidationError("TTL days must be positive")

    if ttl_days > MAX_TTL_DAYS:
        raise ValidationError(f"TTL days cannot exceed {MAX_TTL_DAYS}")

    try:
        calculate_ttl_timestamp(ttl_days)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def validate_json_paths(paths: Any) -> None:
    """Reject index paths that are too many, too long, unparseable or resemble prototype access."""
    if not isinstance(paths, (list, tuple)):
        raise ValidationError("JSONPath index must be a list")

    if len(paths) > MAX_JSONPATH_COUNT:
        raise ValidationError(f"Too many JSONPath expressions (maximum {MAX_JSONPATH_COUNT})")

    for path in paths:
        if not isinstance(path, str):
            raise ValidationError("JSONPath expression must be a string")

        if len(path) == 0:
            raise ValidationError("JSONPath expression cannot be empty")

        if len(path) > MAX_JSONPATH_LENGTH:
            raise ValidationError(
                f"JSONPath expression exceeds maximum length of {MAX_JSONPATH_LENGTH} characters"
            )

        if any(pattern in path for pattern in DISALLOWED_JSONPATH_PATTERNS):
            raise ValidationError("JSONPath expression contains disallowed patterns")

        parse_json_path(path)


def validate_embeddings(embeddings: Optional[List[List[float]]]) -> None:
    if embeddings is None:
        return

    if not isinstance(embeddings, list):
        raise ValidationError("Embeddings must be a list")

    if len(embeddings) > MAX_EMBEDDINGS_PER_ITEM:
        raise ValidationError(
            f"Number of embeddings ({len(embeddings)}) exceeds maximum of {MAX_EMBEDDINGS_PER_ITEM}"
        )

    for embedding in embeddings:
        if not isinstance(embedding, list):
            raise ValidationError("Each embedding must be a list of numbers")

        if len(embedding) == 0:
            raise ValidationError("Embedding cannot be empty")

        if len(embedding) > MAX_EMBEDDING_DIMENSIONS:
            raise ValidationError(
                f"Embedding dimensions ({len(embedding)}) exceed maximum of {MAX_EMBEDDING_DIMENSIONS}"
            )

        for value in embedding:
            if isinstance(value, bool) or not isinstance(value, Number) or not math.isfinite(value):
                raise ValidationError("Embedding values must be finite numbers")
