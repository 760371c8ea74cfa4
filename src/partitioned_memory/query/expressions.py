"""
Structured backend expressions.

Key conditions and filter expressions are plain data so that every backend
can apply them its own way. They are evaluated against stored records, which
are dicts keyed by attribute name. Filter clauses always combine with AND.
"""

from dataclasses import dataclass, field
from numbers import Number
from typing import Any, Optional, Tuple, Union

_MISSING = object()

COMPARATORS = ("=", "<>", ">", ">=", "<", "<=")


@dataclass(frozen=True)
class SortKeyCondition:
    """Range condition on the sort key: ``begins_with(namespace_key, prefix)``."""

    begins_with: str

    def matches(self, sort_key: str) -> bool:
        return sort_key.startswith(self.begins_with)

    def __str__(self) -> str:
        return f"begins_with(namespace_key, {self.begins_with!r})"


@dataclass(frozen=True)
class Comparison:
    path: Tuple[str, ...]
    operator: str
    operand: Any

    def __post_init__(self):
        if self.operator not in COMPARATORS:
            raise ValueError(f"Unsupported comparison operator: {self.operator}")

    def evaluate(self, record: dict) -> bool:
        actual = _resolve(record, self.path)
        if actual is _MISSING:
            return self.operator == "<>"
        if self.operator == "=":
            return _same_kind(actual, self.operand) and actual == self.operand
        if self.operator == "<>":
            return not (_same_kind(actual, self.operand) and actual == self.operand)
        if not _same_kind(actual, self.operand) or not isinstance(actual, (Number, str)):
            return False
        if self.operator == ">":
            return actual > self.operand
        if self.operator == ">=":
            return actual >= self.operand
        if self.operator == "<":
            return actual < self.operand
        return actual <= self.operand

    def __str__(self) -> str:
        return f"{'.'.join(self.path)} {self.operator} {self.operand!r}"


@dataclass(frozen=True)
class Contains:
    """Substring test on a string attribute."""

    attribute: str
    operand: str

    def evaluate(self, record: dict) -> bool:
        actual = record.get(self.attribute)
        return isinstance(actual, str) and self.operand in actual

    def __str__(self) -> str:
        return f"contains({self.attribute}, {self.operand!r})"


@dataclass(frozen=True)
class BeginsWith:
    attribute: str
    operand: str

    def evaluate(self, record: dict) -> bool:
        actual = record.get(self.attribute)
        return isinstance(actual, str) and actual.startswith(self.operand)

    def __str__(self) -> str:
        return f"begins_with({self.attribute}, {self.operand!r})"


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of clauses."""

    clauses: Tuple["Clause", ...]

    def evaluate(self, record: dict) -> bool:
        return any(clause.evaluate(record) for clause in self.clauses)

    def __str__(self) -> str:
        return "(" + " OR ".join(str(clause) for clause in self.clauses) + ")"


Clause = Union[Comparison, Contains, BeginsWith, AnyOf]


@dataclass(frozen=True)
class FilterExpression:
    clauses: Tuple[Clause, ...] = field(default_factory=tuple)

    def evaluate(self, record: dict) -> bool:
        return all(clause.evaluate(record) for clause in self.clauses)

    def __and__(self, other: Optional["FilterExpression"]) -> "FilterExpression":
        if other is None:
            return self
        return FilterExpression(self.clauses + other.clauses)

    def __bool__(self) -> bool:
        return bool(self.clauses)

    def __str__(self) -> str:
        return " AND ".join(str(clause) for clause in self.clauses)


def combine(*expressions: Optional[FilterExpression]) -> Optional[FilterExpression]:
    """AND together the given expressions, ignoring empty ones."""
    clauses: Tuple[Clause, ...] = ()
    for expression in expressions:
        if expression:
            clauses += expression.clauses
    return FilterExpression(clauses) if clauses else None


def _resolve(record: dict, path: Tuple[str, ...]) -> Any:
    current: Any = record
    for part in path:
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _kind(value: Any) -> str:
    # bool is an int subclass but stored as a separate type
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, Number):
        return "number"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    if isinstance(value, dict):
        return "map"
    if isinstance(value, (list, tuple)):
        return "list"
    return type(value).__name__


def _same_kind(a: Any, b: Any) -> bool:
    return _kind(a) == _kind(b)
