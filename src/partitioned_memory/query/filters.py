"""
Value filter compilation.

Translates a search filter such as ``{"status": "active", "score": {"$gte": 3}}``
into a backend filter expression over the stored ``value`` document.
"""

import logging
from typing import Any, Dict, Optional

from partitioned_memory.errors import ValidationError
from partitioned_memory.query.expressions import Comparison, FilterExpression

logger = logging.getLogger(__name__)

OPERATORS = {
    "$eq": "=",
    "$ne": "<>",
    "$gt": ">",
    "$gte": ">=",
    "$lt": "<",
    "$lte": "<=",
}

VALUE_ATTRIBUTE = "value"


def is_operator_object(value: Any) -> bool:
    """An operator object is a non-empty dict whose keys all start with "$"."""
    return (
        isinstance(value, dict)
        and len(value) > 0
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


def build_filter_expression(filter: Optional[Dict[str, Any]]) -> Optional[FilterExpression]:
    """
    Compile a value filter into a filter expression.

    Plain values compile to equality. Operator objects compile one clause per
    operator present, in the order $eq, $ne, $gt, $gte, $lt, $lte. All clauses
    are ANDed.

    Args:
        filter: Mapping of value field to a plain value or an operator object

    Returns:
        The compiled expression, or None for an empty filter

    Raises:
        ValidationError: If an operator object uses an unknown operator
    """
    if not filter:
        return None

    clauses = []
    for field_name, field_value in filter.items():
        path = (VALUE_ATTRIBUTE, field_name)

        if is_operator_object(field_value):
            unknown = set(field_value) - set(OPERATORS)
            if unknown:
                raise ValidationError(
                    f"Unsupported filter operator(s) for field '{field_name}': {sorted(unknown)}"
                )
            for operator, comparator in OPERATORS.items():
                if operator in field_value:
                    clauses.append(Comparison(path, comparator, field_value[operator]))
        else:
            clauses.append(Comparison(path, "=", field_value))

    expression = FilterExpression(tuple(clauses))
    logger.debug(f"Compiled filter expression: {expression}")
    return expression
