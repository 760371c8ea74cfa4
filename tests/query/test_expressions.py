"""Tests for backend filter expressions."""

import pytest

from partitioned_memory.query.expressions import (
    AnyOf,
    BeginsWith,
    Comparison,
    Contains,
    FilterExpression,
    SortKeyCondition,
    combine,
)


def test_sort_key_condition_matches_prefix():
    condition = SortKeyCondition(begins_with="docs")

    assert condition.matches("docs#k")
    assert condition.matches("docs/a#k")
    assert not condition.matches("notes#k")


def test_comparison_rejects_unknown_operator():
    with pytest.raises(ValueError):
        Comparison(("value", "a"), "~", 1)


@pytest.mark.parametrize(
    "operator,operand,expected",
    [
        ("=", 5, True),
        ("<>", 5, False),
        (">", 4, True),
        (">=", 5, True),
        ("<", 5, False),
        ("<=", 5, True),
    ],
)
def test_numeric_comparisons(operator, operand, expected):
    record = {"value": {"n": 5}}

    assert Comparison(("value", "n"), operator, operand).evaluate(record) is expected


def test_missing_attribute_only_satisfies_not_equal():
    record = {"value": {}}

    assert not Comparison(("value", "n"), "=", 1).evaluate(record)
    assert not Comparison(("value", "n"), ">", 1).evaluate(record)
    assert Comparison(("value", "n"), "<>", 1).evaluate(record)


def test_type_mismatch_never_orders():
    record = {"value": {"n": "5", "flag": True}}

    assert not Comparison(("value", "n"), ">", 1).evaluate(record)
    assert not Comparison(("value", "n"), "=", 5).evaluate(record)
    assert not Comparison(("value", "flag"), "=", 1).evaluate(record)
    assert Comparison(("value", "flag"), "=", True).evaluate(record)


def test_strings_compare_lexicographically():
    record = {"value": {"name": "bob"}}

    assert Comparison(("value", "name"), ">", "alice").evaluate(record)
    assert not Comparison(("value", "name"), "<", "alice").evaluate(record)


def test_contains_and_begins_with_require_strings():
    record = {"namespace": "docs/a", "count": 3}

    assert Contains("namespace", "s/a").evaluate(record)
    assert not Contains("count", "3").evaluate(record)
    assert BeginsWith("namespace", "docs").evaluate(record)
    assert not BeginsWith("missing", "docs").evaluate(record)


def test_any_of_is_disjunction():
    clause = AnyOf((Contains("namespace", "x"), Contains("namespace", "docs")))

    assert clause.evaluate({"namespace": "docs"})
    assert not clause.evaluate({"namespace": "notes"})


def test_combine_ands_and_skips_empty():
    a = FilterExpression((Contains("namespace", "a"),))
    b = FilterExpression((Contains("namespace", "b"),))

    combined = combine(a, None, FilterExpression(), b)

    assert combined.clauses == a.clauses + b.clauses
    assert combined.evaluate({"namespace": "ab"})
    assert not combined.evaluate({"namespace": "a"})
    assert combine(None, FilterExpression()) is None
    assert (a & None) is a


def test_str_renders_readable_expression():
    expression = FilterExpression(
        (Comparison(("value", "n"), ">=", 3), Contains("namespace", "docs"))
    )

    assert str(expression) == "value.n >= 3 AND contains(namespace, 'docs')"
