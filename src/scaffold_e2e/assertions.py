"""Assertions over values extracted from external query output.

Each assertion returns normally or raises AssertionMismatch carrying the
expected and actual values. They double as poll checks: wrap a query and
an assertion in one callable and hand it to the Poller.
"""

from __future__ import annotations

import operator
from collections.abc import Sized
from typing import Any

from .errors import AssertionMismatch

NUMERIC_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


def non_empty_lines(text: str) -> list[str]:
    """Split command output into lines, dropping blank ones."""
    return [line for line in text.splitlines() if line.strip()]


def assert_equals(actual: Any, expected: Any, context: str = "") -> None:
    if actual != expected:
        raise AssertionMismatch.of(expected, actual, context)


def assert_contains(haystack: str, needle: str, context: str = "") -> None:
    if needle not in haystack:
        raise AssertionMismatch.of(f"text containing {needle!r}", haystack, context)


def assert_count_equals(collection: Sized, n: int, context: str = "") -> None:
    if len(collection) != n:
        actual = f"{len(collection)} items: {collection!r}"
        raise AssertionMismatch.of(f"{n} items", actual, context)


def _to_number(value: Any, context: str) -> int | float:
    if isinstance(value, bool):
        raise AssertionMismatch.of("a number", value, context)
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise AssertionMismatch.of("a number", value, context) from None


def assert_numeric(actual: Any, op: str, expected: int | float, context: str = "") -> None:
    """Compare a numeric value, parsing it first if it is query output.

    Args:
        actual: Number, or string holding one (e.g. kubectl template output).
        op: One of ==, !=, >, >=, <, <=.
        expected: Number to compare against.
        context: Label included in the failure message.

    Raises:
        AssertionMismatch: If actual is not a number or the comparison fails.
        ValueError: If op is not a supported operator.
    """
    try:
        compare = NUMERIC_OPERATORS[op]
    except KeyError:
        raise ValueError(f"Unsupported operator: {op}") from None

    number = _to_number(actual, context)
    if not compare(number, expected):
        raise AssertionMismatch.of(f"value {op} {expected}", number, context)
