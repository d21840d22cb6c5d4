from __future__ import annotations

import operator
from typing import Any, Callable, Iterable, Literal, NamedTuple

Operator = Literal["=", "!=", ">", ">=", "<", "<="]

OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


class Filter(NamedTuple):
    field: str
    op: Operator
    value: Any


def eq(field: str, value: Any) -> Filter:
    return Filter(field, "=", value)


def gt(field: str, value: Any) -> Filter:
    return Filter(field, ">", value)


def validate_filters(filters: Iterable[Filter]) -> list[Filter]:
    checked = []
    for f in filters:
        if f.op not in OPERATORS:
            raise ValueError(f"unsupported filter operator: {f.op!r}")
        checked.append(f)
    return checked


def matches(data: dict[str, Any], filters: Iterable[Filter]) -> bool:
    """
    Evaluate filters against a document in-process.
    A missing field or an incomparable value never matches.
    """
    for f in filters:
        if f.field not in data:
            return False
        try:
            if not OPERATORS[f.op](data[f.field], f.value):
                return False
        except TypeError:
            return False
    return True
