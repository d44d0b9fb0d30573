"""Minimal in-memory query matching for decrypted documents.

A query maps field names to either a literal (equality) or an operator
mapping::

    {"publicKey": "0xAAA"}
    {"balance": {"$gte": 1, "$lt": 10}}
    {"chain": {"$in": ["base", "base-sepolia"]}, "label": {"$ne": "cold"}}

Fields are AND-ed together, and so are the operators inside one mapping.
"""

from __future__ import annotations

import operator
from typing import Any, Callable, Mapping, Optional

from custodial_wallet.storage.errors import InvalidQueryError

Query = Mapping[str, Any]

_MISSING = object()

_ORDERING: dict[str, Callable[[Any, Any], bool]] = {
    "$gt": operator.gt,
    "$lt": operator.lt,
    "$gte": operator.ge,
    "$lte": operator.le,
}
OPERATORS = frozenset([*_ORDERING, "$ne", "$in"])


def _is_operator_spec(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and len(value) > 0
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


def _check_operator(op: str, actual: Any, expected: Any) -> bool:
    if op in _ORDERING:
        if actual is _MISSING or actual is None:
            return False
        try:
            return bool(_ORDERING[op](actual, expected))
        except TypeError:
            return False
    if op == "$ne":
        return actual is _MISSING or actual != expected
    if op == "$in":
        if isinstance(expected, (str, bytes)) or not hasattr(expected, "__iter__"):
            raise InvalidQueryError("$in expects a list of values")
        return actual is not _MISSING and actual in list(expected)
    raise InvalidQueryError(f"Unsupported query operator: {op}")


def validate(query: Optional[Query]) -> None:
    """Raise :class:`InvalidQueryError` if *query* uses unknown operators."""
    if not query:
        return
    if not isinstance(query, Mapping):
        raise InvalidQueryError("Query must be a mapping of field -> condition")
    for field, condition in query.items():
        if _is_operator_spec(condition):
            unknown = set(condition) - OPERATORS
            if unknown:
                raise InvalidQueryError(
                    f"Unsupported query operator(s) on '{field}': {sorted(unknown)}"
                )


def matches(document: Mapping[str, Any], query: Optional[Query]) -> bool:
    """Return ``True`` if *document* satisfies every condition in *query*."""
    if not query:
        return True
    for field, condition in query.items():
        actual = document.get(field, _MISSING)
        if _is_operator_spec(condition):
            if not all(_check_operator(op, actual, exp) for op, exp in condition.items()):
                return False
        elif actual is _MISSING or actual != condition:
            return False
    return True
