"""Comparison operators shared by filter and router style nodes."""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, Optional

from automation_engine.core.interpolation import to_display_string


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _numeric(op: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def _cmp(left: Any, right: Any) -> bool:
        a, b = _as_number(left), _as_number(right)
        if a is None or b is None:
            return False
        return op(a, b)

    return _cmp


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return value is False or value == 0


def _equals(left: Any, right: Any) -> bool:
    return left == right or to_display_string(left) == to_display_string(right)


def _regex(left: Any, right: Any) -> bool:
    try:
        return re.search(to_display_string(right), to_display_string(left)) is not None
    except re.error:
        return False


def _lower(value: Any) -> str:
    return to_display_string(value).lower()


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "notEquals": lambda a, b: not _equals(a, b),
    "contains": lambda a, b: _lower(b) in _lower(a),
    "notContains": lambda a, b: _lower(b) not in _lower(a),
    "startsWith": lambda a, b: _lower(a).startswith(_lower(b)),
    "endsWith": lambda a, b: _lower(a).endswith(_lower(b)),
    "gt": _numeric(lambda a, b: a > b),
    "gte": _numeric(lambda a, b: a >= b),
    "lt": _numeric(lambda a, b: a < b),
    "lte": _numeric(lambda a, b: a <= b),
    "exists": lambda a, _b: a is not None,
    "notExists": lambda a, _b: a is None,
    "isEmpty": lambda a, _b: _is_empty(a),
    "isNotEmpty": lambda a, _b: not _is_empty(a),
    "regex": _regex,
}


def evaluate_condition(value: Any, operator: str, compare: Any = None) -> bool:
    """Unknown operators never match."""
    fn = OPERATORS.get(operator)
    if fn is None:
        return False
    return fn(value, compare)


__all__ = ["OPERATORS", "evaluate_condition"]
