"""Merge helpers for layered configuration and rule fields.

Scope configs are layered global -> project -> package with ``deep_merge``.
Lists in an overriding layer replace the lower layer unless they start with
the ``"+"`` marker (append) or ``"="`` (explicit replace).
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` onto ``base`` without mutating either.

    Example:
        >>> deep_merge({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
        {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result: Dict[str, Any] = dict(base)
    for key, value in (override or {}).items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            result[key] = merge_arrays(current, value)
        else:
            result[key] = value
    return result


def merge_arrays(base: List[Any], override: List[Any]) -> List[Any]:
    """Combine a lower-layer list with an overriding one.

    Example:
        >>> merge_arrays([1, 2], [3])
        [3]
        >>> merge_arrays([1, 2], ["+", 3])
        [1, 2, 3]
    """
    if not override:
        return list(base)
    marker = override[0]
    if marker == "+":
        return [*base, *override[1:]]
    if marker == "=":
        return list(override[1:])
    return list(override)


def union_lists(*lists: Iterable[Any]) -> List[Any]:
    """Concatenate lists, keeping the first occurrence of each item.

    Order is preserved so the lower-priority list comes first.

    Example:
        >>> union_lists(["a", "b"], ["b", "c"])
        ['a', 'b', 'c']
    """
    seen: List[Any] = []
    for items in lists:
        for item in items or []:
            if item not in seen:
                seen.append(item)
    return seen


__all__ = ["deep_merge", "merge_arrays", "union_lists"]
