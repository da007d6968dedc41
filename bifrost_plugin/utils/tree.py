"""Containment and merge rules for parsed configuration trees.

Trees are the plain values produced by JSON/TOML/YAML parsers: ``None``,
``bool``, numbers, strings, lists and dicts with string keys. Every value is
classified into one of the kinds below and compared per kind, so ``True`` is
never equal to ``1`` and ``0`` is never equal to ``False``. Values of any
other type (e.g. TOML dates) are treated as opaque scalars compared with
``==``.

Array elements, including objects nested in arrays, are compared by exact
structural equality. There is no keyed matching of objects inside arrays.
"""

from __future__ import annotations

import copy
from typing import Any, Literal

Kind = Literal["null", "bool", "number", "string", "array", "object", "scalar"]


def kind_of(value: Any) -> Kind:
    """Classify a tree value."""
    if value is None:
        return "null"
    # bool is a subclass of int, so it must be checked first
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "scalar"


def values_equal(left: Any, right: Any) -> bool:
    """Exact structural equality between two tree values."""
    kind = kind_of(left)
    if kind != kind_of(right):
        return False

    if kind == "array":
        return len(left) == len(right) and all(
            values_equal(a, b) for a, b in zip(left, right, strict=True)
        )
    if kind == "object":
        return left.keys() == right.keys() and all(
            values_equal(left[key], right[key]) for key in left
        )
    return bool(left == right)


def array_contains(items: list[Any], value: Any) -> bool:
    """Check whether ``value`` is an element of ``items``."""
    return any(values_equal(item, value) for item in items)


def union_arrays(target: list[Any], source: list[Any]) -> list[Any]:
    """Union two arrays, dropping exact duplicates.

    Order is first-seen: target's elements, then new source elements in
    source order.
    """
    result: list[Any] = []
    for item in [*target, *source]:
        if not array_contains(result, item):
            result.append(copy.deepcopy(item))
    return result


def deep_includes(existing: Any, fragment: Any) -> bool:
    """Check whether ``fragment`` is already contained in ``existing``.

    - Objects: every key of the fragment exists in ``existing`` and its
      value is recursively contained.
    - Arrays: every fragment element is present in the existing array,
      which may hold extra elements in any order.
    - Anything else (including null): equal by value.
    """
    kind = kind_of(fragment)

    if kind == "object":
        if kind_of(existing) != "object":
            return False
        return all(
            key in existing and deep_includes(existing[key], value)
            for key, value in fragment.items()
        )

    if kind == "array":
        if kind_of(existing) != "array":
            return False
        return all(array_contains(existing, item) for item in fragment)

    return values_equal(existing, fragment)


def deep_merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``source`` into a copy of ``target``.

    Keys present only in ``target`` are never removed. For each key in
    ``source``:

    - Objects merge recursively when ``target`` holds an object there,
      otherwise the source object is taken as-is.
    - Arrays are unioned with an existing array (see :func:`union_arrays`),
      otherwise the source array is taken as-is.
    - Scalars (including null) overwrite.

    Neither input is modified.
    """
    output = dict(target)

    for key, value in source.items():
        kind = kind_of(value)
        current = target.get(key)

        if kind == "object" and kind_of(current) == "object":
            output[key] = deep_merge(current, value)
        elif kind == "array" and kind_of(current) == "array":
            output[key] = union_arrays(current, value)
        else:
            output[key] = copy.deepcopy(value)

    return output


def merge_values(target: Any, source: Any) -> Any:
    """Merge two top-level documents of any kind.

    Objects are deep-merged and arrays unioned; any other combination
    yields the source value.
    """
    if kind_of(target) == "object" and kind_of(source) == "object":
        return deep_merge(target, source)
    if kind_of(target) == "array" and kind_of(source) == "array":
        return union_arrays(target, source)
    return copy.deepcopy(source)
