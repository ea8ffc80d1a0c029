"""
Deep clone and deep equality over plain nested data.

Filter values and fragments are dicts, lists and scalars, plus the odd
compiled regex, date or numpy value. ``==`` on numpy arrays does not return
a bool, so equality walks the structure itself.
"""

import copy
from typing import Any, Mapping

import numpy as np

from .validation import is_nan


def clone_value(value: Any) -> Any:
    """
    Return a deep copy of a value.

    Compiled patterns and functions are atomic under ``copy.deepcopy`` and
    come back as the same object.
    """
    return copy.deepcopy(value)


def values_equal(a: Any, b: Any) -> bool:
    """
    Deep equality that understands numpy arrays.

    Args:
        a: First value
        b: Second value

    Returns:
        True if both values hold the same data
    """
    if a is b:
        return True

    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if not (isinstance(a, np.ndarray) and isinstance(b, np.ndarray)):
            return False
        return a.shape == b.shape and bool(np.array_equal(a, b))

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(values_equal(a[k], b[k]) for k in a)

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if type(a) is not type(b) or len(a) != len(b):
            return False
        return all(values_equal(x, y) for x, y in zip(a, b))

    if is_nan(a) and is_nan(b):
        return True

    # bool is an int, keep True and 1 apart
    if isinstance(a, bool) != isinstance(b, bool):
        return False

    try:
        result = a == b
    except (TypeError, ValueError):
        return False
    return bool(result) if isinstance(result, (bool, np.bool_)) else False


def to_plain(value: Any) -> Any:
    """Convert numpy scalars and arrays inside a structure to builtins."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.datetime64):
        return value.astype("datetime64[us]").item()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Mapping):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value
