"""
Structural rewrites over MongoDB query fragments.

Fragments built by independent converters have to be combined into one
document without losing constraints, and some operators need reshaping
before MongoDB will accept them:

- ``merge_fragments``: flatten an ``$and`` of fragments into one document,
  keeping colliding fragments under an explicit ``$and``.
- ``collapse_or``: unwrap a single-branch ``$or``.
- ``compact_regex``: turn ``{"$regex": ..., "$options": ...}`` into one
  compiled pattern.
- ``negate_fragment``: push a ``$not`` into every field of a fragment.

None of these mutate their input.

Example:
    >>> merge_fragments([{"a": 1}, {"b": 2}, {"a": 3}])
    {'a': 1, 'b': 2, '$and': [{'a': 3}]}
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
import re

from ..core.exceptions import ValidationError
from ..utils.logging import get_logger
from ..utils.validation import is_number, options_to_flags

logger = get_logger(__name__)

Fragment = Dict[str, Any]

REGEX_KEYS = frozenset(("$regex", "$options"))

# Top-level logical operators whose negation is another operator
NEGATED_OPERATORS = {"$or": "$nor", "$nor": "$or"}


def merge_fragments(fragments: Sequence[Mapping[str, Any]]) -> Fragment:
    """
    Merge fragments that must all match into a single document.

    Fragments whose keys don't collide with anything merged so far are
    copied in flat. A fragment with any colliding key is kept whole in an
    overflow list, stored under ``$and``.

    Args:
        fragments: Fragments in evaluation order

    Returns:
        The merged document (``{}`` when there are no fragments)
    """
    merged: Fragment = {}
    overflow: List[Fragment] = []

    for fragment in fragments:
        if any(key in merged for key in fragment):
            overflow.append(dict(fragment))
        else:
            merged.update(fragment)

    if overflow:
        logger.debug(f"{len(overflow)} fragment(s) kept under $and")
        if "$and" in merged:
            merged["$and"] = list(merged["$and"]) + overflow
        else:
            merged["$and"] = overflow

    return merged


def collapse_or(query: Mapping[str, Any]) -> Fragment:
    """
    Compress ``{"$or": [{"a": 1}]}`` to ``{"a": 1}``.

    Keys of the only branch that are already present at the top level stay
    inside the branch.
    """
    result = dict(query)
    branches = result.get("$or")
    if not branches or len(branches) > 1:
        return result

    branch = dict(branches[0])
    for key in list(branch):
        if key not in result:
            result[key] = branch.pop(key)

    if branch:
        result["$or"] = [branch]
    else:
        del result["$or"]

    return result


def is_regex_spec(value: Any) -> bool:
    """True for mappings holding only ``$regex`` and optionally ``$options``."""
    return (
        isinstance(value, Mapping)
        and "$regex" in value
        and set(value) <= REGEX_KEYS
    )


def compact_regex(query: Any, name: Optional[str] = None) -> Any:
    """
    Compress ``{"$regex": "foo", "$options": "i"}`` to ``re.compile("foo", re.I)``.

    Numeric patterns are stringified. When the pattern is already compiled
    and options are supplied, the flag sets are unioned. Anything that
    isn't a pure regex spec is returned unchanged.

    Raises:
        ValidationError: On a bad pattern or unsupported options
    """
    if not is_regex_spec(query):
        return query

    pattern = query["$regex"]
    options = query.get("$options")

    if options is not None and not isinstance(options, str):
        raise ValidationError("Regex options must be a string", name, options)

    flags = options_to_flags(options, name)

    if isinstance(pattern, re.Pattern):
        if not flags or pattern.flags & flags == flags:
            return pattern
        return _compile(pattern.pattern, pattern.flags | flags, name)

    if is_number(pattern):
        pattern = str(pattern)

    if not isinstance(pattern, str):
        raise ValidationError("Invalid regex pattern", name, pattern)

    return _compile(pattern, flags, name)


def _compile(pattern: str, flags: int, name: Optional[str] = None) -> re.Pattern:
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise ValidationError(f"Invalid regex pattern: {e}", name, pattern) from e


def negate_where(predicate: Callable[..., Any]) -> Callable[..., bool]:
    """Wrap a ``$where`` predicate so it returns the opposite result."""

    def negated(document: Any) -> bool:
        return not predicate(document)

    negated.__name__ = f"not_{getattr(predicate, '__name__', 'where')}"
    return negated


def negate_value(value: Any, name: Optional[str] = None) -> Fragment:
    """
    Negate the value of a single field.

    MongoDB rejects ``{field: {"$not": scalar}}``, so plain values become
    ``{"$not": {"$eq": value}}``. Patterns and operator documents can be
    wrapped directly.
    """
    if isinstance(value, re.Pattern):
        return {"$not": value}

    if is_regex_spec(value):
        return {"$not": compact_regex(value, name)}

    if isinstance(value, Mapping) and value and all(
        isinstance(k, str) and k.startswith("$") for k in value
    ):
        return {"$not": dict(value)}

    return {"$not": {"$eq": value}}


def negate_fragment(fragment: Mapping[str, Any], name: Optional[str] = None) -> Fragment:
    """
    Negate every top-level key of a fragment.

    ``$where`` predicates are wrapped in a new predicate, since
    ``{"$not": {"$where": ...}}`` is not valid. ``$or`` and ``$nor`` swap.

    Raises:
        ValidationError: For operators that have no negated form
    """
    if "$where" in fragment:
        if len(fragment) > 1:
            raise ValidationError(
                "Cannot negate $where combined with other conditions", name, fragment
            )
        predicate = fragment["$where"]
        if not callable(predicate):
            raise ValidationError("$where must hold a callable", name, predicate)
        return {"$where": negate_where(predicate)}

    negated: Fragment = {}
    for key, value in fragment.items():
        if key in NEGATED_OPERATORS:
            negated[NEGATED_OPERATORS[key]] = value
        elif key.startswith("$"):
            raise ValidationError(f"Cannot negate operator {key}", name, fragment)
        else:
            negated[key] = negate_value(value, name)

    return negated
