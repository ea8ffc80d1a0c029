"""
Query-fragment library for filterspec.

This module provides:
- Two-stage factories producing MongoDB query fragments
- Fragment merging and minimization
- Negation and regex rewrites

Example:
    >>> from filterspec.query import And, Eq, Gte, Not
    >>>
    >>> Gte("price")(3)
    {'price': {'$gte': 3}}
    >>> And([Eq("a")(1), Not(Eq("b"))(2)])()
    {'a': 1, 'b': {'$not': {'$eq': 2}}}
"""

from .filters import (
    MISSING,
    Eq,
    Ne,
    Gt,
    Gte,
    Lt,
    Lte,
    In,
    Nin,
    Or,
    And,
    Nor,
    Not,
    Exists,
    Type,
    Mod,
    Regex,
    Text,
    Where,
    All,
    ElemMatch,
    Size,
)

from .rewrite import (
    merge_fragments,
    collapse_or,
    compact_regex,
    negate_fragment,
    negate_value,
    negate_where,
    is_regex_spec,
)

__all__ = [
    # Factories
    "MISSING",
    "Eq",
    "Ne",
    "Gt",
    "Gte",
    "Lt",
    "Lte",
    "In",
    "Nin",
    "Or",
    "And",
    "Nor",
    "Not",
    "Exists",
    "Type",
    "Mod",
    "Regex",
    "Text",
    "Where",
    "All",
    "ElemMatch",
    "Size",
    # Rewrites
    "merge_fragments",
    "collapse_or",
    "compact_regex",
    "negate_fragment",
    "negate_value",
    "negate_where",
    "is_regex_spec",
]
