"""
filterspec - declarative, validated filters that compile to MongoDB queries.

Example:
    >>> from filterspec import Filter, Gte, In, Regex
    >>>
    >>> # Declare the filters end-users may apply
    >>> Products = Filter.create({
    ...     "MinPrice": Gte("price"),
    ...     "Category": {"filter": In("category"), "meta": {"label": "Category"}},
    ... })
    >>>
    >>> # Pick values and build the query
    >>> f = Products({"MinPrice": 3})
    >>> f.query()
    {'price': {'$gte': 3}}
    >>> f.save()
    {'MinPrice': 3}
"""

from .core import (
    # Main classes
    Filter,
    FilterSpec,
    FilterDescriptor,
    FilterValue,
    HookBundle,
    HookContext,
    Dependency,
    # Exceptions
    FilterSpecError,
    ConfigurationError,
    ValidationError,
    ConstructionError,
    SerializationError,
)

from .query import (
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
    merge_fragments,
)

from .config import Settings, load_config, configure_logging

__version__ = "0.1.0"
__author__ = "filterspec Team"

__all__ = [
    # Main classes
    "Filter",
    "FilterSpec",
    "FilterDescriptor",
    "FilterValue",
    "HookBundle",
    "HookContext",
    "Dependency",
    # Exceptions
    "FilterSpecError",
    "ConfigurationError",
    "ValidationError",
    "ConstructionError",
    "SerializationError",
    # Factories
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
    "merge_fragments",
    # Config
    "Settings",
    "load_config",
    "configure_logging",
]
