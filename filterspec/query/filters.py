"""
MongoDB query-fragment factories.

Every factory is a two-stage constructor: ``Factory(field)`` validates its
arguments and returns a converter, ``converter(value)`` validates the value
and returns a query fragment. Converters raise ``ValidationError`` instead
of returning partial results.

Supports:
- Comparison (Eq, Ne, Gt, Gte, Lt, Lte)
- Membership (In, Nin)
- Logical (And, Or, Nor, Not)
- Element (Exists, Type)
- Evaluation (Mod, Regex, Text, Where)
- Array (All, ElemMatch, Size)

Example:
    >>> Gte("price")(3)
    {'price': {'$gte': 3}}
    >>>
    >>> And({"a": Eq("f1"), "b": Eq("f1")})({"a": 1, "b": 2})
    {'f1': 1, '$and': [{'f1': 2}]}
    >>>
    >>> Not(Eq("price"))(5)
    {'price': {'$not': {'$eq': 5}}}
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
import re

from ..core.exceptions import ValidationError
from ..utils.validation import (
    coerce_float,
    coerce_int,
    is_nan,
    is_number,
    validate_field,
)
from ..utils.values import clone_value
from .rewrite import collapse_or, compact_regex, merge_fragments, negate_fragment

Fragment = Dict[str, Any]
Converter = Callable[..., Fragment]
SubFilters = Union[Sequence[Any], Mapping[str, Any]]


class _Missing:
    """Marker for a converter called without a value."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def _converter(name: str, fn: Converter) -> Converter:
    """Give a converter the operator's name, so hooks/meta read naturally."""
    fn.__name__ = name
    fn.__qualname__ = name
    return fn


def _require(value: Any, field: str, factory: str) -> None:
    if value is MISSING:
        raise ValidationError(f"{factory} requires a value", field, None)


# =============================================================================
# Comparison
# =============================================================================

def _check_scalar(value: Any, field: str, factory: str) -> Any:
    _require(value, field, factory)
    if value is not None and not isinstance(value, str) and not is_number(value):
        raise ValidationError(f"Invalid value passed to {factory}", field, value)
    return value


def Eq(field: str) -> Converter:
    """
    Eq(field)(value) -> {field: value}

    ``value`` must be a string, a number or None.
    """
    field = validate_field(field, "Eq")

    def convert(value: Any = MISSING) -> Fragment:
        return {field: _check_scalar(value, field, "Eq")}

    return _converter("Eq", convert)


def Ne(field: str) -> Converter:
    """Ne(field)(value) -> {field: {"$ne": value}}"""
    field = validate_field(field, "Ne")

    def convert(value: Any = MISSING) -> Fragment:
        return {field: {"$ne": _check_scalar(value, field, "Ne")}}

    return _converter("Ne", convert)


def _comparison(factory: str, operator: str) -> Callable[[str], Converter]:
    def make(field: str) -> Converter:
        field = validate_field(field, factory)

        def convert(value: Any = MISSING) -> Fragment:
            _require(value, field, factory)
            return {field: {operator: coerce_float(value, field, factory)}}

        return _converter(factory, convert)

    make.__name__ = make.__qualname__ = factory
    make.__doc__ = (
        f"{factory}(field)(value) -> {{field: {{\"{operator}\": value}}}}\n\n"
        "Numbers and dates pass through, anything else is coerced with float()."
    )
    return make


Gt = _comparison("Gt", "$gt")
Gte = _comparison("Gte", "$gte")
Lt = _comparison("Lt", "$lt")
Lte = _comparison("Lte", "$lte")


# =============================================================================
# Membership
# =============================================================================

def _check_list(value: Any, field: str, factory: str) -> List[Any]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"Invalid value passed to {factory}", field, value)
    return list(value)


def In(field: str) -> Converter:
    """
    In(field)([values]) -> {field: {"$in": [values]}}

    A single-element list degrades to ``Eq(field)(element)``.
    """
    field = validate_field(field, "In")
    equals = Eq(field)

    def convert(values: Any = MISSING) -> Fragment:
        values = _check_list(values, field, "In")
        if len(values) == 1:
            return equals(values[0])
        return {field: {"$in": values}}

    return _converter("In", convert)


def Nin(field: str) -> Converter:
    """
    Nin(field)([values]) -> {field: {"$nin": [values]}}

    A single-element list degrades to ``Ne(field)(element)``.
    """
    field = validate_field(field, "Nin")
    not_equals = Ne(field)

    def convert(values: Any = MISSING) -> Fragment:
        values = _check_list(values, field, "Nin")
        if len(values) == 1:
            return not_equals(values[0])
        return {field: {"$nin": values}}

    return _converter("Nin", convert)


# =============================================================================
# Logical
# =============================================================================

def _check_sub_filters(filters: Any, factory: str) -> SubFilters:
    if isinstance(filters, (str, bytes)) or not isinstance(
        filters, (list, tuple, Mapping)
    ):
        raise ValidationError(
            f"{factory} takes a single list or mapping argument", factory, filters
        )
    return filters


def _build_branches(
    filters: SubFilters,
    values: Any,
    factory: str,
) -> List[Fragment]:
    """Evaluate sub-filters in input order."""
    if values is MISSING or values is None:
        values = {}
    if not isinstance(values, Mapping):
        raise ValidationError(f"Invalid value passed to {factory}", factory, values)

    if isinstance(filters, Mapping):
        items = list(filters.items())
    else:
        items = list(enumerate(filters))

    branches = []
    for name, query in items:
        if callable(query) and isinstance(filters, Mapping):
            query = query(values[name]) if name in values else query()
        else:
            # Fragments bound at factory time are reused by every call
            query = clone_value(query)
        if not isinstance(query, Mapping):
            raise ValidationError(
                f"{factory} branch did not produce a query", name, query
            )
        branches.append(dict(query))
    return branches


def Or(filters: SubFilters) -> Converter:
    """
    Or({k1: filter1, k2: filter2, k3: filter3(10)})({k1: 2, k2: 4})
        -> {"$or": [filter1(2), filter2(4), filter3(10)]}

    A single branch is unwrapped into the top level.
    """
    filters = _check_sub_filters(filters, "Or")

    def convert(values: Any = MISSING) -> Fragment:
        return collapse_or({"$or": _build_branches(filters, values, "Or")})

    return _converter("Or", convert)


def And(filters: SubFilters) -> Converter:
    """
    And({k1: filter1, k2: filter2})({k1: 2, k2: 4})
        -> {"$and": [filter1(2), filter2(4)]}, minimized

    Non-colliding branches are flattened into one document.
    """
    filters = _check_sub_filters(filters, "And")

    def convert(values: Any = MISSING) -> Fragment:
        return merge_fragments(_build_branches(filters, values, "And"))

    return _converter("And", convert)


def Nor(filters: SubFilters) -> Converter:
    """Nor({k1: filter1, k2: filter2})({k1: 2, k2: 4}) -> {"$nor": [...]}"""
    filters = _check_sub_filters(filters, "Nor")

    def convert(values: Any = MISSING) -> Fragment:
        return {"$nor": _build_branches(filters, values, "Nor")}

    return _converter("Nor", convert)


def Not(converter: Converter) -> Converter:
    """
    Not(Gt(field))(3) -> {field: {"$not": {"$gt": 3}}}

    Scalars are wrapped as ``{"$not": {"$eq": value}}`` and ``$where``
    predicates are inverted, see :func:`negate_fragment`.
    """
    if not callable(converter):
        raise ValidationError("Not takes a single callable argument", "Not", converter)

    def convert(value: Any = MISSING) -> Fragment:
        fragment = converter() if value is MISSING else converter(value)
        return negate_fragment(fragment, getattr(converter, "__name__", None))

    return _converter("Not", convert)


# =============================================================================
# Element
# =============================================================================

def Exists(field: str) -> Converter:
    """
    Exists(field)()      -> {field: {"$exists": True}}
    Exists(field)(False) -> {field: {"$exists": False}}
    """
    field = validate_field(field, "Exists")

    def convert(value: Any = MISSING) -> Fragment:
        if value is MISSING:
            value = True
        return {field: {"$exists": bool(value)}}

    return _converter("Exists", convert)


def Type(field: str, type_code: Any = None) -> Converter:
    """
    Type(field, type_code)() -> {field: {"$type": type_code}}

    Both arguments are bound here; a value passed to the converter is
    ignored.
    """
    if (
        not isinstance(field, str)
        or not field
        or not is_number(type_code)
        or is_nan(type_code)
    ):
        raise ValidationError(
            "Type takes a string field name followed by a number", field, type_code
        )

    def convert(value: Any = MISSING) -> Fragment:
        return {field: {"$type": type_code}}

    return _converter("Type", convert)


# =============================================================================
# Evaluation
# =============================================================================

def Mod(field: str) -> Converter:
    """Mod(field)({"divisor": 5, "remainder": 1}) -> {field: {"$mod": [5, 1]}}"""
    field = validate_field(field, "Mod")

    def convert(value: Any = MISSING) -> Fragment:
        if not isinstance(value, Mapping):
            raise ValidationError("Invalid value passed to Mod", field, value)
        try:
            divisor = coerce_int(value.get("divisor"), field, "Mod")
            remainder = coerce_int(value.get("remainder"), field, "Mod")
        except ValidationError as e:
            raise ValidationError("Invalid value passed to Mod", field, value) from e
        if divisor == 0:
            raise ValidationError("Mod divisor cannot be zero", field, value)
        return {field: {"$mod": [divisor, remainder]}}

    return _converter("Mod", convert)


def Regex(
    field: str,
    pattern: Union[str, int, float, re.Pattern],
    options: Optional[str] = None,
) -> Converter:
    """
    Regex(field, "value")()       -> {field: re.compile("value")}
    Regex(field, "value", "i")()  -> {field: re.compile("value", re.I)}
    Regex(field, re.compile("v", re.I), "m")()
                                  -> {field: re.compile("v", re.I | re.M)}

    The pattern is compiled once, here. A value passed to the converter is
    ignored.
    """
    if (
        not isinstance(field, str)
        or not field
        or not (isinstance(pattern, (str, re.Pattern)) or is_number(pattern))
        or (options is not None and not isinstance(options, str))
    ):
        raise ValidationError("Regex received invalid args", field, pattern)

    query: Dict[str, Any] = {"$regex": pattern}
    if options is not None:
        query["$options"] = options
    compiled = compact_regex(query, field)

    def convert(value: Any = MISSING) -> Fragment:
        return {field: compiled}

    return _converter("Regex", convert)


def Text(language: Optional[str] = None) -> Converter:
    """
    Text(language)(value) -> {"$text": {"$search": value, "$language": language}}

    ``$language`` is left out when no language is given.
    """
    if language is not None and not isinstance(language, str):
        raise ValidationError(
            "Text takes a single optional string argument", "$text", language
        )

    def convert(value: Any = MISSING) -> Fragment:
        if is_number(value):
            value = str(value)
        elif not isinstance(value, str):
            raise ValidationError("Invalid value passed to Text", "$text", value)

        search: Dict[str, Any] = {"$search": value}
        if language:
            search["$language"] = language
        return {"$text": search}

    return _converter("Text", convert)


def Where(predicate: Callable[..., Any]) -> Converter:
    """
    Where(predicate)(value) -> {"$where": fn}

    ``fn(document)`` calls ``predicate(document, value)``, or
    ``predicate(document)`` when the converter got no value. Only
    callables are accepted, not JavaScript source strings.
    """
    if not callable(predicate):
        raise ValidationError(
            "Where takes a single callable argument", "$where", predicate
        )

    def convert(value: Any = MISSING) -> Fragment:
        if value is MISSING:
            def where(document: Any) -> Any:
                return predicate(document)
        else:
            def where(document: Any) -> Any:
                return predicate(document, value)

        where.__name__ = getattr(predicate, "__name__", "where")
        return {"$where": where}

    return _converter("Where", convert)


# =============================================================================
# Array
# =============================================================================

def All(field: str) -> Converter:
    """All(field)(values) -> {field: {"$all": values}}"""
    field = validate_field(field, "All")

    def convert(values: Any = MISSING) -> Fragment:
        return {field: {"$all": _check_list(values, field, "All")}}

    return _converter("All", convert)


def ElemMatch(field: str) -> Converter:
    """ElemMatch(field)({values}) -> {field: {"$elemMatch": {values}}}"""
    field = validate_field(field, "ElemMatch")

    def convert(value: Any = MISSING) -> Fragment:
        if not isinstance(value, Mapping):
            raise ValidationError("Invalid value passed to ElemMatch", field, value)
        return {field: {"$elemMatch": dict(value)}}

    return _converter("ElemMatch", convert)


def Size(field: str) -> Converter:
    """Size(field)(value) -> {field: {"$size": value}}"""
    field = validate_field(field, "Size")

    def convert(value: Any = MISSING) -> Fragment:
        size = coerce_int(value, field, "Size")
        if size < 0:
            raise ValidationError("Size cannot be negative", field, value)
        return {field: {"$size": size}}

    return _converter("Size", convert)
