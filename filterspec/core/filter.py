"""
Filter instances.

``Filter.create(spec)`` builds a Filter class from a specification.
Instances of that class hold the values end-users picked, can enable or
disable them individually, and turn the enabled values into one MongoDB
query document.

Example:
    >>> from filterspec import Filter, Gte, Lte, In
    >>>
    >>> Products = Filter.create({
    ...     "MinPrice": Gte("price"),
    ...     "MaxPrice": Lte("price"),
    ...     "Category": In("category"),
    ... })
    >>>
    >>> f = Products({"MinPrice": 10})
    >>> f = f.set("Category", ["books", "music"])
    >>> f.query()
    {'price': {'$gte': 10}, 'category': {'$in': ['books', 'music']}}
    >>> f = f.disable("MinPrice")
    >>> f.save()
    {'Category': ['books', 'music']}
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Union,
)

from ..query.rewrite import merge_fragments
from ..storage.serialization import deserialize_values, serialize_values
from ..utils.logging import get_logger
from ..utils.values import clone_value, values_equal
from .exceptions import ConfigurationError, ConstructionError, ValidationError
from .reactive import ROOT, ChangeNotifier, Dependency
from .spec import FilterDescriptor, FilterSpec

logger = get_logger(__name__)

Names = Union[str, Iterable[str]]


@dataclass
class FilterValue:
    """A set filter value and whether it currently takes part in queries."""
    value: Any
    enabled: bool = True

    def same_as(self, other: Optional["FilterValue"]) -> bool:
        return (
            other is not None
            and self.enabled == other.enabled
            and values_equal(self.value, other.value)
        )


@dataclass(frozen=True)
class HookContext:
    """
    Passed as the first argument to every lifecycle hook.

    Attributes:
        name: Name of the filter the hook belongs to
        filter: The Filter instance being changed
    """
    name: str
    filter: "Filter"


class _Replacement:
    """The ``replace`` callback handed to ``before_set`` hooks."""

    def __init__(self, context: HookContext, value: Any):
        self.context = context
        self.value = value
        self.active = True

    def __call__(self, value: Any) -> None:
        if not self.active:
            logger.warning(
                f"Ignoring late replacement for filter '{self.context.name}': "
                "before_set hooks must call replace() before returning"
            )
            return
        self.value = value


class Filter:
    """
    Base class for Filter classes built by :meth:`Filter.create`.

    Args:
        values: Initial name -> value mapping, also kept as the baseline
            that :meth:`reset` returns to

    Raises:
        ConfigurationError: Unknown filter name in ``values``
        ConstructionError: A value in ``values`` failed validation
    """

    spec: FilterSpec = None

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        if self.spec is None:
            raise ConfigurationError(
                "Filter can't be used directly, build a class with Filter.create()"
            )

        self._data: Dict[str, FilterValue] = {}
        self._notifier = ChangeNotifier()

        if values:
            try:
                self.set(values)
            except ValidationError as e:
                raise ConstructionError(
                    f"Invalid initial value: {e.reason}", e.name, e.value
                ) from e

        self._baseline: Dict[str, FilterValue] = clone_value(self._data)

    @classmethod
    def create(
        cls,
        spec: Any,
        name: Optional[str] = None,
        type: Optional[str] = None,
    ) -> "type[Filter]":
        """
        Build a Filter class from a specification.

        Args:
            spec: A FilterSpec, or filter declarations FilterSpec accepts
            name: Class name, defaults to the spec type or "Filter"
            type: Optional opaque tag for the spec

        Returns:
            A subclass of Filter bound to the specification
        """
        if not isinstance(spec, FilterSpec):
            spec = FilterSpec(spec, type=type)

        class_name = name or spec.type() or cls.__name__
        if not class_name.isidentifier():
            class_name = cls.__name__

        return _make_class(class_name, cls, spec)

    # =========================================================================
    # Class-level accessors, shared by the class and its instances
    # =========================================================================

    @classmethod
    def names(cls) -> List[str]:
        """Filter names in specification order."""
        return cls.spec.names()

    @classmethod
    def meta(cls, name: Any = None, value: Optional[Mapping[str, Any]] = None) -> Any:
        """See :meth:`FilterSpec.meta`."""
        return cls.spec.meta(name, value)

    @classmethod
    def type(cls) -> Optional[str]:
        """The specification's type tag, or None."""
        return cls.spec.type()

    @classmethod
    def deserialize(cls, data: bytes) -> "Filter":
        """Create an instance from bytes written by :meth:`serialize`."""
        return cls(deserialize_values(data))

    # =========================================================================
    # Reactivity
    # =========================================================================

    def dependency(self, name: Optional[str] = None) -> Dependency:
        """
        The dependency fired when this instance (or one filter) changes.
        """
        if name is None:
            return self._notifier.dependency(ROOT)
        self._descriptor(name)
        return self._notifier.dependency(name)

    def subscribe(
        self,
        callback: Callable[[], None],
        name: Optional[str] = None,
    ) -> Callable[[], None]:
        """
        Call ``callback`` after each operation that changed the state.

        Args:
            callback: Zero-argument function
            name: Only watch this filter

        Returns:
            Function that unsubscribes the callback
        """
        return self.dependency(name).subscribe(callback)

    @contextmanager
    def _batch(self) -> Iterator[None]:
        """
        Group mutations so they notify at most once.

        Only the outermost batch compares against its starting state.
        """
        outermost = not self._notifier.paused
        before = clone_value(self._data) if outermost else None

        def still_changed(key: Hashable) -> bool:
            if key is ROOT:
                return not _states_equal(before, self._data)
            entry = self._data.get(key)
            previous = before.get(key)
            if entry is None or previous is None:
                return (entry is None) != (previous is None)
            return not entry.same_as(previous)

        self._notifier.pause()
        try:
            yield
        finally:
            self._notifier.resume(still_changed if outermost else None)

    def _changed(self, name: str) -> None:
        self._notifier.changed(name)

    # =========================================================================
    # Internals
    # =========================================================================

    def _descriptor(self, name: str) -> FilterDescriptor:
        return self.spec.descriptor(name)

    def _context(self, name: str) -> HookContext:
        return HookContext(name=name, filter=self)

    def _run_hooks(self, descriptor: FilterDescriptor, hook: str) -> None:
        context = self._context(descriptor.name)
        for fn in descriptor.hooks_for(hook):
            fn(context)

    def _convert(self, descriptor: FilterDescriptor, value: Any) -> Dict[str, Any]:
        return descriptor.converter(clone_value(value))

    @staticmethod
    def _flatten_names(names: Iterable[Names]) -> List[str]:
        flat: List[str] = []
        for arg in names:
            if isinstance(arg, (list, tuple, set, frozenset)):
                flat.extend(arg)
            else:
                flat.append(arg)
        return flat

    # =========================================================================
    # Mutations
    # =========================================================================

    def set(self, name: Union[str, Mapping[str, Any]], value: Any = None) -> "Filter":
        """
        Set one value, or several from a mapping.

        ``before_set`` hooks run first as ``hook(context, value, replace)``
        and may call ``replace(new_value)`` before returning to substitute
        the value. Values deep-equal to the stored one are skipped. The
        converter is called to validate the value before it is stored.

        Items of a mapping are applied in order; an item that fails leaves
        the earlier ones applied.

        Raises:
            ConfigurationError: Unknown filter name
            ValidationError: The converter rejected the value
        """
        if isinstance(name, Mapping):
            items = list(name.items())
        else:
            items = [(name, value)]

        with self._batch():
            for key, item in items:
                self._set_one(key, item)

        return self

    def _set_one(self, name: str, value: Any) -> None:
        descriptor = self._descriptor(name)

        replacement = _Replacement(self._context(name), value)
        try:
            for hook in descriptor.hooks_for("before_set"):
                hook(replacement.context, replacement.value, replacement)
        finally:
            replacement.active = False
        value = replacement.value

        entry = self._data.get(name)
        if entry is not None and values_equal(entry.value, value):
            return

        value = clone_value(value)

        # Validate now rather than at query time; the fragment is discarded
        try:
            self._convert(descriptor, value)
        except ValidationError as e:
            raise e.for_filter(name) from e

        if entry is None:
            self._data[name] = FilterValue(value=value, enabled=True)
        else:
            entry.value = value

        logger.debug(f"Set filter '{name}' to {value!r}")
        self._changed(name)

    def unset(self, *names: Names) -> "Filter":
        """
        Remove values. Accepts names and lists of names.

        Raises:
            ConfigurationError: Unknown filter name
        """
        with self._batch():
            for name in self._flatten_names(names):
                descriptor = self._descriptor(name)
                if name not in self._data:
                    continue
                self._run_hooks(descriptor, "before_unset")
                if self._data.pop(name, None) is not None:
                    logger.debug(f"Unset filter '{name}'")
                    self._changed(name)
        return self

    def enable(self, *names: Names) -> "Filter":
        """Re-enable disabled values. Unset names are ignored."""
        return self._toggle(names, True)

    def disable(self, *names: Names) -> "Filter":
        """
        Keep values but leave them out of :meth:`save` and :meth:`query`.
        Unset names are ignored.
        """
        return self._toggle(names, False)

    def _toggle(self, names: Iterable[Names], enabled: bool) -> "Filter":
        hook = "before_enable" if enabled else "before_disable"

        with self._batch():
            for name in self._flatten_names(names):
                descriptor = self._descriptor(name)
                entry = self._data.get(name)
                if entry is None or entry.enabled == enabled:
                    continue

                self._run_hooks(descriptor, hook)

                # The hook may have changed the state itself
                entry = self._data.get(name)
                if entry is None or entry.enabled == enabled:
                    continue

                entry.enabled = enabled
                logger.debug(f"{'Enabled' if enabled else 'Disabled'} filter '{name}'")
                self._changed(name)
        return self

    def clear(self, values: Optional[Mapping[str, Any]] = None) -> "Filter":
        """
        Unset everything not named in ``values``, then set ``values``.
        """
        values = values or {}
        with self._batch():
            self.unset([name for name in list(self._data) if name not in values])
            if values:
                self.set(values)
        return self

    def reset(self, values: Optional[Mapping[str, Any]] = None) -> "Filter":
        """
        Go back to the values given at construction, then set ``values``.
        """
        with self._batch():
            previous = self._data
            self._data = clone_value(self._baseline)
            for name in set(previous) | set(self._data):
                self._changed(name)
            if values:
                self.set(values)
        return self

    def clone(self, values: Optional[Mapping[str, Any]] = None) -> "Filter":
        """
        Copy the enabled values into a new instance of the same class.

        The copy shares this instance's baseline, so resetting it goes back
        to the same construction values.
        """
        other = type(self)()
        other._baseline = self._baseline
        with other._batch():
            other.set(self.save())
            if values:
                other.set(values)
        return other

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, name: str) -> Any:
        """The stored value (a copy), or None if unset. Ignores enabled state."""
        self._descriptor(name)
        entry = self._data.get(name)
        if entry is None:
            return None
        return clone_value(entry.value)

    def enabled(self, name: str) -> bool:
        """True if the filter is set and enabled."""
        self._descriptor(name)
        entry = self._data.get(name)
        return entry is not None and entry.enabled

    def save(self) -> Dict[str, Any]:
        """
        Enabled values, in specification order.

        The result can be passed back to the constructor.
        """
        return {
            name: clone_value(self._data[name].value)
            for name in self.spec.names()
            if name in self._data and self._data[name].enabled
        }

    def query(self, extra: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Build the MongoDB query for the enabled values.

        Args:
            extra: Optional query to merge in, placed before the filters

        Returns:
            The merged query document
        """
        if extra is not None and not isinstance(extra, Mapping):
            raise ValidationError("Extra query must be a mapping", "query", extra)

        fragments = [dict(extra)] if extra else []

        for descriptor in self.spec:
            entry = self._data.get(descriptor.name)
            if entry is None or not entry.enabled:
                continue
            fragments.append(self._convert(descriptor, entry.value))

        return merge_fragments(fragments)

    def serialize(self) -> bytes:
        """Pack :meth:`save` with msgpack."""
        return serialize_values(self.save())

    # =========================================================================
    # Dunder methods
    # =========================================================================

    def __contains__(self, name: Any) -> bool:
        return name in self._data

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Filter):
            return NotImplemented
        return type(self) is type(other) and _states_equal(self._data, other._data)

    __hash__ = None

    def __repr__(self) -> str:
        values = ", ".join(
            f"{name}={entry.value!r}{'' if entry.enabled else ' (disabled)'}"
            for name, entry in self._data.items()
        )
        return f"{type(self).__name__}({values})"


def _states_equal(a: Mapping[str, FilterValue], b: Mapping[str, FilterValue]) -> bool:
    if a.keys() != b.keys():
        return False
    return all(a[name].same_as(b[name]) for name in a)


def _make_class(class_name: str, base: type, spec: FilterSpec) -> type:
    return type(class_name, (base,), {"spec": spec})
