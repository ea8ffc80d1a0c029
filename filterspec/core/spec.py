"""
Filter specifications.

A specification declares the filters an application exposes: a name, a
converter producing a query fragment, optional metadata and optional
lifecycle hooks. Input comes in several shapes which are normalized into
an ordered list of :class:`FilterDescriptor`:

    # Compact, converters only
    {"MinPrice": Gte("price")}

    # Full descriptor
    {"MinPrice": {"filter": Gte("price"), "meta": {"label": "Min price"}}}

    # Ordered
    [{"MinPrice": Gte("price")}, {"MaxPrice": Lte("price")}]

    # Tagged
    {"type": "products", "filters": {...}}

Hooks and metadata may also be attached to the converter function itself
(``converter.meta = {...}``, ``converter.before_set = fn``). Converter
attributes come first, config-level values second.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from ..utils.logging import get_logger
from .exceptions import ConfigurationError

logger = get_logger(__name__)

HOOK_NAMES = ("before_set", "before_unset", "before_enable", "before_disable")

CONFIG_KEYS = frozenset(("filter", "meta") + HOOK_NAMES)

Hook = Callable[..., Any]


@dataclass(frozen=True)
class HookBundle:
    """
    One lifecycle hook as supplied from both places it can come from.

    Attributes:
        from_converter: Hook attached to the converter function
        from_config: Hook given in the descriptor config
    """
    from_converter: Optional[Hook] = None
    from_config: Optional[Hook] = None

    def resolve(self) -> Tuple[Hook, ...]:
        """Hooks in invocation order."""
        return tuple(h for h in (self.from_converter, self.from_config) if h is not None)


def merge_meta(from_converter: Optional[Mapping], from_config: Optional[Mapping]) -> Dict[str, Any]:
    """Shallow merge of metadata; config-level keys win."""
    merged: Dict[str, Any] = {}
    merged.update(from_converter or {})
    merged.update(from_config or {})
    return merged


@dataclass
class FilterDescriptor:
    """
    A single named filter within a specification.

    ``name`` and ``converter`` never change once built. ``config_meta`` is
    updated in place by :meth:`FilterSpec.meta`, which also refreshes the
    cached merged metadata.
    """
    name: str
    converter: Callable[..., Dict[str, Any]]
    config_meta: Dict[str, Any] = field(default_factory=dict)
    hooks: Dict[str, HookBundle] = field(default_factory=dict)
    _merged_meta: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _resolved_hooks: Dict[str, Tuple[Hook, ...]] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self):
        self._resolved_hooks = {
            hook: self.hooks.get(hook, HookBundle()).resolve() for hook in HOOK_NAMES
        }
        self.refresh_meta()

    @property
    def converter_meta(self) -> Dict[str, Any]:
        meta = getattr(self.converter, "meta", None)
        return dict(meta) if isinstance(meta, Mapping) else {}

    @property
    def meta(self) -> Dict[str, Any]:
        """Merged metadata (a copy)."""
        return dict(self._merged_meta)

    def refresh_meta(self) -> None:
        self._merged_meta = merge_meta(self.converter_meta, self.config_meta)

    def update_meta(self, values: Mapping[str, Any]) -> None:
        self.config_meta.update(values)
        self.refresh_meta()

    def hooks_for(self, hook: str) -> Tuple[Hook, ...]:
        return self._resolved_hooks.get(hook, ())


class FilterSpec:
    """
    Normalized, ordered set of filter descriptors.

    Args:
        spec: Filter declarations in any of the accepted shapes
        type: Optional opaque tag; a ``type`` key in ``spec`` is used when
            this is not given
        strict: Reject unknown descriptor config keys. Defaults to
            ``Settings.strict_config``.

    Raises:
        ConfigurationError: On empty, malformed or duplicate declarations
    """

    def __init__(
        self,
        spec: Any,
        type: Optional[str] = None,
        strict: Optional[bool] = None,
    ):
        if strict is None:
            from ..config import get_settings
            strict = get_settings().strict_config

        self._type = type
        self._descriptors: Dict[str, FilterDescriptor] = {}

        items = self._flatten(spec)
        if self._type is not None and not isinstance(self._type, str):
            raise ConfigurationError(
                f"Filter spec type must be a string, got {self._type!r}"
            )

        for name, config in items:
            self._descriptors[name] = self._build_descriptor(name, config, strict)

        logger.debug(
            f"Built filter spec type={self._type!r} with filters {self.names()}"
        )

    def _flatten(self, spec: Any) -> List[Tuple[str, Any]]:
        """Unwrap ``{"type", "filters"}`` and ordered lists into (name, config) pairs."""
        if isinstance(spec, Mapping) and "filters" in spec:
            if self._type is None:
                self._type = spec.get("type")
            spec = spec["filters"]

        if isinstance(spec, Mapping):
            items = list(spec.items())
        elif isinstance(spec, (list, tuple)):
            items = []
            for entry in spec:
                if not isinstance(entry, Mapping) or len(entry) != 1:
                    raise ConfigurationError(
                        f"Ordered filter lists must hold single-entry mappings, got {entry!r}"
                    )
                items.extend(entry.items())
        else:
            raise ConfigurationError(
                f"Filter spec must be a mapping or a list, got {type(spec).__name__}"
            )

        if not items:
            raise ConfigurationError("No filters supplied")

        seen = set()
        for name, _ in items:
            if not isinstance(name, str) or not name:
                raise ConfigurationError(f"Filter names must be non-empty strings, got {name!r}")
            if name in seen:
                raise ConfigurationError(f"Duplicate filter name '{name}'")
            seen.add(name)

        return items

    def _build_descriptor(self, name: str, config: Any, strict: bool) -> FilterDescriptor:
        if callable(config):
            config = {"filter": config}

        if not isinstance(config, Mapping):
            raise ConfigurationError(
                f"Filter '{name}' must be a converter or a mapping, got {type(config).__name__}"
            )

        converter = config.get("filter")
        if not callable(converter):
            raise ConfigurationError(f"Filter '{name}' has no callable 'filter'")

        unknown = set(config) - CONFIG_KEYS
        if unknown:
            if strict:
                raise ConfigurationError(
                    f"Unknown keys {sorted(unknown)} in config of filter '{name}'"
                )
            logger.warning(f"Ignoring unknown keys {sorted(unknown)} in filter '{name}'")

        meta = config.get("meta")
        if meta is not None and not isinstance(meta, Mapping):
            raise ConfigurationError(f"Metadata of filter '{name}' must be a mapping")

        hooks = {}
        for hook in HOOK_NAMES:
            bundle = HookBundle(
                from_converter=_callable_or_none(getattr(converter, hook, None)),
                from_config=_callable_or_none(config.get(hook), name, hook),
            )
            if bundle.resolve():
                hooks[hook] = bundle

        return FilterDescriptor(
            name=name,
            converter=converter,
            config_meta=dict(meta or {}),
            hooks=hooks,
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    def descriptor(self, name: str) -> FilterDescriptor:
        """
        Look up a descriptor.

        Raises:
            ConfigurationError: If there is no such filter
        """
        try:
            return self._descriptors[name]
        except (KeyError, TypeError):
            raise ConfigurationError(f"There is no filter spec for {name!r}") from None

    def names(self) -> List[str]:
        """Filter names in canonical order (a copy)."""
        return list(self._descriptors)

    def type(self) -> Optional[str]:
        return self._type

    def meta(self, name: Any = None, value: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Get or set filter metadata.

        - ``meta()``: every filter's merged metadata, by name
        - ``meta(name)``: one filter's merged metadata
        - ``meta({name: {...}, ...})``: merge into several filters
        - ``meta(name, {...})``: merge into one filter's config-level metadata
        """
        if name is None:
            return {n: d.meta for n, d in self._descriptors.items()}

        if isinstance(name, Mapping):
            for key, meta in name.items():
                self.meta(key, meta)
            return None

        descriptor = self.descriptor(name)
        if value is None:
            return descriptor.meta

        if not isinstance(value, Mapping):
            raise ConfigurationError(f"Metadata for filter '{name}' must be a mapping")
        descriptor.update_meta(value)
        return None

    def __contains__(self, name: Any) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[FilterDescriptor]:
        return iter(list(self._descriptors.values()))

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        return f"FilterSpec(type={self._type!r}, filters={self.names()})"


def _callable_or_none(hook: Any, name: Optional[str] = None, hook_name: str = "") -> Optional[Hook]:
    if hook is None:
        return None
    if callable(hook):
        return hook
    if name is not None:
        raise ConfigurationError(f"Hook {hook_name} of filter '{name}' must be callable")
    return None
