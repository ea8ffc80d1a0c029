"""
Core components for filterspec.
"""

from .exceptions import (
    FilterSpecError,
    ConfigurationError,
    ValidationError,
    ConstructionError,
    StorageError,
    SerializationError,
)
from .reactive import Dependency, ChangeNotifier, ROOT
from .spec import (
    FilterSpec,
    FilterDescriptor,
    HookBundle,
    HOOK_NAMES,
    merge_meta,
)
from .filter import Filter, FilterValue, HookContext

__all__ = [
    # Spec
    "FilterSpec",
    "FilterDescriptor",
    "HookBundle",
    "HOOK_NAMES",
    "merge_meta",
    # Instances
    "Filter",
    "FilterValue",
    "HookContext",
    # Reactivity
    "Dependency",
    "ChangeNotifier",
    "ROOT",
    # Exceptions
    "FilterSpecError",
    "ConfigurationError",
    "ValidationError",
    "ConstructionError",
    "StorageError",
    "SerializationError",
]
