"""
Persistence of saved filter values.
"""

from .serialization import (
    ValueSerializer,
    serialize_values,
    deserialize_values,
)

__all__ = [
    "ValueSerializer",
    "serialize_values",
    "deserialize_values",
]
