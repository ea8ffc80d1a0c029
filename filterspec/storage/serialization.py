"""
Serialization utilities for persisted filter values.

``Filter.save()`` returns plain nested data, the same shape the Filter
constructor accepts. This module packs that mapping with msgpack so it can
be stored or sent elsewhere, with extension types for the values msgpack
has no native encoding for:

- ``datetime.datetime`` and ``datetime.date`` (ISO 8601 text)
- compiled regular expressions (pattern plus ``$options`` letters)

numpy scalars and arrays are converted to builtins before packing.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional
import re

import msgpack

from ..config import SerializationConfig, get_settings
from ..core.exceptions import SerializationError
from ..utils.validation import flags_to_options, options_to_flags
from ..utils.values import to_plain


class ValueSerializer:
    """
    msgpack encoder/decoder for filter value mappings.

    Args:
        config: Extension type codes, defaults to the active settings
    """

    def __init__(self, config: Optional[SerializationConfig] = None):
        self.config = config or get_settings().serialization

    def _default(self, obj: Any) -> msgpack.ExtType:
        """Encode values msgpack can't pack natively."""
        if isinstance(obj, datetime):
            return msgpack.ExtType(
                self.config.datetime_ext_code, obj.isoformat().encode("utf-8")
            )
        if isinstance(obj, date):
            return msgpack.ExtType(
                self.config.date_ext_code, obj.isoformat().encode("utf-8")
            )
        if isinstance(obj, re.Pattern):
            payload = msgpack.packb(
                [obj.pattern, flags_to_options(obj.flags)], use_bin_type=True
            )
            return msgpack.ExtType(self.config.regex_ext_code, payload)
        raise TypeError(f"Cannot serialize {type(obj).__name__}")

    def _ext_hook(self, code: int, data: bytes) -> Any:
        """Decode extension types written by ``_default``."""
        if code == self.config.datetime_ext_code:
            return datetime.fromisoformat(data.decode("utf-8"))
        if code == self.config.date_ext_code:
            return date.fromisoformat(data.decode("utf-8"))
        if code == self.config.regex_ext_code:
            pattern, options = msgpack.unpackb(data, raw=False)
            return re.compile(pattern, options_to_flags(options))
        return msgpack.ExtType(code, data)

    def serialize(self, values: Mapping[str, Any]) -> bytes:
        """Serialize a name -> value mapping to bytes."""
        if not isinstance(values, Mapping):
            raise SerializationError(
                f"Expected a mapping of filter values, got {type(values).__name__}"
            )
        try:
            return msgpack.packb(
                to_plain(dict(values)), default=self._default, use_bin_type=True
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise SerializationError(f"Failed to serialize filter values: {e}") from e

    def deserialize(self, data: bytes) -> Dict[str, Any]:
        """Deserialize bytes written by :meth:`serialize`."""
        if not data:
            return {}
        try:
            values = msgpack.unpackb(
                data, raw=False, ext_hook=self._ext_hook, strict_map_key=False
            )
        except (ValueError, TypeError, msgpack.UnpackException) as e:
            raise SerializationError(f"Failed to deserialize filter values: {e}") from e

        if not isinstance(values, dict):
            raise SerializationError(
                f"Expected a mapping of filter values, got {type(values).__name__}"
            )
        return values


def serialize_values(values: Mapping[str, Any]) -> bytes:
    """Serialize filter values with the active settings."""
    return ValueSerializer().serialize(values)


def deserialize_values(data: bytes) -> Dict[str, Any]:
    """Deserialize filter values with the active settings."""
    return ValueSerializer().deserialize(data)
