"""
Utility functions for filterspec.
"""

from .validation import (
    validate_field,
    is_number,
    is_date_like,
    coerce_float,
    coerce_int,
    options_to_flags,
    flags_to_options,
)
from .values import clone_value, values_equal, to_plain
from .logging import setup_logger, get_logger, LogContext

__all__ = [
    "validate_field",
    "is_number",
    "is_date_like",
    "coerce_float",
    "coerce_int",
    "options_to_flags",
    "flags_to_options",
    "clone_value",
    "values_equal",
    "to_plain",
    "setup_logger",
    "get_logger",
    "LogContext",
]
