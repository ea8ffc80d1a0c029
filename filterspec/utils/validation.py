"""
Input validation utilities.

Shared by the query-fragment factories to check field names and to
coerce converter values into the shapes MongoDB expects.
"""

from datetime import date
from typing import Any, Dict, Optional
import math
import numbers
import re

import numpy as np

from ..core.exceptions import ValidationError


# MongoDB $options letters and the Python flags they map to
REGEX_OPTION_FLAGS: Dict[str, int] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

# Flags that carry meaning in a $options string, used to go back the other way
REGEX_FLAG_OPTIONS: Dict[int, str] = {
    flag: letter for letter, flag in REGEX_OPTION_FLAGS.items()
}


def validate_field(field: Any, factory: str) -> str:
    """
    Validate the field name given to a factory.

    Args:
        field: The field name
        factory: Factory name, used in the error message

    Returns:
        The validated field name

    Raises:
        ValidationError: If the field is not a non-empty string
    """
    if not isinstance(field, str) or not field:
        raise ValidationError(
            f"{factory} takes a single non-empty string field name, "
            f"got {type(field).__name__}"
        )
    return field


def is_number(value: Any) -> bool:
    """True for ints, floats and numpy numbers. Booleans are not numbers here."""
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (numbers.Real, np.number))


def is_date_like(value: Any) -> bool:
    """True for dates, datetimes and numpy datetime64 values."""
    return isinstance(value, (date, np.datetime64))


def is_nan(value: Any) -> bool:
    try:
        return math.isnan(value)
    except TypeError:
        return False


def coerce_float(value: Any, name: str, factory: str) -> Any:
    """
    Coerce a comparison value.

    Numbers and date-likes pass through unchanged, anything else goes
    through ``float()``.

    Raises:
        ValidationError: If coercion fails or yields NaN
    """
    if is_date_like(value):
        return value

    if is_number(value):
        coerced = value
    elif isinstance(value, (str, bytes)):
        try:
            coerced = float(value)
        except ValueError:
            coerced = math.nan
    else:
        coerced = math.nan

    if is_nan(coerced):
        raise ValidationError(f"Invalid value passed to {factory}", name, value)
    return coerced


def coerce_int(value: Any, name: str, factory: str) -> int:
    """
    Coerce a value to an integer, truncating floats.

    Raises:
        ValidationError: If the value cannot be read as an integer
    """
    if isinstance(value, (numbers.Integral, np.integer)) and not isinstance(
        value, (bool, np.bool_)
    ):
        return int(value)

    if is_number(value):
        if math.isnan(value) or math.isinf(value):
            raise ValidationError(f"Invalid value passed to {factory}", name, value)
        return int(value)

    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            number = math.nan
        if not math.isnan(number) and not math.isinf(number):
            return int(number)

    raise ValidationError(f"Invalid value passed to {factory}", name, value)


def options_to_flags(options: Optional[str], name: Optional[str] = None) -> int:
    """
    Convert a MongoDB ``$options`` string to ``re`` flags.

    Raises:
        ValidationError: On option letters MongoDB does not support
    """
    flags = 0
    for letter in options or "":
        if letter not in REGEX_OPTION_FLAGS:
            raise ValidationError(
                f"Unsupported regex option '{letter}'", name, options
            )
        flags |= REGEX_OPTION_FLAGS[letter]
    return flags


def flags_to_options(flags: int) -> str:
    """Convert ``re`` flags back to a sorted ``$options`` string."""
    return "".join(
        sorted(letter for flag, letter in REGEX_FLAG_OPTIONS.items() if flags & flag)
    )
