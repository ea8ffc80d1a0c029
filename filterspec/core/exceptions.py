"""
Custom exceptions for filterspec.
"""

from typing import Any, Optional


class FilterSpecError(Exception):
    """Base exception for filterspec."""
    pass


class ConfigurationError(FilterSpecError):
    """Unknown filter name or invalid specification/config input."""
    pass


class ValidationError(FilterSpecError):
    """
    A value failed a converter's or factory's contract.

    Attributes:
        name: Field or filter name the value was meant for
        value: The offending value
    """

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        value: Any = None,
    ):
        self.reason = message
        self.name = name
        self.value = value
        if name is not None:
            message = f"{message} (filter '{name}', value {value!r})"
        super().__init__(message)

    def for_filter(self, name: str) -> "ValidationError":
        """Re-address the error to a filter name, keeping the field it came from."""
        reason = self.reason
        if self.name is not None and self.name != name:
            reason = f"{reason} on '{self.name}'"
        return type(self)(reason, name, self.value)


class ConstructionError(ValidationError):
    """Invalid initial value passed to a Filter constructor."""
    pass


class StorageError(FilterSpecError):
    """Error related to persisted filter values."""
    pass


class SerializationError(StorageError):
    """Error during serialization/deserialization."""
    pass
