"""Root of the mapper's exception hierarchy."""

from enum import Enum
from typing import Any, Dict, Optional


class DynamoDBMapperError(Exception):
    """Base class of every error raised by the mapper.

    ``context`` holds structured details of the failure (kind, table, document,
    property, ...). Enum values are stored by value and empty entries dropped,
    so the context can be logged or serialized as is.

    Attributes:
        message: Human-readable error message
        original_error: The exception that caused this error (if any)
        context: Structured details, rendered after the message
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.context: Dict[str, Any] = {
            key: value.value if isinstance(value, Enum) else value
            for key, value in (context or {}).items()
            if value is not None
        }

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} [{details}]"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"
