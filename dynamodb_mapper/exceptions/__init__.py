# Base exception class
from .base import DynamoDBMapperError

# Domain-specific exceptions
from .domain_exceptions import (
    BackupIOError,
    ConflictError,
    ConnectionError,
    DuplicateMappingError,
    MappingError,
    MappingErrorKind,
    QueryError,
    QueryErrorKind,
    RestoreIOError,
    RetryableError,
    StoreOperationError,
    TableNotFoundError,
    TemplateErrorKind,
    TemplateResolutionError,
    ValidationError,
)

__all__ = [
    # Base exception
    "DynamoDBMapperError",

    # Domain exceptions (alphabetically ordered)
    "BackupIOError",
    "ConflictError",
    "ConnectionError",
    "DuplicateMappingError",
    "MappingError",
    "MappingErrorKind",
    "QueryError",
    "QueryErrorKind",
    "RestoreIOError",
    "RetryableError",
    "StoreOperationError",
    "TableNotFoundError",
    "TemplateErrorKind",
    "TemplateResolutionError",
    "ValidationError",
]
