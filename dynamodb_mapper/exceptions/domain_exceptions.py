"""
Domain-Specific Exceptions for the DynamoDB Mapper

All exceptions extend DynamoDBMapperError. Organized by category:
1. Mapping and Key Template Errors
2. Query Errors
3. Data Validation Errors
4. Store Operation Errors (wrapped boto3 failures)
5. Backup and Restore Errors

Mapping, template and query errors signal a programming or configuration
defect and are never recovered locally.
"""

from enum import Enum
from typing import Any, Dict, Optional

from .base import DynamoDBMapperError


# =============================================================================
# Mapping and Key Template Errors
# =============================================================================

class MappingErrorKind(str, Enum):
    """Reasons a mapping could not be registered or used."""
    DUPLICATE_MAPPING = "duplicate_mapping"
    MISSING_KEY_ATTRIBUTE = "missing_key_attribute"
    UNKNOWN_PROPERTY = "unknown_property"
    NOT_REGISTERED = "not_registered"
    NOT_STORABLE = "not_storable"
    REGISTRY_FROZEN = "registry_frozen"


class MappingError(DynamoDBMapperError):
    """Raised when an entity mapping is invalid, missing or conflicting.

    Used for:
    - Duplicate registration of the same entity type
    - Discovery of a type without partition or row key source
    - Key templates that reference undeclared properties
    - Lookups of unregistered types
    """

    def __init__(
        self,
        message: str,
        kind: MappingErrorKind,
        entity_type: Optional[type] = None,
        property_name: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        """Initialize mapping error.

        Args:
            message: Human-readable error message
            kind: Structured reason of the failure
            entity_type: Domain type the mapping belongs to
            property_name: Property referenced by a template (if relevant)
            original_error: Underlying exception, if any
        """
        self.kind = kind
        self.entity_type = entity_type
        self.property_name = property_name
        context: Dict[str, Any] = {'kind': kind.value}
        if entity_type is not None:
            context['entity_type'] = entity_type.__name__
        if property_name:
            context['property'] = property_name
        super().__init__(message, original_error, context)


class DuplicateMappingError(MappingError):
    """Raised when a type is registered twice in the same registry."""

    def __init__(self, entity_type: type):
        super().__init__(
            f"Entity type '{entity_type.__name__}' is already registered",
            MappingErrorKind.DUPLICATE_MAPPING,
            entity_type=entity_type
        )


class TemplateErrorKind(str, Enum):
    NULL_VALUE = "null_value"


class TemplateResolutionError(DynamoDBMapperError):
    """Raised when a key template references a property whose value is None."""

    def __init__(self, template: str, property_name: str, kind: TemplateErrorKind = TemplateErrorKind.NULL_VALUE):
        self.kind = kind
        self.template = template
        self.property_name = property_name
        message = f"Property '{property_name}' referenced by key template '{template}' has no value"
        context = {
            'kind': kind.value,
            'template': template,
            'property': property_name
        }
        super().__init__(message, None, context)


# =============================================================================
# Query Errors
# =============================================================================

class QueryErrorKind(str, Enum):
    INVALID_FILTER_COMBINATION = "invalid_filter_combination"


class QueryError(DynamoDBMapperError):
    """Raised when a query cannot be expressed against the two-level keyspace."""

    def __init__(self, message: str, kind: QueryErrorKind = QueryErrorKind.INVALID_FILTER_COMBINATION):
        self.kind = kind
        super().__init__(message, None, {'kind': kind.value})


# =============================================================================
# Data Validation Errors
# =============================================================================

class ValidationError(DynamoDBMapperError):
    """Raised when data validation fails.

    Used for:
    - Store records that cannot be converted back into a domain model
    - Values that cannot be represented in DynamoDB
    - Request validation failures reported by DynamoDB
    """

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        """Build a validation error.

        Args:
            message: Human-readable error message
            errors: Field name to problem, when known
            original_error: Underlying exception, if any
        """
        self.errors = errors or {}
        context = {
            'validation_errors': self.errors
        }
        super().__init__(message, original_error, context)


# =============================================================================
# Store Operation Errors
# =============================================================================

class StoreOperationError(DynamoDBMapperError):
    """Raised when a DynamoDB operation fails in the backend or transport."""

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        error_code: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        """Initialize store operation error.

        Args:
            message: Human-readable error message
            table_name: Table the failing operation targeted
            error_code: DynamoDB error code reported by botocore
            original_error: Underlying exception, if any
        """
        self.table_name = table_name
        self.error_code = error_code
        context = {}
        if table_name:
            context['table_name'] = table_name
        if error_code:
            context['error_code'] = error_code
        super().__init__(message, original_error, context)


class TableNotFoundError(StoreOperationError):
    """Raised when the target table does not exist.

    This is the only store failure the batch dispatcher recovers from
    (create the table, then retry once) when auto-create is enabled.
    """


class ConflictError(StoreOperationError):
    """Raised when a conditional write fails.

    Used for:
    - Insert of a record whose key already exists
    - Merge of a record that does not exist
    - Transaction conflicts and tables that already exist
    """


class RetryableError(StoreOperationError):
    """Raised when operation fails due to temporary/throttling issues that can be retried."""


class ConnectionError(StoreOperationError):
    """Raised when DynamoDB cannot be reached or rejects the credentials."""


# =============================================================================
# Backup and Restore Errors
# =============================================================================

class BackupIOError(DynamoDBMapperError):
    """Raised when a backup document or the table listing cannot be written or read."""

    def __init__(self, message: str, table_name: Optional[str] = None, document_name: Optional[str] = None, original_error: Optional[Exception] = None):
        self.table_name = table_name
        self.document_name = document_name
        context = {}
        if table_name:
            context['table_name'] = table_name
        if document_name:
            context['document'] = document_name
        super().__init__(message, original_error, context)


class RestoreIOError(DynamoDBMapperError):
    """Raised when a backup document cannot be listed, opened or parsed during restore."""

    def __init__(self, message: str, document_name: Optional[str] = None, table_name: Optional[str] = None, original_error: Optional[Exception] = None):
        self.document_name = document_name
        self.table_name = table_name
        context = {}
        if document_name:
            context['document'] = document_name
        if table_name:
            context['table_name'] = table_name
        super().__init__(message, original_error, context)
