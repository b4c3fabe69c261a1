"""
Core infrastructure components.

- Key template engine and entity mapper registry
- Dynamic record adapter (model <-> StoreRecord <-> DynamoDB item)
- TableGateway: thin wrapper over boto3 DynamoDB operations
- BlobGateway: thin wrapper over boto3 S3 operations for backup documents
"""

from .blob_gateway import BlobGateway
from .key_template import resolve_key_template, template_fields
from .record_adapter import item_to_record, record_to_item, to_model, to_record
from .registry import MapperRegistry
from .table_gateway import (
    TableGateway,
    create_dynamodb_resource,
    list_table_names,
    map_dynamodb_error,
)

__all__ = [
    "resolve_key_template",
    "template_fields",
    "MapperRegistry",
    "to_record",
    "to_model",
    "record_to_item",
    "item_to_record",
    "TableGateway",
    "create_dynamodb_resource",
    "list_table_names",
    "map_dynamodb_error",
    "BlobGateway",
]
