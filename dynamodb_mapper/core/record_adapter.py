"""
Dynamic Record Adapter

Converts domain model instances to StoreRecords and back using a registered
EntityMapping, and StoreRecords to raw DynamoDB items and back.

Pure transforms, no I/O. Key errors propagate from the key template engine;
records that cannot be turned back into a model raise ValidationError.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..models import (
    PARTITION_KEY_ATTRIBUTE,
    RESERVED_ATTRIBUTES,
    ROW_KEY_ATTRIBUTE,
    TIMESTAMP_ATTRIBUTE,
    EntityMapping,
    StoreRecord,
)
from ..utils import from_dynamodb_value, to_dynamodb_value
from .key_template import resolve_key_template

logger = logging.getLogger(__name__)


def to_record(instance: BaseModel, mapping: EntityMapping) -> StoreRecord:
    """Convert a model instance into a StoreRecord.

    Keys are resolved from the mapping's templates; every declared field with
    a value is copied into ``properties`` in declaration order, converted to
    a DynamoDB-compatible type.

    Raises:
        MappingError: A template references an undeclared property
        TemplateResolutionError: A template references a property set to None
    """
    partition_key = resolve_key_template(mapping.partition_key_template, instance)
    row_key = resolve_key_template(mapping.row_key_template, instance)

    dumped = instance.model_dump(exclude_none=True)
    properties = {
        name: to_dynamodb_value(value)
        for name, value in dumped.items()
        if name not in RESERVED_ATTRIBUTES
    }

    return StoreRecord(partition_key=partition_key, row_key=row_key, properties=properties)


def to_model(record: StoreRecord, mapping: EntityMapping) -> BaseModel:
    """Build a new instance of the mapped type from a StoreRecord.

    Properties the model does not declare are ignored; declared fields
    missing from the record keep their model defaults.

    Raises:
        ValidationError: The record does not satisfy the model
    """
    model_class = mapping.entity_type
    known = model_class.model_fields
    values = {
        name: from_dynamodb_value(value)
        for name, value in record.properties.items()
        if name in known
    }

    try:
        return model_class.model_validate(values)
    except PydanticValidationError as e:
        logger.error(f"Failed to convert record ({record.partition_key}, {record.row_key}) to {model_class.__name__}: {e}")
        raise ValidationError(
            f"Failed to convert record to {model_class.__name__}: {e}",
            errors={'errors': e.errors(include_url=False)},
            original_error=e
        ) from e


def record_to_item(record: StoreRecord) -> Dict[str, Any]:
    """Flatten a StoreRecord into a DynamoDB item with the reserved key attributes."""
    item: Dict[str, Any] = {
        PARTITION_KEY_ATTRIBUTE: record.partition_key,
        ROW_KEY_ATTRIBUTE: record.row_key,
    }
    if record.timestamp is not None:
        item[TIMESTAMP_ATTRIBUTE] = to_dynamodb_value(record.timestamp)
    item.update(record.properties)
    return item


def item_to_record(item: Dict[str, Any]) -> StoreRecord:
    """Split a DynamoDB item into keys, timestamp and properties.

    Raises:
        ValidationError: The item lacks a partition or row key
    """
    if PARTITION_KEY_ATTRIBUTE not in item or ROW_KEY_ATTRIBUTE not in item:
        raise ValidationError(
            f"Item is missing '{PARTITION_KEY_ATTRIBUTE}' or '{ROW_KEY_ATTRIBUTE}'",
            errors={'attributes': sorted(item.keys())}
        )

    timestamp = item.get(TIMESTAMP_ATTRIBUTE)
    if isinstance(timestamp, str):
        try:
            timestamp = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
        except ValueError:
            timestamp = None
    elif not isinstance(timestamp, datetime):
        timestamp = None

    return StoreRecord(
        partition_key=str(item[PARTITION_KEY_ATTRIBUTE]),
        row_key=str(item[ROW_KEY_ATTRIBUTE]),
        properties={k: v for k, v in item.items() if k not in RESERVED_ATTRIBUTES},
        timestamp=timestamp
    )
