"""
DynamoDB Mapper Utilities

Shared helpers used by the key template engine, the record adapter and the
backup pipeline.

Key Features:
- UTC normalisation for datetimes (naive values are assumed to be UTC)
- Culture-invariant string conversion for key derivation
- Python value <-> DynamoDB value conversion (Decimal for numbers, native bool,
  ISO strings for datetimes, bytes for binary)
- Package logging configuration
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from boto3.dynamodb.types import Binary

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "dynamodb_mapper"


# =============================================================================
# Datetime Utilities
# =============================================================================

def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC.

    Naive datetimes are assumed to already be in UTC.

    Examples:
        >>> to_utc(datetime(2024, 1, 1, 10, 0))  # -> 2024-01-01 10:00:00+00:00
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Key Stringification
# =============================================================================

def to_invariant_string(value: Any) -> str:
    """Render a property value as a culture-invariant key fragment.

    Examples:
        >>> to_invariant_string(True)
        'true'
        >>> to_invariant_string(Decimal('1.50'))
        '1.50'
    """
    if isinstance(value, Enum):
        return to_invariant_string(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return to_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


# =============================================================================
# Value Conversion (Python <-> DynamoDB)
# =============================================================================

def to_dynamodb_value(obj: Any) -> Any:
    """Recursively convert Python objects to DynamoDB-compatible types.

    - aware datetime -> UTC ISO string; naive datetime -> ISO string without
      offset, so it reads back naive
    - date -> ISO string
    - float -> Decimal (boto3 rejects floats)
    - Enum -> its value
    - bool, int, Decimal, str, bytes, sets -> unchanged
    """
    if isinstance(obj, dict):
        return {k: to_dynamodb_value(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [to_dynamodb_value(list_item) for list_item in obj]
    elif isinstance(obj, Enum):
        return to_dynamodb_value(obj.value)
    elif isinstance(obj, datetime):
        if obj.tzinfo is None:
            return obj.isoformat()
        return to_utc(obj).isoformat()
    elif isinstance(obj, date):
        return obj.isoformat()
    elif isinstance(obj, bool):
        return obj
    elif isinstance(obj, float):
        return Decimal(str(obj))
    else:
        return obj


def from_dynamodb_value(obj: Any) -> Any:
    """Recursively convert values read from DynamoDB into plain Python types.

    Binary wrappers become bytes; everything else (including Decimal) is left
    for model validation to coerce.
    """
    if isinstance(obj, dict):
        return {k: from_dynamodb_value(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [from_dynamodb_value(list_item) for list_item in obj]
    elif isinstance(obj, Binary):
        return obj.value
    else:
        return obj


# =============================================================================
# Logging
# =============================================================================

def configure_logging(config) -> None:
    """Apply the config's logging settings to the package logger."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if config.enable_debug_logging:
        package_logger.setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled for DynamoDB mapper")
