"""
Batch Write Dispatcher

Executes insert / insert-or-replace / merge / merge-or-insert writes for
mapped models:
- Records are grouped into sub-batches sharing one partition key, each at most
  ``max_batch_size`` records, and each sub-batch is submitted as one
  TransactWriteItems call
- INSERT and MERGE carry existence conditions; conditional failures surface
  as ConflictError
- A missing table is created and the whole call retried exactly once when
  auto-create is enabled; a second missing-table failure propagates

The raw import path (``import_records``) replays StoreRecords into a named
table and is what restores use.
"""

import json
import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, List, Type

from boto3.dynamodb.types import Binary
from pydantic import BaseModel

from ..config import DynamoDBConfig
from ..core import MapperRegistry, TableGateway, record_to_item, to_record
from ..exceptions import TableNotFoundError, ValidationError
from ..models import (
    PARTITION_KEY_ATTRIBUTE,
    ROW_KEY_ATTRIBUTE,
    TIMESTAMP_ATTRIBUTE,
    StoreOperation,
    StoreRecord,
)
from ..utils import utc_now_iso

logger = logging.getLogger(__name__)

MAX_ITEM_SIZE_BYTES = 400 * 1024


def _size_default(value: Any) -> Any:
    # Binary.__str__ returns bytes, which json cannot use
    if isinstance(value, Binary):
        value = value.value
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)


def group_into_batches(records: Iterable[StoreRecord], max_batch_size: int) -> List[List[StoreRecord]]:
    """Split records into single-partition batches of at most ``max_batch_size``.

    Partitions appear in first-seen order and records keep their relative
    order inside a partition.
    """
    by_partition: "OrderedDict[str, List[StoreRecord]]" = OrderedDict()
    for record in records:
        by_partition.setdefault(record.partition_key, []).append(record)

    batches = []
    for partition_records in by_partition.values():
        for i in range(0, len(partition_records), max_batch_size):
            batches.append(partition_records[i:i + max_batch_size])
    return batches


class BatchWriteDispatcher:
    """
    Write API for mapped models and raw records.

    Every write goes through single-partition transactional batches; the
    dispatcher never mixes partitions in one physical batch.
    """

    def __init__(
        self,
        config: DynamoDBConfig,
        registry: MapperRegistry,
        gateway_provider: Callable[[str], TableGateway]
    ):
        """Initialize the dispatcher.

        Args:
            config: DynamoDB configuration
            registry: Registry resolving entity types to mappings
            gateway_provider: Returns the gateway of a physical table name
        """
        self.config = config
        self.registry = registry
        self.gateway_provider = gateway_provider
        self.auto_create_tables = config.auto_create_tables

    # -------------------------------------------------------------------------
    # Mapped model writes
    # -------------------------------------------------------------------------

    def execute(self, operation: StoreOperation, entity_type: Type[BaseModel], models: Iterable[BaseModel]) -> int:
        """
        Write models of one mapped type with the given semantics.

        Args:
            operation: Write semantics
            entity_type: Registered domain type
            models: Instances of ``entity_type``

        Returns:
            Number of records written

        Raises:
            MappingError: Type not registered or a key template is invalid
            TemplateResolutionError: A key property is None
            ConflictError: INSERT of an existing key or MERGE of a missing one
            TableNotFoundError: Table missing (after the single retry, if enabled)
        """
        operation = StoreOperation(operation)
        mapping = self.registry.lookup(entity_type)
        records = [to_record(model, mapping) for model in models]
        if not records:
            return 0

        table_name = self.config.get_table_name(mapping.table_name)
        written = self._write_with_auto_create(operation, table_name, records)
        logger.info(f"{operation.value}: wrote {written} {entity_type.__name__} records to {table_name}")
        return written

    def insert(self, entity_type: Type[BaseModel], models: Iterable[BaseModel]) -> int:
        return self.execute(StoreOperation.INSERT, entity_type, models)

    def insert_or_replace(self, entity_type: Type[BaseModel], models: Iterable[BaseModel]) -> int:
        return self.execute(StoreOperation.INSERT_OR_REPLACE, entity_type, models)

    def merge(self, entity_type: Type[BaseModel], models: Iterable[BaseModel]) -> int:
        return self.execute(StoreOperation.MERGE, entity_type, models)

    def merge_or_insert(self, entity_type: Type[BaseModel], models: Iterable[BaseModel]) -> int:
        return self.execute(StoreOperation.MERGE_OR_INSERT, entity_type, models)

    # -------------------------------------------------------------------------
    # Raw import path
    # -------------------------------------------------------------------------

    def import_records(self, table_name: str, records: Iterable[StoreRecord]) -> int:
        """
        Insert-or-replace raw records into a physical table.

        Same batching and auto-create rules as mapped writes; the table name is
        used as given (no prefix is applied).
        """
        records = list(records)
        if not records:
            return 0
        return self._write_with_auto_create(StoreOperation.INSERT_OR_REPLACE, table_name, records)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _write_with_auto_create(
        self,
        operation: StoreOperation,
        table_name: str,
        records: List[StoreRecord],
        allow_create: bool = True
    ) -> int:
        gateway = self.gateway_provider(table_name)
        try:
            return self._write_batches(gateway, operation, records)
        except TableNotFoundError:
            if not (self.auto_create_tables and allow_create):
                raise
            logger.warning(f"Table {table_name} does not exist, creating it and retrying once")
            gateway.create(ignore_if_exists=True)
            return self._write_with_auto_create(operation, table_name, records, allow_create=False)

    def _write_batches(self, gateway: TableGateway, operation: StoreOperation, records: List[StoreRecord]) -> int:
        timestamp = utc_now_iso()
        transact_batches = []
        for batch in group_into_batches(records, self.config.max_batch_size):
            transact_batches.append(
                [self._build_transact_item(operation, gateway.table_name, record, timestamp) for record in batch]
            )

        written = 0
        for transact_items in transact_batches:
            gateway.transact_write_items(transact_items)
            written += len(transact_items)
            logger.debug(f"Committed batch of {len(transact_items)} records to {gateway.table_name}")
        return written

    def _build_transact_item(
        self,
        operation: StoreOperation,
        table_name: str,
        record: StoreRecord,
        timestamp: str
    ) -> Dict[str, Any]:
        # Plain Python values; the resource's client applies TypeSerializer itself
        item = record_to_item(record)
        item.setdefault(TIMESTAMP_ATTRIBUTE, timestamp)
        self._validate_item_size(item, record)

        if operation in (StoreOperation.INSERT, StoreOperation.INSERT_OR_REPLACE):
            put: Dict[str, Any] = {'TableName': table_name, 'Item': item}
            if operation == StoreOperation.INSERT:
                put['ConditionExpression'] = f"attribute_not_exists({PARTITION_KEY_ATTRIBUTE})"
            return {'Put': put}

        update_parts = []
        expression_names = {}
        expression_values = {}
        attributes = [(name, value) for name, value in item.items()
                      if name not in (PARTITION_KEY_ATTRIBUTE, ROW_KEY_ATTRIBUTE)]
        for i, (name, value) in enumerate(attributes):
            update_parts.append(f"#a{i} = :v{i}")
            expression_names[f"#a{i}"] = name
            expression_values[f":v{i}"] = value

        update: Dict[str, Any] = {
            'TableName': table_name,
            'Key': {
                PARTITION_KEY_ATTRIBUTE: record.partition_key,
                ROW_KEY_ATTRIBUTE: record.row_key
            },
            'UpdateExpression': "SET " + ", ".join(update_parts),
            'ExpressionAttributeNames': expression_names,
            'ExpressionAttributeValues': expression_values
        }
        if operation == StoreOperation.MERGE:
            update['ConditionExpression'] = f"attribute_exists({PARTITION_KEY_ATTRIBUTE})"
        return {'Update': update}

    def _validate_item_size(self, item: Dict[str, Any], record: StoreRecord) -> None:
        """Approximate the DynamoDB item size and reject items over 400KB."""
        item_size = len(json.dumps(item, default=_size_default, separators=(',', ':')).encode('utf-8'))
        if item_size > MAX_ITEM_SIZE_BYTES:
            raise ValidationError(
                f"Item size {item_size} bytes exceeds 400KB DynamoDB limit for record "
                f"({record.partition_key}, {record.row_key})"
            )
