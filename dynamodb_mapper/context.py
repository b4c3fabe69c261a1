"""
Storage Context

Entry point tying configuration, the entity mapper registry, DynamoDB gateways,
the batch write dispatcher and the query executor together.

Registration happens first; the first write or read through the context
freezes the registry, after which mappings are read-only.

Example:
    with StorageContext(DynamoDBConfig.from_env()) as context:
        context.add_entity_mapper(UserProfile, table_name="UserProfiles",
                                  partition_key_template="contact",
                                  row_key_template="contact")
        context.enable_auto_create_table()
        context.merge_or_insert(UserProfile, [user])
        page = context.query(UserProfile)
"""

import logging
from types import ModuleType
from typing import Any, Dict, Iterable, Iterator, List, Optional, Type, Union

from pydantic import BaseModel

from .config import DynamoDBConfig
from .core import MapperRegistry, TableGateway, create_dynamodb_resource, list_table_names
from .handlers import BatchWriteDispatcher, QueryExecutor
from .models import EntityMapping, QueryPage, StoreOperation
from .utils import configure_logging

logger = logging.getLogger(__name__)

ModelsArg = Union[BaseModel, Iterable[BaseModel]]


class StorageContext:
    """Façade over one DynamoDB account/region and one mapper registry."""

    def __init__(
        self,
        config: Optional[DynamoDBConfig] = None,
        registry: Optional[MapperRegistry] = None,
        dynamodb=None
    ):
        """Initialize the context.

        Args:
            config: Configuration (environment based if omitted)
            registry: Registry to use (a fresh one if omitted)
            dynamodb: Shared boto3 DynamoDB resource (created lazily if omitted)
        """
        self.config = config or DynamoDBConfig.from_env()
        configure_logging(self.config)
        self.registry = registry if registry is not None else MapperRegistry()
        self._dynamodb = dynamodb
        self._gateways: Dict[str, TableGateway] = {}
        self.dispatcher = BatchWriteDispatcher(self.config, self.registry, self.gateway_for_table)
        self.executor = QueryExecutor(self.config, self.registry, self.gateway_for_table)

    def __enter__(self) -> 'StorageContext':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        self._gateways.clear()

    @property
    def dynamodb(self):
        """Lazy initialization of the shared DynamoDB resource."""
        if self._dynamodb is None:
            self._dynamodb = create_dynamodb_resource(self.config)
        return self._dynamodb

    def gateway_for_table(self, table_name: str) -> TableGateway:
        """Return the (cached) gateway of a physical table."""
        gateway = self._gateways.get(table_name)
        if gateway is None:
            gateway = TableGateway(self.config, table_name, self.dynamodb)
            self._gateways[table_name] = gateway
        return gateway

    def derive(self) -> 'StorageContext':
        """Create a child context sharing the connection with an unfrozen copy of the mappings."""
        child = StorageContext(self.config, self.registry.copy(), self._dynamodb)
        child.dispatcher.auto_create_tables = self.dispatcher.auto_create_tables
        return child

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def enable_auto_create_table(self) -> 'StorageContext':
        """Create missing tables on write (one create-and-retry per call)."""
        self.dispatcher.auto_create_tables = True
        return self

    def add_entity_mapper(
        self,
        entity_type: Type[BaseModel],
        mapping: Optional[EntityMapping] = None,
        *,
        table_name: Optional[str] = None,
        partition_key_template: Optional[str] = None,
        row_key_template: Optional[str] = None
    ) -> EntityMapping:
        """Register a mapping manually, either as an EntityMapping or by its parts."""
        if mapping is not None:
            return self.registry.register(entity_type, mapping)
        return self.registry.register_mapping(
            entity_type,
            table_name or entity_type.__name__,
            partition_key_template,
            row_key_template
        )

    def add_attribute_mapper(self, source: Union[Type[BaseModel], ModuleType]) -> List[EntityMapping]:
        """Register a storable model, or every storable model of a module, from its markers."""
        if isinstance(source, ModuleType):
            return self.registry.register_all_discoverable(source)
        return [self.registry.register_by_discovery(source)]

    def registered_types(self) -> List[Type[BaseModel]]:
        return self.registry.registered_types()

    def table_name_for(self, entity_type: Type[BaseModel]) -> str:
        return self.config.get_table_name(self.registry.lookup(entity_type).table_name)

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    def create_table(self, entity_type: Type[BaseModel], ignore_if_exists: bool = True) -> bool:
        """Create the table of a mapped type. Returns True when it was created."""
        return self.gateway_for_table(self.table_name_for(entity_type)).create(ignore_if_exists=ignore_if_exists)

    def list_tables(self) -> List[str]:
        return list(list_table_names(self.dynamodb))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def store(self, operation: StoreOperation, entity_type: Type[BaseModel], models: ModelsArg) -> int:
        self.registry.freeze()
        return self.dispatcher.execute(operation, entity_type, _as_list(models))

    def insert(self, entity_type: Type[BaseModel], models: ModelsArg) -> int:
        return self.store(StoreOperation.INSERT, entity_type, models)

    def insert_or_replace(self, entity_type: Type[BaseModel], models: ModelsArg) -> int:
        return self.store(StoreOperation.INSERT_OR_REPLACE, entity_type, models)

    def merge(self, entity_type: Type[BaseModel], models: ModelsArg) -> int:
        return self.store(StoreOperation.MERGE, entity_type, models)

    def merge_or_insert(self, entity_type: Type[BaseModel], models: ModelsArg) -> int:
        return self.store(StoreOperation.MERGE_OR_INSERT, entity_type, models)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def query(
        self,
        entity_type: Type[BaseModel],
        partition_key: Optional[str] = None,
        row_key: Optional[str] = None,
        continuation_token: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None
    ) -> QueryPage:
        self.registry.freeze()
        return self.executor.query(entity_type, partition_key, row_key, continuation_token, limit)

    def get(self, entity_type: Type[BaseModel], partition_key: str, row_key: str) -> Optional[BaseModel]:
        self.registry.freeze()
        return self.executor.get(entity_type, partition_key, row_key)

    def query_all(self, entity_type: Type[BaseModel], partition_key: Optional[str] = None) -> Iterator[BaseModel]:
        self.registry.freeze()
        return self.executor.query_all(entity_type, partition_key)


def _as_list(models: ModelsArg) -> List[BaseModel]:
    if isinstance(models, BaseModel):
        return [models]
    return list(models)
