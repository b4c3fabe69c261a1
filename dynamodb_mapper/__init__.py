from .config import DynamoDBConfig
from .exceptions import (
    BackupIOError,
    ConflictError,
    ConnectionError,
    DuplicateMappingError,
    DynamoDBMapperError,
    MappingError,
    QueryError,
    RestoreIOError,
    RetryableError,
    StoreOperationError,
    TableNotFoundError,
    TemplateResolutionError,
    ValidationError,
)
from .models import (
    # Capability markers
    TableMeta,
    PartitionKey,
    RowKey,
    # Mapping and records
    EntityMapping,
    StoreRecord,
    StoreOperation,
    QueryPage,
    # Backup
    FailurePolicy,
    PageStats,
    BackupSummary,
    RestoreSummary,
)
from .core import (
    MapperRegistry,
    TableGateway,
    BlobGateway,
    resolve_key_template,
)
from .handlers import (
    BatchWriteDispatcher,
    QueryExecutor,
)
from .context import StorageContext
from .backup import BackupService

__version__ = "1.0.0"
__all__ = [
    # Configuration
    "DynamoDBConfig",

    # Entry points
    "StorageContext",
    "BackupService",

    # Exceptions
    "DynamoDBMapperError",
    "MappingError",
    "DuplicateMappingError",
    "TemplateResolutionError",
    "QueryError",
    "ValidationError",
    "StoreOperationError",
    "TableNotFoundError",
    "ConflictError",
    "RetryableError",
    "ConnectionError",
    "BackupIOError",
    "RestoreIOError",

    # Models
    "TableMeta",
    "PartitionKey",
    "RowKey",
    "EntityMapping",
    "StoreRecord",
    "StoreOperation",
    "QueryPage",
    "FailurePolicy",
    "PageStats",
    "BackupSummary",
    "RestoreSummary",

    # Components
    "MapperRegistry",
    "TableGateway",
    "BlobGateway",
    "resolve_key_template",
    "BatchWriteDispatcher",
    "QueryExecutor",
]
