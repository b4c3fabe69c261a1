# Capability markers
from .markers import (
    KeyMarker,
    PartitionKey,
    RowKey,
    TableMeta,
    find_marked_field,
    get_table_meta,
    is_storable,
)

# Mapping and record models
from .records import (
    PARTITION_KEY_ATTRIBUTE,
    RESERVED_ATTRIBUTES,
    ROW_KEY_ATTRIBUTE,
    TIMESTAMP_ATTRIBUTE,
    EntityMapping,
    QueryPage,
    StoreOperation,
    StoreRecord,
)

# Backup models
from .backup import (
    STATS_HEADER,
    BackupSummary,
    FailurePolicy,
    PageStats,
    RestoreSummary,
    TableTransfer,
)

__all__ = [
    # Markers
    "TableMeta",
    "KeyMarker",
    "PartitionKey",
    "RowKey",
    "get_table_meta",
    "is_storable",
    "find_marked_field",

    # Mapping and records
    "EntityMapping",
    "StoreRecord",
    "StoreOperation",
    "QueryPage",
    "PARTITION_KEY_ATTRIBUTE",
    "ROW_KEY_ATTRIBUTE",
    "TIMESTAMP_ATTRIBUTE",
    "RESERVED_ATTRIBUTES",

    # Backup
    "FailurePolicy",
    "PageStats",
    "STATS_HEADER",
    "TableTransfer",
    "BackupSummary",
    "RestoreSummary",
]
