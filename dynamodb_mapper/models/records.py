"""
Mapping and Record Models

- EntityMapping: immutable {entity type, table, key templates} descriptor
- StoreRecord: a domain instance in store shape (keys + typed properties)
- StoreOperation: the four supported write semantics
- QueryPage: one page of query results plus the continuation token
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

ModelT = TypeVar('ModelT', bound=BaseModel)

# Reserved attribute names of every mapped table
PARTITION_KEY_ATTRIBUTE = "PartitionKey"
ROW_KEY_ATTRIBUTE = "RowKey"
TIMESTAMP_ATTRIBUTE = "Timestamp"
RESERVED_ATTRIBUTES = (PARTITION_KEY_ATTRIBUTE, ROW_KEY_ATTRIBUTE, TIMESTAMP_ATTRIBUTE)


class EntityMapping(BaseModel):
    """How one domain type is stored: target table and key templates."""

    entity_type: Type[BaseModel] = Field(..., description="Domain model class")
    table_name: str = Field(..., min_length=1, description="Target table name")
    partition_key_template: str = Field(..., min_length=1, description="Partition key template")
    row_key_template: str = Field(..., min_length=1, description="Row key template")

    model_config = ConfigDict(frozen=True)


class StoreOperation(str, Enum):
    """Write semantics supported by the batch dispatcher."""
    INSERT = "insert"
    INSERT_OR_REPLACE = "insert_or_replace"
    MERGE = "merge"
    MERGE_OR_INSERT = "merge_or_insert"


class StoreRecord(BaseModel):
    """A record addressed by partition and row key with named, typed properties."""

    partition_key: str = Field(..., description="Partition key value")
    row_key: str = Field(..., description="Row key value")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Property name -> typed value")
    timestamp: Optional[datetime] = Field(None, description="Last write timestamp reported by the store")


class QueryPage(BaseModel, Generic[ModelT]):
    """One page of models and the token for the next page (None when exhausted)."""

    items: List[ModelT] = Field(default_factory=list)
    continuation_token: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def has_more(self) -> bool:
        return self.continuation_token is not None
