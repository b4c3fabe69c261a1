"""
Sample domain models.

Storable models declare ``class Meta(TableMeta)``; AuditNote is a plain model
and is ignored by module discovery.
"""

from datetime import datetime
from typing import Annotated, List, Optional, Set

from pydantic import BaseModel, Field

from dynamodb_mapper.models import PartitionKey, RowKey, TableMeta


class UserProfile(BaseModel):
    first_name: str
    last_name: str
    contact: Annotated[str, PartitionKey(), RowKey()]
    age: Optional[int] = None

    class Meta(TableMeta):
        table_name = "UserProfiles"


class SensorReading(BaseModel):
    device: str
    region: str
    sequence: int
    value: float = 0.0
    recorded_at: Optional[datetime] = None

    class Meta(TableMeta):
        table_name = "SensorReadings"
        partition_key_template = "{{region}}-{{device}}"
        row_key_template = "{{sequence}}"


class TaggedAsset(BaseModel):
    owner: Annotated[str, PartitionKey()]
    asset_id: Annotated[str, RowKey()]
    tags: Set[str] = Field(default_factory=set)
    checksum: Optional[bytes] = None
    history: List[int] = Field(default_factory=list)

    class Meta(TableMeta):
        row_key_template = "asset-{{asset_id}}"


class AuditNote(BaseModel):
    text: str
