"""
Backup and Restore Models

Observational records produced by the backup pipeline. Nothing here is read
back by the pipeline itself.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class FailurePolicy(str, Enum):
    """What a backup/restore run does when one table or document fails."""
    ABORT = "abort"
    CONTINUE = "continue"


class PageStats(BaseModel):
    """One exported page: written as a row of the statistics CSV."""

    table_name: str
    page_index: int = Field(..., ge=1)
    item_count: int = Field(..., ge=0)
    memory_footprint_bytes: int = Field(..., ge=0)

    def to_csv_row(self) -> str:
        return f"{self.table_name},{self.page_index},{self.item_count},{self.memory_footprint_bytes}"


STATS_HEADER = "TableName,PageCounter,ItemCount,MemoryFootprint"


class TableTransfer(BaseModel):
    """Outcome of exporting or importing one table."""

    table_name: str
    document_name: str
    page_count: int = 0
    item_count: int = 0
    compressed: bool = True


class BackupSummary(BaseModel):
    container_name: str
    stats_file: Optional[str] = None
    tables: List[TableTransfer] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)


class RestoreSummary(BaseModel):
    container_name: str
    tables: List[TableTransfer] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    segment_count: int = 0
