"""
Backup and restore of DynamoDB tables to S3 documents.

- BackupService: whole-account backup and restore runs
- DataExportService / DataImportService: per-table page streaming
- Document naming and JSON Lines page codec
"""

from .documents import (
    PageWriter,
    backup_document_name,
    decode_page,
    encode_page,
    open_page_writer,
    parse_backup_document_name,
    read_pages,
)
from .service import BackupService, current_memory_footprint
from .transfer import DataExportService, DataImportService

__all__ = [
    "BackupService",
    "DataExportService",
    "DataImportService",
    "PageWriter",
    "backup_document_name",
    "parse_backup_document_name",
    "encode_page",
    "decode_page",
    "open_page_writer",
    "read_pages",
    "current_memory_footprint",
]
