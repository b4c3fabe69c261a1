"""
Backup Service

Exports every DynamoDB table of the account to one document per table in an S3
bucket and restores such documents back into tables.

Backup:
    - Tables are processed in listing order, one at a time, one page at a time
    - Tables not keyed by ``PartitionKey``/``RowKey`` are skipped
    - Each non-empty page becomes one JSON line of ``{path/}{table}.json{.gz}``
    - One row per page is appended to a statistics CSV
      (``TableName,PageCounter,ItemCount,MemoryFootprint``)

Restore:
    - Objects are listed in segments under the source path
    - Each backup document is replayed into its table (optionally prefixed)
      with insert-or-replace semantics

Example:
    with StorageContext(DynamoDBConfig.from_env()) as context:
        service = BackupService(context)
        summary = service.backup("nightly-backups", target_path="2024-01-01")
        service.restore("nightly-backups", source_path="2024-01-01", table_name_prefix="restored_")
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional, TextIO

import psutil
from botocore.exceptions import ClientError

from ..context import StorageContext
from ..core import BlobGateway
from ..exceptions import BackupIOError, DynamoDBMapperError, RestoreIOError
from ..models import (
    STATS_HEADER,
    BackupSummary,
    FailurePolicy,
    PageStats,
    RestoreSummary,
    TableTransfer,
)
from .documents import backup_document_name, open_page_writer, parse_backup_document_name, read_pages
from .transfer import DataExportService, DataImportService

logger = logging.getLogger(__name__)


def current_memory_footprint() -> int:
    """Resident set size of the running process, in bytes."""
    return psutil.Process().memory_info().rss


class BackupService:
    """Backup and restore of all tables of a StorageContext to an S3 bucket."""

    def __init__(
        self,
        context: StorageContext,
        blobs: Optional[BlobGateway] = None,
        failure_policy: FailurePolicy = FailurePolicy.ABORT
    ):
        """Initialize the service.

        Args:
            context: Storage context providing tables, reads and writes
            blobs: S3 gateway (built from the context configuration if omitted)
            failure_policy: Default behaviour when one table or document fails
        """
        self.context = context
        self.config = context.config
        self.blobs = blobs or BlobGateway(context.config)
        self.failure_policy = FailurePolicy(failure_policy)
        self.exporter = DataExportService(context.executor, context.config.page_size)
        self.importer = DataImportService(context.dispatcher)

    # =========================================================================
    # Backup
    # =========================================================================

    def backup(
        self,
        container_name: str,
        target_path: Optional[str] = None,
        excluded_tables: Optional[Iterable[str]] = None,
        table_name_prefix: Optional[str] = None,
        compress: bool = True,
        on_error: Optional[FailurePolicy] = None
    ) -> BackupSummary:
        """
        Back up every mapper-keyed table to ``container_name``.

        Tables with any other key schema cannot be restored as StoreRecords and
        are reported in ``skipped``.

        Args:
            container_name: Bucket name (lowercased, created if missing)
            target_path: Key prefix of the documents
            excluded_tables: Table names to skip (case-insensitive)
            table_name_prefix: Only back up tables starting with this prefix
            compress: Gzip the documents
            on_error: Override of the service failure policy for this run

        Returns:
            BackupSummary listing exported, skipped and failed tables

        Raises:
            BackupIOError: Listing, bucket or document failure (ABORT policy)
            StoreOperationError: Reading a table failed (ABORT policy)
        """
        policy = FailurePolicy(on_error or self.failure_policy)
        bucket = container_name.lower()
        excluded = {name.lower() for name in excluded_tables or []}
        logger.info(f"Starting backup to {bucket} (path: {target_path or '/'}, compressed: {compress})")

        try:
            table_names = self.context.list_tables()
        except DynamoDBMapperError as e:
            logger.error(f"Unable to list tables: {e}")
            raise BackupIOError("Unable to list tables for backup", original_error=e) from e

        try:
            self.blobs.ensure_container(bucket)
        except ClientError as e:
            logger.error(f"Unable to prepare bucket {bucket}: {e}")
            raise BackupIOError(f"Unable to prepare bucket {bucket}", original_error=e) from e

        summary = BackupSummary(container_name=bucket)
        with self._open_stats_file() as stats:
            summary.stats_file = stats.name
            stats.write(STATS_HEADER + "\n")

            for table_name in table_names:
                if table_name_prefix and not table_name.startswith(table_name_prefix):
                    logger.info(f"Ignoring table {table_name}: does not match prefix {table_name_prefix}")
                    summary.skipped.append(table_name)
                    continue
                if table_name.lower() in excluded:
                    logger.info(f"Ignoring table {table_name}: excluded")
                    summary.skipped.append(table_name)
                    continue

                try:
                    if not self.context.gateway_for_table(table_name).has_mapper_key_schema():
                        logger.warning(f"Ignoring table {table_name}: not keyed by PartitionKey/RowKey")
                        summary.skipped.append(table_name)
                        continue
                    transfer = self._backup_table(bucket, table_name, target_path, compress, stats)
                except DynamoDBMapperError as e:
                    if policy is FailurePolicy.ABORT:
                        raise
                    logger.error(f"Backup of table {table_name} failed, continuing: {e}")
                    summary.failed.append(table_name)
                    continue
                finally:
                    stats.flush()

                summary.tables.append(transfer)

        logger.info(
            f"Backup to {bucket} completed: {len(summary.tables)} tables, "
            f"{len(summary.skipped)} skipped, {len(summary.failed)} failed (stats: {summary.stats_file})"
        )
        return summary

    def _backup_table(
        self,
        bucket: str,
        table_name: str,
        target_path: Optional[str],
        compress: bool,
        stats: TextIO
    ) -> TableTransfer:
        document_name = backup_document_name(table_name, target_path, compress)
        transfer = TableTransfer(table_name=table_name, document_name=document_name, compressed=compress)
        logger.info(f"Backing up table {table_name} to {document_name}")

        def on_page(item_count: int) -> None:
            transfer.page_count += 1
            transfer.item_count += item_count
            page = PageStats(
                table_name=table_name,
                page_index=transfer.page_count,
                item_count=item_count,
                memory_footprint_bytes=current_memory_footprint()
            )
            stats.write(page.to_csv_row() + "\n")
            logger.info(f"Table {table_name}: page {page.page_index} with {item_count} items written")

        try:
            with self.blobs.open_write(bucket, document_name) as stream:
                with open_page_writer(stream, compress) as writer:
                    self.exporter.export_table(table_name, writer, on_page)
        except (ClientError, OSError) as e:
            logger.error(f"Unable to write backup document {document_name}: {e}")
            raise BackupIOError(
                f"Unable to write backup document {document_name}",
                table_name=table_name,
                document_name=document_name,
                original_error=e
            ) from e

        logger.info(f"Table {table_name} backed up: {transfer.item_count} items in {transfer.page_count} pages")
        return transfer

    @contextmanager
    def _open_stats_file(self) -> Iterator[TextIO]:
        directory = self.config.stats_directory
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            stats = tempfile.NamedTemporaryFile(
                mode='w', suffix='.csv', prefix='backup-stats-', dir=directory, delete=False, encoding='utf-8'
            )
        except OSError as e:
            raise BackupIOError("Unable to create the backup statistics file", original_error=e) from e
        with stats:
            yield stats

    # =========================================================================
    # Restore
    # =========================================================================

    def restore(
        self,
        container_name: str,
        source_path: Optional[str] = None,
        table_name_prefix: Optional[str] = None,
        on_error: Optional[FailurePolicy] = None
    ) -> RestoreSummary:
        """
        Restore every backup document found under ``source_path``.

        Args:
            container_name: Bucket name (lowercased)
            source_path: Key prefix to restore from
            table_name_prefix: Prepended to every destination table name
            on_error: Override of the service failure policy for this run

        Returns:
            RestoreSummary listing restored tables, skipped keys and failed documents

        Raises:
            RestoreIOError: Listing or document failure (ABORT policy)
            StoreOperationError: Writing a table failed (ABORT policy)
        """
        policy = FailurePolicy(on_error or self.failure_policy)
        bucket = container_name.lower()
        summary = RestoreSummary(container_name=bucket)

        try:
            bucket_exists = self.blobs.container_exists(bucket)
        except ClientError as e:
            logger.error(f"Unable to access bucket {bucket}: {e}")
            raise RestoreIOError(f"Unable to access bucket {bucket}", original_error=e) from e
        if not bucket_exists:
            logger.info(f"Bucket {bucket} does not exist, nothing to restore")
            return summary

        logger.info(f"Starting restore from {bucket} (path: {source_path or '/'})")
        token = None
        while True:
            try:
                keys, token = self.blobs.list_segment(bucket, source_path, self.config.listing_page_size, token)
            except ClientError as e:
                logger.error(f"Unable to list {bucket}: {e}")
                raise RestoreIOError(f"Unable to list backup documents in {bucket}", original_error=e) from e
            summary.segment_count += 1

            for key in keys:
                parsed = parse_backup_document_name(key)
                if parsed is None:
                    logger.warning(f"Skipping {key}: not a backup document")
                    summary.skipped.append(key)
                    continue

                table_name, compressed = parsed
                if table_name_prefix:
                    table_name = f"{table_name_prefix}{table_name}"

                try:
                    transfer = self._restore_document(bucket, key, table_name, compressed)
                except DynamoDBMapperError as e:
                    if policy is FailurePolicy.ABORT:
                        raise
                    logger.error(f"Restore of {key} failed, continuing: {e}")
                    summary.failed.append(key)
                    continue
                summary.tables.append(transfer)

            if token is None:
                break

        logger.info(
            f"Restore from {bucket} completed: {len(summary.tables)} documents, "
            f"{len(summary.skipped)} skipped, {len(summary.failed)} failed"
        )
        return summary

    def _restore_document(self, bucket: str, key: str, table_name: str, compressed: bool) -> TableTransfer:
        transfer = TableTransfer(table_name=table_name, document_name=key, compressed=compressed)
        logger.info(f"Restoring {key} into table {table_name}")
        gateway = self.context.gateway_for_table(table_name)
        if not gateway.exists():
            gateway.create(ignore_if_exists=True)

        def on_page(item_count: int) -> None:
            transfer.page_count += 1
            transfer.item_count += item_count
            logger.info(f"Table {table_name}: page {transfer.page_count} with {item_count} items restored")

        try:
            with self.blobs.open_read(bucket, key) as body:
                self.importer.import_table(table_name, read_pages(body, compressed), on_page)
        except (ClientError, OSError, ValueError) as e:
            logger.error(f"Unable to read backup document {key}: {e}")
            raise RestoreIOError(
                f"Unable to read backup document {key}",
                document_name=key,
                table_name=table_name,
                original_error=e
            ) from e

        logger.info(f"Table {table_name} restored: {transfer.item_count} items in {transfer.page_count} pages")
        return transfer
