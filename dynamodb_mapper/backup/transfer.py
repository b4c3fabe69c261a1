"""
Table Data Transfer

Moves the contents of one physical table between DynamoDB and a backup
document stream, one page at a time. Callers get a callback per page so
they can record statistics and log progress.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..core import item_to_record
from ..handlers import BatchWriteDispatcher, QueryExecutor
from .documents import PageWriter

logger = logging.getLogger(__name__)

PageCallback = Callable[[int], None]


class DataExportService:
    """Streams a table into a backup document."""

    def __init__(self, executor: QueryExecutor, page_size: Optional[int] = None):
        self.executor = executor
        self.page_size = page_size

    def export_table(self, table_name: str, writer: PageWriter, on_page: Optional[PageCallback] = None) -> int:
        """
        Write every item of ``table_name`` to ``writer``.

        Empty pages are not written. ``on_page`` receives the item count of
        each written page.

        Returns:
            Number of items exported
        """
        exported = 0
        for items in self.executor.iter_table_pages(table_name, self.page_size):
            if not items:
                continue
            writer.write_page(items)
            exported += len(items)
            if on_page:
                on_page(len(items))
        return exported


class DataImportService:
    """Replays backup pages into a table."""

    def __init__(self, dispatcher: BatchWriteDispatcher):
        self.dispatcher = dispatcher

    def import_table(
        self,
        table_name: str,
        pages: Iterable[List[Dict[str, Any]]],
        on_page: Optional[PageCallback] = None
    ) -> int:
        """
        Insert-or-replace every item of ``pages`` into ``table_name``.

        Pages are written as they are read; nothing beyond the current page is
        held in memory.

        Returns:
            Number of items imported
        """
        imported = 0
        for items in pages:
            records = [item_to_record(item) for item in items]
            imported += self.dispatcher.import_records(table_name, records)
            if on_page:
                on_page(len(records))
        return imported
