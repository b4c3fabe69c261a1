"""
Read and write handlers for mapped models.

- BatchWriteDispatcher: single-partition transactional batch writes
- QueryExecutor: paginated reads back into domain models
"""

from .commands import BatchWriteDispatcher, group_into_batches
from .queries import QueryExecutor, build_key_condition

__all__ = [
    "BatchWriteDispatcher",
    "QueryExecutor",
    "build_key_condition",
    "group_into_batches",
]
