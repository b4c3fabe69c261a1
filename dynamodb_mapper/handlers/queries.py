"""
Query Executor

Reads mapped models back from their tables, one page per call:
- partition key + row key  -> Query with both key conditions (exact match)
- partition key only       -> Query on the partition
- neither                  -> Scan of the whole table
- row key only             -> QueryError (not addressable in a two-level keyspace)

The caller drives pagination by passing back the returned continuation token;
the executor never follows tokens on its own. ``iter_table_pages`` is the
export path used by backups and walks a physical table page by page.
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

from boto3.dynamodb.conditions import Key
from pydantic import BaseModel

from ..config import DynamoDBConfig
from ..core import MapperRegistry, TableGateway, item_to_record, to_model
from ..exceptions import QueryError, QueryErrorKind
from ..models import PARTITION_KEY_ATTRIBUTE, ROW_KEY_ATTRIBUTE, QueryPage

logger = logging.getLogger(__name__)


def build_key_condition(partition_key: Optional[str], row_key: Optional[str]):
    """Build the KeyConditionExpression for a partition/row key combination.

    Returns:
        A boto3 condition, or None for an unfiltered scan

    Raises:
        QueryError: row_key given without partition_key
    """
    if partition_key is None and row_key is not None:
        raise QueryError(
            "A row key filter requires a partition key",
            QueryErrorKind.INVALID_FILTER_COMBINATION
        )
    if partition_key is None:
        return None

    condition = Key(PARTITION_KEY_ATTRIBUTE).eq(partition_key)
    if row_key is not None:
        condition = condition & Key(ROW_KEY_ATTRIBUTE).eq(row_key)
    return condition


class QueryExecutor:
    """
    Read API for mapped models.

    All model reads return QueryPage(items, continuation_token) for explicit
    pagination handling.
    """

    def __init__(
        self,
        config: DynamoDBConfig,
        registry: MapperRegistry,
        gateway_provider: Callable[[str], TableGateway]
    ):
        self.config = config
        self.registry = registry
        self.gateway_provider = gateway_provider

    def query(
        self,
        entity_type: Type[BaseModel],
        partition_key: Optional[str] = None,
        row_key: Optional[str] = None,
        continuation_token: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None
    ) -> QueryPage:
        """
        Read one page of models.

        Args:
            entity_type: Registered domain type
            partition_key: Exact partition key filter
            row_key: Exact row key filter (requires partition_key)
            continuation_token: Token returned by the previous page
            limit: Page size (defaults to config.page_size)

        Returns:
            QueryPage with the models and the next token (None when exhausted)

        Raises:
            QueryError: row_key without partition_key
            MappingError: Type not registered

        Examples:
            >>> page = executor.query(UserProfile, partition_key="em@acme.org")
            >>> while page.has_more:
            ...     page = executor.query(UserProfile, "em@acme.org", continuation_token=page.continuation_token)
        """
        key_condition = build_key_condition(partition_key, row_key)
        mapping = self.registry.lookup(entity_type)
        gateway = self.gateway_provider(self.config.get_table_name(mapping.table_name))

        request: Dict[str, Any] = {'Limit': limit or self.config.page_size}
        if continuation_token:
            request['ExclusiveStartKey'] = continuation_token

        if key_condition is None:
            response = gateway.scan(**request)
        else:
            request['KeyConditionExpression'] = key_condition
            response = gateway.query(**request)

        items = [to_model(item_to_record(item), mapping) for item in response.get('Items', [])]
        next_token = response.get('LastEvaluatedKey')
        logger.debug(f"Read {len(items)} {entity_type.__name__} items from {gateway.table_name} (more: {next_token is not None})")
        return QueryPage(items=items, continuation_token=next_token)

    def get(self, entity_type: Type[BaseModel], partition_key: str, row_key: str) -> Optional[BaseModel]:
        """Return the single model stored under (partition_key, row_key), or None."""
        page = self.query(entity_type, partition_key=partition_key, row_key=row_key, limit=1)
        return page.items[0] if page.items else None

    def query_all(
        self,
        entity_type: Type[BaseModel],
        partition_key: Optional[str] = None
    ) -> Iterator[BaseModel]:
        """Iterate every model of a partition (or table), fetching page by page."""
        token = None
        while True:
            page = self.query(entity_type, partition_key=partition_key, continuation_token=token)
            yield from page.items
            token = page.continuation_token
            if token is None:
                return

    def iter_table_pages(self, table_name: str, page_size: Optional[int] = None) -> Iterator[List[Dict[str, Any]]]:
        """
        Yield raw item pages of a physical table in scan order.

        Only one page is held at a time; the table name is used as given.
        """
        gateway = self.gateway_provider(table_name)
        request: Dict[str, Any] = {'Limit': page_size or self.config.page_size}
        while True:
            response = gateway.scan(**request)
            yield response.get('Items', [])
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return
            request['ExclusiveStartKey'] = last_key
