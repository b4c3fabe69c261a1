"""
DynamoDB Table Gateway

This module provides a lightweight wrapper around boto3 DynamoDB operations
for tables that follow the mapper's fixed key schema (``PartitionKey`` HASH +
``RowKey`` RANGE, both strings).

Responsibilities:
- Creating and sharing the boto3 DynamoDB resource
- Table lifecycle (exists, key schema check, create, wait, list)
- Transactional batch writes, queries and scans
- Mapping botocore ClientErrors to the mapper's exception taxonomy

Higher layers (dispatcher, executor, backup services) compose these calls;
the gateway never interprets records.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..config import DynamoDBConfig
from ..exceptions import (
    ConflictError,
    ConnectionError,
    RetryableError,
    StoreOperationError,
    TableNotFoundError,
    ValidationError,
)
from ..models import PARTITION_KEY_ATTRIBUTE, ROW_KEY_ATTRIBUTE

logger = logging.getLogger(__name__)


def map_dynamodb_error(
    error: ClientError,
    operation: str,
    table_name: str
) -> Exception:
    """Translate a botocore ClientError into the mapper exception taxonomy.

    Args:
        error: ClientError raised by boto3
        operation: API call that failed ("Query", "TransactWriteItems", ...)
        table_name: Physical table the call targeted

    Returns:
        The exception to raise (never raised here)
    """
    error_code = error.response['Error']['Code']
    error_message = error.response['Error'].get('Message', '')

    full_message = f"{operation} on {table_name}: {error_message}"

    if error_code in ['ResourceNotFoundException', 'TableNotFoundException']:
        return TableNotFoundError(f"Table not found - {full_message}", table_name, error_code, original_error=error)

    elif error_code == 'ConditionalCheckFailedException':
        return ConflictError(f"Conditional check failed - {full_message}", table_name, error_code, original_error=error)

    elif error_code == 'TransactionCanceledException':
        reasons = [
            reason.get('Code')
            for reason in error.response.get('CancellationReasons', [])
            if reason.get('Code') not in (None, 'None')
        ]
        if 'ResourceNotFoundException' in reasons:
            return TableNotFoundError(f"Table not found - {full_message}", table_name, error_code, original_error=error)
        if 'ConditionalCheckFailed' in reasons:
            return ConflictError(f"Conditional check failed - {full_message}", table_name, error_code, original_error=error)
        if 'ValidationError' in reasons:
            return ValidationError(f"Validation failed - {full_message}", errors={'reasons': reasons}, original_error=error)
        return RetryableError(f"Transaction cancelled - {full_message}", table_name, error_code, original_error=error)

    elif error_code == 'ValidationException':
        return ValidationError(f"Validation failed - {full_message}", original_error=error)

    elif error_code in ['ResourceInUseException', 'TableAlreadyExistsException',
                        'TransactionConflictException', 'DuplicateTransactionException']:
        return ConflictError(f"Conflict - {full_message}", table_name, error_code, original_error=error)

    elif error_code in [
        'ProvisionedThroughputExceededException', 'RequestLimitExceeded', 'ThrottlingException',
        'InternalServerError', 'ServiceUnavailable', 'TransactionInProgressException',
        'RequestTimeoutException', 'LimitExceededException'
    ]:
        return RetryableError(f"Temporary failure - {full_message}", table_name, error_code, original_error=error)

    elif error_code in [
        'UnrecognizedClientException', 'AccessDeniedException', 'InvalidSignatureException',
        'IncompleteSignatureException', 'ExpiredTokenException', 'InvalidEndpointException'
    ]:
        return ConnectionError(f"Authentication/authorization failed - {full_message}", table_name, error_code, original_error=error)

    logger.warning(f"Unknown DynamoDB error code '{error_code}' mapped to StoreOperationError")
    return StoreOperationError(f"DynamoDB operation failed - {full_message}", table_name, error_code, original_error=error)


def create_dynamodb_resource(config: DynamoDBConfig):
    """Create a boto3 DynamoDB resource from configuration.

    Raises:
        ConnectionError: The session or resource could not be created
    """
    try:
        session = boto3.Session(
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
            region_name=config.region_name
        )

        client_config = Config(
            retries={'max_attempts': config.retries},
            max_pool_connections=config.max_pool_connections,
            read_timeout=config.timeout_seconds,
            connect_timeout=config.timeout_seconds
        )
        return session.resource(
            'dynamodb',
            region_name=config.region_name,
            endpoint_url=config.endpoint_url or None,
            config=client_config
        )
    except Exception as e:
        logger.error(f"DynamoDB resource unavailable ({config.region_name}): {e}")
        raise ConnectionError(f"Cannot open DynamoDB session: {e}", original_error=e) from e


def list_table_names(dynamodb) -> Iterator[str]:
    """Yield every table name of the account/region in listing order."""
    paginator = dynamodb.meta.client.get_paginator('list_tables')
    try:
        for page in paginator.paginate():
            for table_name in page.get('TableNames', []):
                yield table_name
    except ClientError as e:
        raise map_dynamodb_error(e, "ListTables", "*") from e


class TableGateway:
    """
    Thin gateway for operations on one mapped DynamoDB table.

    Designed to be used by the dispatcher, executor and backup services
    rather than directly by clients.
    """

    def __init__(self, config: DynamoDBConfig, table_name: str, dynamodb=None):
        """Bind a gateway to one physical table.

        Args:
            config: Mapper configuration
            table_name: Physical table name (prefix already applied)
            dynamodb: Shared boto3 DynamoDB resource (created lazily if omitted)
        """
        self.config = config
        self.table_name = table_name
        self._dynamodb = dynamodb
        self._table = None

    @property
    def dynamodb(self):
        """boto3 DynamoDB resource, shared or created on first use."""
        if self._dynamodb is None:
            self._dynamodb = create_dynamodb_resource(self.config)
        return self._dynamodb

    @property
    def table(self):
        """boto3 Table resource of this gateway."""
        if self._table is None:
            try:
                self._table = self.dynamodb.Table(self.table_name)
            except Exception as e:
                logger.error(f"Cannot bind table {self.table_name}: {e}")
                raise ConnectionError(f"Failed to access table '{self.table_name}': {e}", self.table_name, original_error=e) from e
        return self._table

    # -------------------------------------------------------------------------
    # Table lifecycle
    # -------------------------------------------------------------------------

    def exists(self) -> bool:
        try:
            self.dynamodb.meta.client.describe_table(TableName=self.table_name)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceNotFoundException':
                return False
            raise map_dynamodb_error(e, "DescribeTable", self.table_name) from e

    def has_mapper_key_schema(self) -> bool:
        """True when the table is keyed by ``PartitionKey`` (HASH) and ``RowKey`` (RANGE).

        Raises:
            TableNotFoundError: The table does not exist
        """
        try:
            description = self.dynamodb.meta.client.describe_table(TableName=self.table_name)
        except ClientError as e:
            raise map_dynamodb_error(e, "DescribeTable", self.table_name) from e
        key_schema = {
            element['AttributeName']: element['KeyType']
            for element in description['Table']['KeySchema']
        }
        return key_schema == {PARTITION_KEY_ATTRIBUTE: 'HASH', ROW_KEY_ATTRIBUTE: 'RANGE'}

    def create(self, ignore_if_exists: bool = True, wait: bool = True) -> bool:
        """
        Create the table with the mapper key schema.

        Args:
            ignore_if_exists: Treat an existing table as success
            wait: Block until the table is active

        Returns:
            True if the table was created, False if it already existed

        Raises:
            ConflictError: Table exists and ignore_if_exists is False
        """
        try:
            self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {'AttributeName': PARTITION_KEY_ATTRIBUTE, 'KeyType': 'HASH'},
                    {'AttributeName': ROW_KEY_ATTRIBUTE, 'KeyType': 'RANGE'}
                ],
                AttributeDefinitions=[
                    {'AttributeName': PARTITION_KEY_ATTRIBUTE, 'AttributeType': 'S'},
                    {'AttributeName': ROW_KEY_ATTRIBUTE, 'AttributeType': 'S'}
                ],
                BillingMode='PAY_PER_REQUEST'
            )
            logger.info(f"Created table {self.table_name}")
        except ClientError as e:
            if ignore_if_exists and e.response['Error']['Code'] == 'ResourceInUseException':
                logger.debug(f"Table {self.table_name} already exists")
                return False
            raise map_dynamodb_error(e, "CreateTable", self.table_name) from e

        if wait:
            self.wait_until_exists()
        self._table = None
        return True

    def wait_until_exists(self) -> None:
        try:
            waiter = self.dynamodb.meta.client.get_waiter('table_exists')
            waiter.wait(TableName=self.table_name)
        except ClientError as e:
            raise map_dynamodb_error(e, "DescribeTable", self.table_name) from e

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def query(self, **kwargs) -> Dict[str, Any]:
        """
        Query the table (KeyConditionExpression, Limit, ExclusiveStartKey).

        Raw pass-through to boto3 with error handling.

        Example:
            response = gateway.query(
                KeyConditionExpression=Key('PartitionKey').eq('tenant-1'),
                Limit=100
            )
        """
        try:
            return self.table.query(**kwargs)
        except ClientError as e:
            raise map_dynamodb_error(e, "Query", self.table_name) from e

    def scan(self, **kwargs) -> Dict[str, Any]:
        """
        Scan the table one page at a time.

        Used for unfiltered reads and table exports; callers page with
        ``Limit`` and ``ExclusiveStartKey``.
        """
        try:
            if 'Limit' not in kwargs:
                logger.warning(f"Unbounded scan of {self.table_name}: no Limit given")
            return self.table.scan(**kwargs)
        except ClientError as e:
            raise map_dynamodb_error(e, "Scan", self.table_name) from e

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def transact_write_items(self, transact_items: List[Dict[str, Any]]) -> None:
        """
        Apply one all-or-nothing TransactWriteItems call.

        Items carry plain Python values (str, Decimal, bytes, sets, ...); the
        resource client serializes them.

        Example:
            gateway.transact_write_items([
                {
                    'Put': {
                        'TableName': 'UserProfiles',
                        'Item': {'PartitionKey': 'a', 'RowKey': 'b', 'score': Decimal('1.5')},
                        'ConditionExpression': 'attribute_not_exists(PartitionKey)'
                    }
                }
            ])
        """
        try:
            self.dynamodb.meta.client.transact_write_items(
                TransactItems=transact_items
            )
            logger.debug(f"Transaction with {len(transact_items)} items completed on {self.table_name}")
        except ClientError as e:
            raise map_dynamodb_error(e, "TransactWriteItems", self.table_name) from e
        except TypeError as e:
            # Raised by the resource client while serializing an unsupported value
            raise ValidationError(
                f"TransactWriteItems on {self.table_name}: value cannot be stored in DynamoDB: {e}",
                original_error=e
            ) from e
