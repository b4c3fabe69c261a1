"""
Test configuration and fixtures for the DynamoDB mapper.

Provides common fixtures with DynamoDB and S3 mocked by moto.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import dynamodb_mapper and tests.helpers
sys.path.insert(0, str(Path(__file__).parent.parent))

import boto3
import pytest
from moto import mock_aws

from dynamodb_mapper import BlobGateway, DynamoDBConfig, MapperRegistry, StorageContext
from tests.helpers import SensorReading, UserProfile


@pytest.fixture
def mock_config():
    """DynamoDB configuration for mocked testing."""
    return DynamoDBConfig(
        aws_access_key_id="test_key",
        aws_secret_access_key="test_secret",
        region_name="us-east-1",
        endpoint_url=None,  # Use default AWS endpoint for moto
        s3_endpoint_url=None,
        table_prefix="test_",
        auto_create_tables=False,
        enable_debug_logging=False
    )


@pytest.fixture
def aws_mock():
    with mock_aws():
        yield


@pytest.fixture
def mock_dynamodb_resource(aws_mock):
    """Mock DynamoDB resource."""
    return boto3.resource('dynamodb', region_name='us-east-1')


@pytest.fixture
def mock_s3_client(aws_mock):
    """Mock S3 client."""
    return boto3.client('s3', region_name='us-east-1')


@pytest.fixture
def registry():
    """Registry with the sample models registered by discovery."""
    registry = MapperRegistry()
    registry.register_by_discovery(UserProfile)
    registry.register_by_discovery(SensorReading)
    return registry


@pytest.fixture
def storage_context(mock_config, mock_dynamodb_resource):
    """StorageContext over the mocked DynamoDB resource, sample models registered."""
    context = StorageContext(mock_config, dynamodb=mock_dynamodb_resource)
    context.add_attribute_mapper(UserProfile)
    context.add_attribute_mapper(SensorReading)
    yield context
    context.close()


@pytest.fixture
def blob_gateway(mock_config, mock_s3_client):
    return BlobGateway(mock_config, s3_client=mock_s3_client)


@pytest.fixture
def sample_users():
    return [
        UserProfile(first_name="Ada", last_name="Lovelace", contact="ada@example.org", age=36),
        UserProfile(first_name="Alan", last_name="Turing", contact="alan@example.org", age=41),
        UserProfile(first_name="Grace", last_name="Hopper", contact="grace@example.org"),
    ]
