import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from dynamodb_mapper.config import MAX_TRANSACTION_ITEMS, DynamoDBConfig


ENVIRONMENT = {
    "AWS_ACCESS_KEY_ID": "AKIAMAPPER",
    "AWS_SECRET_ACCESS_KEY": "mapper-secret",
    "AWS_REGION": "ap-southeast-2",
    "DYNAMODB_ENDPOINT_URL": "http://dynamo.internal:8000",
    "S3_ENDPOINT_URL": "http://s3.internal:4566",
    "DYNAMODB_TABLE_PREFIX": "staging_",
    "DYNAMODB_AUTO_CREATE_TABLES": "yes",
    "BACKUP_STATS_DIRECTORY": "/var/tmp/backup-stats",
    "DYNAMODB_DEBUG_LOGGING": "1",
}


class TestDynamoDBConfig:
    """Settings defaults, environment overrides and field bounds."""

    def test_defaults(self):
        with patch.dict(os.environ, {"AWS_REGION": "ca-central-1"}):
            config = DynamoDBConfig()

        assert (config.region_name, config.retries, config.max_pool_connections) == ("ca-central-1", 3, 50)
        assert config.timeout_seconds == pytest.approx(30)
        assert config.max_batch_size == MAX_TRANSACTION_ITEMS
        assert config.page_size == config.listing_page_size == 1000

    def test_environment_overrides(self):
        with patch.dict(os.environ, ENVIRONMENT):
            config = DynamoDBConfig.from_env()

        assert config.aws_access_key_id == "AKIAMAPPER"
        assert config.aws_secret_access_key == "mapper-secret"
        assert config.region_name == "ap-southeast-2"
        assert config.endpoint_url == ENVIRONMENT["DYNAMODB_ENDPOINT_URL"]
        assert config.s3_endpoint_url == ENVIRONMENT["S3_ENDPOINT_URL"]
        assert config.table_prefix == "staging_"
        assert config.stats_directory == "/var/tmp/backup-stats"
        assert config.auto_create_tables and config.enable_debug_logging

    @pytest.mark.parametrize("flag,expected", [("true", True), ("0", False), ("no", False), ("YES", True)])
    def test_boolean_flags(self, flag, expected):
        with patch.dict(os.environ, {"DYNAMODB_AUTO_CREATE_TABLES": flag}):
            assert DynamoDBConfig().auto_create_tables is expected

    def test_explicit_arguments_win_over_environment(self):
        with patch.dict(os.environ, {"DYNAMODB_TABLE_PREFIX": "env_"}):
            assert DynamoDBConfig(table_prefix="arg_").table_prefix == "arg_"

    @pytest.mark.parametrize("prefix,physical", [("myapp_", "myapp_Orders"), ("", "Orders")])
    def test_physical_table_name(self, prefix, physical):
        assert DynamoDBConfig(table_prefix=prefix).get_table_name("Orders") == physical

    def test_local_development_profile(self):
        local = DynamoDBConfig.for_local_development()

        assert local.endpoint_url.endswith(":8000")
        assert local.s3_endpoint_url.endswith(":4566")
        assert local.auto_create_tables is True

    @pytest.mark.parametrize("region", ["", "   "])
    def test_blank_region_rejected(self, region):
        with pytest.raises(ValidationError):
            DynamoDBConfig(region_name=region)

    def test_region_is_stripped(self):
        assert DynamoDBConfig(region_name=" eu-north-1 ").region_name == "eu-north-1"

    @pytest.mark.parametrize("field,value", [
        ("max_batch_size", 0),
        ("max_batch_size", MAX_TRANSACTION_ITEMS + 1),
        ("page_size", 0),
        ("listing_page_size", 0),
        ("listing_page_size", 1001),
        ("timeout_seconds", 0),
    ])
    def test_out_of_range_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            DynamoDBConfig(**{field: value})

    def test_assignment_is_validated(self):
        config = DynamoDBConfig()

        with pytest.raises(ValidationError):
            config.max_batch_size = 500
