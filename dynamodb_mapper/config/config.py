import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# A local .env file, when present, seeds the environment defaults below
load_dotenv()

# Transactional writes accept at most 100 actions per call
MAX_TRANSACTION_ITEMS = 100

# ListObjectsV2 returns at most 1000 keys per call
MAX_LISTING_PAGE_SIZE = 1000


def _env(name: str, default: Optional[str] = None):
    return lambda: os.getenv(name, default)


def _env_flag(name: str):
    return lambda: os.getenv(name, "false").strip().lower() in ("1", "true", "yes")


class DynamoDBConfig(BaseModel):
    """Settings shared by the storage context, the gateways and the backup service.

    Every field with an environment variable falls back to it when not passed
    explicitly:

    ===============================  ================================
    Field                            Environment variable
    ===============================  ================================
    aws_access_key_id                AWS_ACCESS_KEY_ID
    aws_secret_access_key            AWS_SECRET_ACCESS_KEY
    region_name                      AWS_REGION (us-east-1)
    endpoint_url                     DYNAMODB_ENDPOINT_URL
    s3_endpoint_url                  S3_ENDPOINT_URL
    table_prefix                     DYNAMODB_TABLE_PREFIX
    auto_create_tables               DYNAMODB_AUTO_CREATE_TABLES
    stats_directory                  BACKUP_STATS_DIRECTORY
    enable_debug_logging             DYNAMODB_DEBUG_LOGGING
    ===============================  ================================
    """

    # Credentials and endpoints
    aws_access_key_id: Optional[str] = Field(default_factory=_env("AWS_ACCESS_KEY_ID"))
    aws_secret_access_key: Optional[str] = Field(default_factory=_env("AWS_SECRET_ACCESS_KEY"))
    region_name: str = Field(default_factory=_env("AWS_REGION", "us-east-1"))
    endpoint_url: Optional[str] = Field(
        default_factory=_env("DYNAMODB_ENDPOINT_URL"),
        description="Override of the DynamoDB endpoint, e.g. a local emulator"
    )
    s3_endpoint_url: Optional[str] = Field(
        default_factory=_env("S3_ENDPOINT_URL"),
        description="Override of the S3 endpoint holding backup documents"
    )

    # botocore client
    max_pool_connections: int = Field(default=50, ge=1)
    retries: int = Field(default=3, ge=0, description="botocore max_attempts")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Connect and read timeout")

    # Tables
    table_prefix: str = Field(
        default_factory=_env("DYNAMODB_TABLE_PREFIX", ""),
        description="Prepended to every mapped table name"
    )
    auto_create_tables: bool = Field(
        default_factory=_env_flag("DYNAMODB_AUTO_CREATE_TABLES"),
        description="Create a missing table on write and retry the write once"
    )

    # Batching and paging
    max_batch_size: int = Field(
        default=MAX_TRANSACTION_ITEMS,
        ge=1,
        le=MAX_TRANSACTION_ITEMS,
        description="Records per single-partition transaction"
    )
    page_size: int = Field(default=1000, ge=1, description="Items per Query/Scan page")
    listing_page_size: int = Field(
        default=MAX_LISTING_PAGE_SIZE,
        ge=1,
        le=MAX_LISTING_PAGE_SIZE,
        description="Keys per backup listing segment"
    )

    # Backup
    stats_directory: Optional[str] = Field(
        default_factory=_env("BACKUP_STATS_DIRECTORY"),
        description="Where page statistics CSV files are written (system temp dir if unset)"
    )

    enable_debug_logging: bool = Field(default_factory=_env_flag("DYNAMODB_DEBUG_LOGGING"))

    model_config = ConfigDict(validate_assignment=True)

    @field_validator('region_name')
    @classmethod
    def validate_region(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("region_name must not be empty")
        return v.strip()

    def get_table_name(self, base_name: str) -> str:
        """Physical name of a mapped table (``table_prefix`` + ``base_name``)."""
        return f"{self.table_prefix}{base_name}" if self.table_prefix else base_name

    @classmethod
    def from_env(cls) -> 'DynamoDBConfig':
        """Build a configuration purely from the environment (and .env)."""
        return cls()

    @classmethod
    def for_local_development(cls) -> 'DynamoDBConfig':
        """Configuration for DynamoDB Local on :8000 and an S3 emulator on :4566.

        Tables are created on first write and debug logging is on.
        """
        return cls(
            aws_access_key_id="local",
            aws_secret_access_key="local",
            region_name="us-east-1",
            endpoint_url="http://localhost:8000",
            s3_endpoint_url="http://localhost:4566",
            auto_create_tables=True,
            enable_debug_logging=True
        )
