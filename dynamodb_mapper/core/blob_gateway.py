"""
Thin S3 Gateway for Backup Documents

Exposes exactly what the backup pipeline needs from the object store:
- bucket existence check and creation
- document open-for-write (spooled to a temporary file, uploaded on close)
- document open-for-read (streaming body)
- segmented listing under a prefix with a continuation token

botocore ClientErrors propagate unchanged; the backup services wrap them in
BackupIOError / RestoreIOError.
"""

import logging
import tempfile
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..config import DynamoDBConfig
from ..exceptions import ConnectionError

logger = logging.getLogger(__name__)


class BlobGateway:
    """Gateway over one S3 client, shared by backup and restore."""

    def __init__(self, config: DynamoDBConfig, s3_client=None):
        self.config = config
        self._s3 = s3_client

    @property
    def s3(self):
        """Lazy initialization of the S3 client."""
        if self._s3 is None:
            try:
                session = boto3.Session(
                    aws_access_key_id=self.config.aws_access_key_id,
                    aws_secret_access_key=self.config.aws_secret_access_key,
                    region_name=self.config.region_name
                )
                client_kwargs = {
                    'region_name': self.config.region_name,
                    'config': Config(
                        retries={'max_attempts': self.config.retries},
                        max_pool_connections=self.config.max_pool_connections,
                        read_timeout=self.config.timeout_seconds,
                        connect_timeout=self.config.timeout_seconds
                    )
                }
                if self.config.s3_endpoint_url:
                    client_kwargs['endpoint_url'] = self.config.s3_endpoint_url
                self._s3 = session.client('s3', **client_kwargs)
            except Exception as e:
                logger.error(f"Failed to create S3 client: {e}")
                raise ConnectionError(f"Failed to connect to S3: {e}", original_error=e) from e
        return self._s3

    # -------------------------------------------------------------------------
    # Containers
    # -------------------------------------------------------------------------

    def container_exists(self, bucket: str) -> bool:
        try:
            self.s3.head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] in ('404', 'NoSuchBucket', 'NotFound'):
                return False
            raise

    def ensure_container(self, bucket: str) -> bool:
        """Create the bucket if needed. Returns True when it was created."""
        if self.container_exists(bucket):
            return False

        create_kwargs = {'Bucket': bucket}
        if self.config.region_name != 'us-east-1':
            create_kwargs['CreateBucketConfiguration'] = {'LocationConstraint': self.config.region_name}
        self.s3.create_bucket(**create_kwargs)
        logger.info(f"Created bucket {bucket}")
        return True

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    @contextmanager
    def open_write(self, bucket: str, key: str) -> Iterator:
        """
        Open a document for writing.

        Content is spooled to a temporary file so memory stays bounded, and is
        uploaded when the block exits without an exception.

        Example:
            with gateway.open_write('backups', 'daily/Users.json.gz') as stream:
                stream.write(b'...')
        """
        with tempfile.TemporaryFile() as spool:
            yield spool
            spool.flush()
            size = spool.tell()
            spool.seek(0)
            self.s3.upload_fileobj(spool, bucket, key)
            logger.debug(f"Uploaded s3://{bucket}/{key} ({size} bytes)")

    @contextmanager
    def open_read(self, bucket: str, key: str) -> Iterator:
        """Open a document as a streaming body; the body is closed on exit."""
        response = self.s3.get_object(Bucket=bucket, Key=key)
        body = response['Body']
        try:
            yield body
        finally:
            body.close()

    def list_segment(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        max_keys: int = 1000,
        continuation_token: Optional[str] = None
    ) -> Tuple[List[str], Optional[str]]:
        """
        Fetch one listing segment.

        Returns:
            (keys, next_token) where next_token is None after the last segment
        """
        list_kwargs = {'Bucket': bucket, 'MaxKeys': max_keys}
        if prefix:
            list_kwargs['Prefix'] = prefix
        if continuation_token:
            list_kwargs['ContinuationToken'] = continuation_token

        response = self.s3.list_objects_v2(**list_kwargs)
        keys = [entry['Key'] for entry in response.get('Contents', [])]
        next_token = response.get('NextContinuationToken') if response.get('IsTruncated') else None
        return keys, next_token
