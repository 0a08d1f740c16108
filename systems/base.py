"""
Async base class for S3-compatible object storage endpoints.
"""

import logging
from typing import AsyncIterator, Optional, Tuple

import aioboto3
from botocore.config import Config

from configuration import (
    CONNECT_TIMEOUT_SECONDS,
    READ_TIMEOUT_SECONDS,
    MAX_POOL_CONNECTIONS,
    OBJECT_CONTENT_TYPE,
)
from persistence.record import ObjectStat, StoredObject
from systems.errors import NotFoundError, ProtocolError
from systems.retry import RetryPolicy

logger = logging.getLogger(__name__)


def strip_etag(quoted_etag: Optional[str]) -> str:
    """Remove the quotes S3 puts around ETag values."""
    return (quoted_etag or "").replace('"', "")


async def iter_body(body) -> AsyncIterator[bytes]:
    """Yield the chunks of a streaming response body and release it afterwards."""
    try:
        async for chunk in body.iter_chunks():
            yield chunk
    finally:
        body.close()


class ObjectStorageSystem:
    """One bucket on an S3-compatible backend, every call wrapped by a RetryPolicy.

    Use as an async context manager; the aioboto3 client lives for the
    duration of the ``async with`` block.
    """

    def __init__(self, endpoint: str, bucket_name: str, credentials: dict,
                 retry_policy: Optional[RetryPolicy] = None):
        self.endpoint = endpoint
        self.bucket_name = bucket_name
        self.credentials = credentials
        self.retry_policy = retry_policy or RetryPolicy()

        self._config = self._create_config()

        self.session = aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id"),
            aws_secret_access_key=credentials.get("secret_access_key"),
            region_name=credentials.get("region_name", "auto"),
        )

        self.client = None

        logger.info(
            f"Initialized storage endpoint {endpoint}/{bucket_name} "
            f"(max_pool_connections={self._config.max_pool_connections})"
        )

    def _create_config(self) -> Config:
        """Create the botocore config; retries are left to the RetryPolicy."""
        return Config(
            max_pool_connections=MAX_POOL_CONNECTIONS,
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=READ_TIMEOUT_SECONDS,
            retries={
                'max_attempts': 0,
                'mode': 'standard',
            },
            s3={
                'addressing_style': 'path',
            },
            tcp_keepalive=True,
        )

    async def __aenter__(self):
        self.client = await self.session.client(
            "s3",
            endpoint_url=self.endpoint,
            config=self._config,
        ).__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.__aexit__(exc_type, exc_val, exc_tb)
            self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use async context manager.")
        return self.client

    @property
    def total_retry_count(self) -> int:
        return self.retry_policy.total_retry_count

    def reset_retry_count(self) -> None:
        self.retry_policy.reset()

    async def put(self, key: str, data: bytes,
                  content_type: str = OBJECT_CONTENT_TYPE) -> StoredObject:
        """Store ``data`` under ``key``.

        Raises:
            ProtocolError: If the backend does not return an ETag
        """
        client = self._require_client()
        response = await self.retry_policy.run(
            client.put_object,
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentType=content_type,
            ContentLength=len(data),
        )
        if not response.get("ETag"):
            raise ProtocolError(f"Expected to get ETag from the storage backend for {key}")
        return StoredObject(etag=strip_etag(response["ETag"]), size=len(data))

    async def head(self, key: str) -> ObjectStat:
        client = self._require_client()
        try:
            response = await self.retry_policy.run(
                client.head_object, Bucket=self.bucket_name, Key=key
            )
        except NotFoundError as e:
            raise NotFoundError(f"Not found: {key}") from e
        return ObjectStat(
            etag=strip_etag(response.get("ETag")),
            size=response.get("ContentLength"),
            last_modified=response.get("LastModified"),
        )

    async def get(self, key: str) -> Tuple[AsyncIterator[bytes], ObjectStat]:
        """Start a download; returns the body chunk iterator and the object stat."""
        client = self._require_client()
        try:
            response = await self.retry_policy.run(
                client.get_object, Bucket=self.bucket_name, Key=key
            )
        except NotFoundError as e:
            raise NotFoundError(f"Not found: {key}") from e
        stat = ObjectStat(
            etag=strip_etag(response.get("ETag")),
            size=response.get("ContentLength"),
            last_modified=response.get("LastModified"),
        )
        return iter_body(response["Body"]), stat

    async def delete(self, key: str) -> None:
        client = self._require_client()
        await self.retry_policy.run(
            client.delete_object, Bucket=self.bucket_name, Key=key
        )

    async def copy(self, dst_key: str, src_key: str) -> None:
        client = self._require_client()
        try:
            await self.retry_policy.run(
                client.copy_object,
                Bucket=self.bucket_name,
                Key=dst_key,
                CopySource=f"{self.bucket_name}/{src_key}",
            )
        except NotFoundError as e:
            raise NotFoundError(f"Not found: {src_key}") from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(endpoint='{self.endpoint}', bucket='{self.bucket_name}')"
