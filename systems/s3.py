"""
S3-compatible object storage endpoint configured from the environment.
"""

import logging
from typing import Optional

from systems.base import ObjectStorageSystem
from systems.retry import RetryPolicy
from configuration import (
    S3_HOSTNAME,
    S3_PORT,
    S3_USE_SSL,
    S3_ACCESS_KEY,
    S3_SECRET_KEY,
    S3_REGION,
    build_endpoint_url,
)

logger = logging.getLogger(__name__)


class S3System(ObjectStorageSystem):
    """One bucket of an S3-compatible backend (R2, MinIO, AWS S3, ...)."""

    def __init__(self, bucket_name: str, endpoint: Optional[str] = None,
                 credentials: dict = None, retry_policy: Optional[RetryPolicy] = None):
        if endpoint is None:
            endpoint = build_endpoint_url(S3_HOSTNAME, S3_PORT, S3_USE_SSL)
        if credentials is None:
            credentials = {
                "access_key_id": S3_ACCESS_KEY,
                "secret_access_key": S3_SECRET_KEY,
                "region_name": S3_REGION,
            }

        super().__init__(
            endpoint=endpoint,
            bucket_name=bucket_name,
            credentials=credentials,
            retry_policy=retry_policy,
        )
        logger.debug(f"Initialized S3 system for bucket {bucket_name}")
