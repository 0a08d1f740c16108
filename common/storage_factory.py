"""
Factory module for creating the endpoint pool from configuration.
"""

import logging
from typing import List, Optional

# Suppress boto3/botocore logging before importing any boto3-related modules
logging.getLogger('botocore').setLevel(logging.CRITICAL)
logging.getLogger('botocore.credentials').setLevel(logging.CRITICAL)
logging.getLogger('boto3').setLevel(logging.CRITICAL)
logging.getLogger('aioboto3').setLevel(logging.CRITICAL)
logging.getLogger('aiobotocore').setLevel(logging.CRITICAL)
logging.getLogger('urllib3').setLevel(logging.CRITICAL)

from systems.s3 import S3System
from systems.retry import RetryPolicy
from common.endpoint_pool import EndpointPool
from configuration import S3_REGION, build_endpoint_url

logger = logging.getLogger(__name__)


def create_endpoint_pool(
    buckets: List[str],
    hostname: str,
    port: int,
    use_ssl: bool,
    access_key: str,
    secret_key: str,
    max_attempts: Optional[int] = None,
) -> EndpointPool:
    """Create one S3 endpoint per bucket, sharing URL and credentials.

    Args:
        buckets: Bucket names; each becomes one endpoint of the pool
        hostname: Backend hostname
        port: Backend port
        use_ssl: Connect over https when True
        access_key: Access key id
        secret_key: Secret access key
        max_attempts: Optional override of the retry attempt ceiling

    Returns:
        EndpointPool with ``len(buckets)`` endpoints

    Raises:
        ValueError: If no bucket or no hostname is configured
    """
    if not buckets:
        raise ValueError("No bucket configured. Set S3_BUCKET or pass --buckets.")
    if not hostname:
        raise ValueError("No hostname configured. Set S3_HOSTNAME or pass --hostname.")

    endpoint_url = build_endpoint_url(hostname, port, use_ssl)
    credentials = {
        "access_key_id": access_key,
        "secret_access_key": secret_key,
        "region_name": S3_REGION,
    }

    endpoints = []
    for bucket in buckets:
        policy = RetryPolicy(max_attempts=max_attempts) if max_attempts else RetryPolicy()
        endpoints.append(S3System(bucket, endpoint=endpoint_url,
                                  credentials=credentials, retry_policy=policy))

    logger.info(f"Created {len(endpoints)} endpoints for {endpoint_url}: {', '.join(buckets)}")
    return EndpointPool(endpoints)
