"""
Read phase: download every object and verify it against the write record.
"""

import logging

from configuration import MAXIMUM_ATTEMPTS
from persistence.record import OperationKind
from persistence.registry import ObjectRegistry
from systems.errors import IntegrityMismatch

logger = logging.getLogger(__name__)


class ReadOperation:
    """Downloads and drains one object per work unit.

    The get-and-drain sequence has its own retry loop on top of the
    endpoint's RetryPolicy; every exception from it counts as retryable and
    is added to the endpoint's retry counter. The integrity check runs once,
    after a successful drain, and is never retried.
    """

    kind = OperationKind.READ

    def __init__(self, registry: ObjectRegistry, max_attempts: int = MAXIMUM_ATTEMPTS):
        self.registry = registry
        self.max_attempts = max_attempts

    async def _download(self, endpoint, key: str):
        stream, stat = await endpoint.get(key)
        downloaded_size = 0
        async for chunk in stream:
            downloaded_size += len(chunk)
        return stat, downloaded_size

    async def __call__(self, worker_id: int, index: int) -> int:
        record = self.registry.get(index)
        endpoint = record.endpoint

        last_error = None
        for attempt in range(self.max_attempts):
            try:
                stat, downloaded_size = await self._download(endpoint, record.key)
                last_error = None
                break
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Error during reading ({e}), retrying for the {attempt + 1} time"
                )
                endpoint.retry_policy.total_retry_count += 1
        if last_error is not None:
            raise last_error

        if stat.etag != record.etag or downloaded_size != record.size:
            raise IntegrityMismatch(record.key, record.etag, stat.etag,
                                    record.size, downloaded_size)
        return record.size
