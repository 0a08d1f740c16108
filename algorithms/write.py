"""
Write phase: upload random payloads and register the resulting objects.
"""

import logging
import random
import uuid
from typing import Callable, Optional

from configuration import (
    OBJECT_MIN_SIZE_BYTES,
    OBJECT_MAX_SIZE_BYTES,
    OBJECT_KEY_PREFIX,
    OBJECT_KEY_SUFFIX,
)
from persistence.record import ObjectRecord, OperationKind
from persistence.registry import ObjectRegistry

logger = logging.getLogger(__name__)


def generate_object_key() -> str:
    """Random key of the form ``benchmark/<32 hex chars>.png``."""
    return f"{OBJECT_KEY_PREFIX}{uuid.uuid4().hex}{OBJECT_KEY_SUFFIX}"


class WriteOperation:
    """Uploads one object per work unit on the worker's own endpoint."""

    kind = OperationKind.WRITE

    def __init__(
        self,
        endpoint_pool,
        registry: ObjectRegistry,
        min_size: int = OBJECT_MIN_SIZE_BYTES,
        max_size: int = OBJECT_MAX_SIZE_BYTES,
        rng: Optional[random.Random] = None,
        key_factory: Callable[[], str] = generate_object_key,
    ):
        if min_size < 0 or max_size < min_size:
            raise ValueError(f"Invalid payload size range {min_size}..{max_size}")
        self.endpoint_pool = endpoint_pool
        self.registry = registry
        self.min_size = min_size
        self.max_size = max_size
        self.rng = rng or random.Random()
        self.key_factory = key_factory

    def generate_payload(self) -> bytes:
        return self.rng.randbytes(self.rng.randint(self.min_size, self.max_size))

    async def __call__(self, worker_id: int, index: int) -> int:
        endpoint = self.endpoint_pool.for_worker(worker_id)
        key = self.key_factory()
        payload = self.generate_payload()
        stored = await endpoint.put(key, payload)
        self.registry.add(ObjectRecord(
            sequence_id=index,
            key=key,
            etag=stored.etag,
            size=stored.size,
            endpoint=endpoint,
        ))
        return stored.size
