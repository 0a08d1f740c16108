"""
Stat phase: fetch object metadata and verify it against the write record.
"""

import logging

from persistence.record import OperationKind
from persistence.registry import ObjectRegistry
from systems.errors import IntegrityMismatch

logger = logging.getLogger(__name__)


class StatOperation:
    kind = OperationKind.STAT

    def __init__(self, registry: ObjectRegistry):
        self.registry = registry

    async def __call__(self, worker_id: int, index: int) -> int:
        record = self.registry.get(index)
        stat = await record.endpoint.head(record.key)
        if stat.etag != record.etag or stat.size != record.size:
            raise IntegrityMismatch(record.key, record.etag, stat.etag,
                                    record.size, stat.size)
        return record.size
