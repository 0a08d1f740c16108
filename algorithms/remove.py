"""
Remove phase: delete every object created by the write phase.
"""

from persistence.record import OperationKind
from persistence.registry import ObjectRegistry


class RemoveOperation:
    kind = OperationKind.REMOVE

    def __init__(self, registry: ObjectRegistry):
        self.registry = registry

    async def __call__(self, worker_id: int, index: int) -> int:
        record = self.registry.get(index)
        await record.endpoint.delete(record.key)
        return record.size
