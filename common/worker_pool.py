"""
Async worker pool that runs one benchmark phase over a shared countdown.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

# (worker_id, index) -> bytes transferred
PhaseOperation = Callable[[int, int], Awaitable[int]]


class WorkerPool:
    """Fixed number of async workers pulling work units from a countdown.

    Each worker owns one slot in ``counts`` and ``total_sizes``; the live
    sampler reads the slots while the workers write them.
    """

    def __init__(self, workers: int):
        if workers < 1:
            raise ValueError(f"Worker count must be positive, got {workers}")
        self.workers = workers
        self.counts: List[int] = [0] * workers
        self.total_sizes: List[int] = [0] * workers
        self.remaining = 0
        self.worker_tasks: List[asyncio.Task] = []

    def _reset(self, total: int) -> None:
        self.counts = [0] * self.workers
        self.total_sizes = [0] * self.workers
        self.remaining = total

    def claim_next(self) -> Optional[int]:
        """Decrement the countdown and return the claimed index, or None when drained.

        No await between test and decrement, so claims never race on the loop.
        """
        if self.remaining <= 0:
            return None
        self.remaining -= 1
        return self.remaining

    def completed_count(self) -> int:
        return sum(self.counts)

    def completed_bytes(self) -> int:
        return sum(self.total_sizes)

    async def _worker_task(self, worker_id: int, operation: PhaseOperation) -> int:
        while True:
            index = self.claim_next()
            if index is None:
                break
            size = await operation(worker_id, index)
            self.counts[worker_id] += 1
            self.total_sizes[worker_id] += size
        return self.total_sizes[worker_id]

    async def run(self, operation: PhaseOperation, total: int) -> int:
        """Run ``operation`` for every index in ``0..total-1`` and return the byte total.

        The first worker failure cancels the remaining workers and is re-raised.
        """
        self._reset(total)
        self.worker_tasks = [
            asyncio.create_task(self._worker_task(worker_id, operation))
            for worker_id in range(self.workers)
        ]
        try:
            sizes = await asyncio.gather(*self.worker_tasks)
        except BaseException:
            for task in self.worker_tasks:
                task.cancel()
            await asyncio.gather(*self.worker_tasks, return_exceptions=True)
            raise
        finally:
            self.worker_tasks = []
        return sum(sizes)
