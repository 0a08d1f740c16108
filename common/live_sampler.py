"""
Per-second throughput sampling of a running phase.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from configuration import SAMPLE_INTERVAL_SECONDS, MS_PER_SECOND
from common.metrics_utils import (
    format_sample_line,
    format_summary_line,
    print_line,
    utc_time_string,
)
from persistence.record import OperationKind, PhaseSummary, Sample

logger = logging.getLogger(__name__)


class LiveSampler:
    """Samples a WorkerPool's counters once per interval while a phase runs.

    The sampler is started and stopped explicitly around one phase. Worker
    slots are read without locking; the figures are approximate by nature.

    Attributes:
        peak_ops: Highest instantaneous ops/s seen in this phase
        samples: Every sample emitted in this phase
    """

    def __init__(
        self,
        operation: OperationKind,
        worker_pool,
        endpoint_pool,
        interval: float = SAMPLE_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        time_string: Callable[[], str] = utc_time_string,
        emit: Callable[[str], None] = print_line,
    ):
        self.operation = operation
        self.worker_pool = worker_pool
        self.endpoint_pool = endpoint_pool
        self.interval = interval
        self.clock = clock
        self.time_string = time_string
        self.emit = emit

        self.peak_ops = 0.0
        self.samples: List[Sample] = []
        self.start_time: Optional[float] = None
        self._last_count = 0
        self._last_total_size = 0
        self._last_time = 0.0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            logger.warning(f"Sampler for {self.operation} already running")
            return
        self.start_time = self.clock()
        self.peak_ops = 0.0
        self.samples = []
        self._last_count = 0
        self._last_total_size = 0
        self._last_time = self.start_time
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def tick(self) -> Sample:
        """Take one sample, update the peak and emit the sample line."""
        now = self.clock()
        count = self.worker_pool.completed_count()
        total_size = self.worker_pool.completed_bytes()
        elapsed_ms = (now - self._last_time) * MS_PER_SECOND

        if elapsed_ms > 0:
            current_ops = (count - self._last_count) / elapsed_ms * MS_PER_SECOND
            throughput = (total_size - self._last_total_size) / elapsed_ms * MS_PER_SECOND
        else:
            current_ops = 0.0
            throughput = 0.0

        sample = Sample(
            timestamp=self.time_string(),
            operation=self.operation,
            ops_per_sec=current_ops,
            throughput_bytes_per_sec=throughput,
        )
        self.samples.append(sample)
        self.emit(format_sample_line(sample))

        if current_ops > self.peak_ops:
            self.peak_ops = current_ops

        self._last_count = count
        self._last_total_size = total_size
        self._last_time = now
        return sample

    async def finish(self, total_bytes: int) -> PhaseSummary:
        """Stop sampling, emit the phase summary and reset endpoint retry counters."""
        await self.stop()
        elapsed_seconds = self.clock() - self.start_time if self.start_time is not None else 0.0
        total_count = self.worker_pool.completed_count()
        avg_ops = total_count / elapsed_seconds if elapsed_seconds > 0 else 0.0

        summary = PhaseSummary(
            operation=self.operation,
            elapsed_ms=int(elapsed_seconds * MS_PER_SECOND),
            peak_ops_per_sec=self.peak_ops,
            avg_ops_per_sec=avg_ops,
            total_bytes=total_bytes,
            total_count=total_count,
            recoverable_error_count=self.endpoint_pool.total_retry_count(),
        )
        self.emit(format_summary_line(summary))
        self.endpoint_pool.reset_retry_counts()
        return summary
