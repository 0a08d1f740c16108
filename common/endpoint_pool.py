"""
Pool of storage endpoints shared by the benchmark workers.
"""

import logging
from contextlib import AsyncExitStack
from typing import List, Sequence

logger = logging.getLogger(__name__)


class EndpointPool:
    """Routes worker ids to endpoints round robin.

    Endpoints are anything exposing ``put/head/get/delete/copy`` plus a
    ``retry_policy``. Worker ``i`` always gets endpoint ``i mod len(pool)``.
    """

    def __init__(self, endpoints: Sequence):
        if not endpoints:
            raise ValueError("EndpointPool needs at least one endpoint")
        self.endpoints: List = list(endpoints)
        self._exit_stack = None

    def for_worker(self, worker_id: int):
        return self.endpoints[worker_id % len(self.endpoints)]

    def total_retry_count(self) -> int:
        return sum(endpoint.retry_policy.total_retry_count for endpoint in self.endpoints)

    def reset_retry_counts(self) -> None:
        for endpoint in self.endpoints:
            endpoint.retry_policy.reset()

    async def __aenter__(self):
        """Open every endpoint that is an async context manager."""
        self._exit_stack = AsyncExitStack()
        await self._exit_stack.__aenter__()
        try:
            for endpoint in self.endpoints:
                if hasattr(endpoint, "__aenter__"):
                    await self._exit_stack.enter_async_context(endpoint)
        except BaseException:
            await self._exit_stack.aclose()
            self._exit_stack = None
            raise
        logger.info(f"Opened {len(self.endpoints)} storage endpoints")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._exit_stack is not None:
            stack, self._exit_stack = self._exit_stack, None
            return await stack.__aexit__(exc_type, exc_val, exc_tb)
        return False

    def __len__(self) -> int:
        return len(self.endpoints)

    def __iter__(self):
        return iter(self.endpoints)

    def __repr__(self) -> str:
        return f"EndpointPool(endpoints={len(self.endpoints)})"
