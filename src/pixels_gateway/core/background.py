"""Supervision of fire-and-forget background work."""

import asyncio
import time
from typing import Any, Coroutine, Optional, Set

from .observability import LogContext, MetricsCollector
from .protocols import LoggerProtocol


class BackgroundTaskManager:
    """
    Owns every task spawned outside a request's lifetime.

    Each task keeps a strong reference until it finishes. Its outcome is
    logged with the context it was spawned with and recorded as a metric;
    failures never propagate to whoever spawned it.
    """

    def __init__(
        self,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._logger = logger
        self._metrics_collector = metrics_collector
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        name: str,
        coro: Coroutine[Any, Any, Any],
        context: Optional[LogContext] = None,
    ) -> asyncio.Task:
        context = (context or LogContext(component="background")).with_operation(name)
        start_time = time.time()
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)

        def _on_done(finished: asyncio.Task) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                self._logger.warning("Background task cancelled", context)
                self._record(name, start_time, False, "cancelled")
                return
            error = finished.exception()
            if error is not None:
                self._logger.error(
                    "Background task failed",
                    context,
                    error=str(error),
                    error_type=type(error).__name__,
                )
                self._record(name, start_time, False, str(error))
                return
            self._logger.debug("Background task finished", context)
            self._record(name, start_time, True)

        task.add_done_callback(_on_done)
        return task

    def _record(
        self,
        name: str,
        start_time: float,
        success: bool,
        error_message: Optional[str] = None,
    ) -> None:
        if self._metrics_collector:
            self._metrics_collector.record(name, start_time, success, error_message)

    async def drain(self) -> None:
        """Wait until every task spawned so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """Drain outstanding tasks, cancelling whatever outlives ``timeout``."""
        if not self._tasks:
            return
        self._logger.info(f"Waiting for {len(self._tasks)} background task(s)")
        try:
            await asyncio.wait_for(self.drain(), timeout)
        except asyncio.TimeoutError:
            for task in list(self._tasks):
                task.cancel()
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
