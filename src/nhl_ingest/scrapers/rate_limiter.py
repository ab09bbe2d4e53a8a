import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, Tuple

from loguru import logger

from nhl_ingest.config.settings import settings

from .http_client import ScraperError

Operation = Callable[[], Awaitable[Any]]


class SchedulerClosedError(ScraperError):
    """Raised for operations admitted after the scheduler was closed."""


class RateLimitedScheduler:
    """Serializes every outbound call through one global lane.

    Callers ``admit`` zero-argument coroutine factories. A single consumer task
    drains a bounded FIFO queue and starts each operation no sooner than
    ``60 / requests_per_minute`` seconds after the previous one started, no
    matter how many callers are waiting. Operations run one at a time; the
    caller awaits the operation's own result or exception.
    """

    def __init__(
        self,
        requests_per_minute: Optional[int] = None,
        max_queue_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.requests_per_minute = requests_per_minute or settings.requests_per_minute
        self.interval = 60.0 / self.requests_per_minute
        self._queue: asyncio.Queue[Tuple[Operation, asyncio.Future]] = asyncio.Queue(
            maxsize=max_queue_size or settings.scheduler_queue_size
        )
        self._clock = clock
        self._sleep = sleep
        self._last_dispatch: Optional[float] = None
        self._consumer: Optional[asyncio.Task] = None
        self._closed = False
        self.dispatch_count = 0

    async def admit(self, operation: Operation) -> Any:
        """Queues ``operation`` and waits for its result."""
        if self._closed:
            raise SchedulerClosedError("Scheduler is closed; operation rejected")
        self._ensure_consumer()
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((operation, future))
        return await future

    def _ensure_consumer(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(
                self._drain(), name="rate-limited-scheduler"
            )

    async def _drain(self) -> None:
        while True:
            operation, future = await self._queue.get()
            try:
                if future.cancelled():
                    continue
                await self._wait_for_slot()
                self._last_dispatch = self._clock()
                self.dispatch_count += 1
                try:
                    result = await operation()
                except asyncio.CancelledError:
                    if not future.done():
                        future.cancel()
                    raise
                except Exception as e:
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
            finally:
                self._queue.task_done()

    async def _wait_for_slot(self) -> None:
        if self._last_dispatch is None:
            return
        remaining = self.interval - (self._clock() - self._last_dispatch)
        if remaining > 0:
            logger.trace(f"Rate limiter holding next request for {remaining:.2f}s")
            await self._sleep(remaining)

    async def close(self) -> None:
        """Stops the consumer; queued operations that never ran are cancelled."""
        self._closed = True
        if self._consumer is not None and not self._consumer.done():
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            if not future.done():
                future.cancel()
            self._queue.task_done()

    async def __aenter__(self) -> "RateLimitedScheduler":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
