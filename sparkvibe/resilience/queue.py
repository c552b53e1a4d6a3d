"""Rate-limited FIFO request queue.

Serializes outbound calls so consecutive executions never start closer
together than a fixed minimum interval, however many are submitted at once.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Optional

logger = logging.getLogger(__name__)


class QueueClosed(Exception):
    """Exception raised for requests still waiting when the queue is disposed."""

    def __init__(self, pending: int = 0):
        self.pending = pending
        super().__init__("Request queue was disposed before the request ran")


@dataclass
class QueuedRequest:
    """A call waiting its turn, with the future its caller awaits."""

    invoke: Callable[[], Awaitable[Any]]
    future: asyncio.Future
    enqueued_at: float


class RateLimitedQueue:
    """
    Single-runner FIFO queue with a minimum spacing between executions.

    Each request's outcome goes to its own caller only: a failing call never
    blocks the ones behind it. The queue does not retry.

    Usage:
        queue = RateLimitedQueue(min_interval=0.1, cooldown=0.05)
        response = await queue.enqueue(lambda: client.get(url))
    """

    def __init__(
        self,
        min_interval: float = 0.1,
        cooldown: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval
        self.cooldown = cooldown
        self._clock = clock
        self._requests: Deque[QueuedRequest] = deque()
        self._processing = False
        self._runner: Optional[asyncio.Task] = None
        self._last_executed: Optional[float] = None
        self._closed = False
        self.executed = 0

    @property
    def pending(self) -> int:
        """Number of requests waiting to start."""
        return len(self._requests)

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def enqueue(self, invoke: Callable[[], Awaitable[Any]]) -> Any:
        """
        Queue a call and wait for its result.

        Args:
            invoke: Zero-argument coroutine function performing the call

        Returns:
            The value ``invoke()`` returned

        Raises:
            Whatever ``invoke()`` raised, or QueueClosed if disposed first
        """
        if self._closed:
            raise QueueClosed()

        future = asyncio.get_running_loop().create_future()
        self._requests.append(
            QueuedRequest(invoke=invoke, future=future, enqueued_at=self._clock())
        )

        if not self._processing:
            self._processing = True
            self._runner = asyncio.ensure_future(self._process())

        return await future

    async def _wait_for_slot(self):
        """Sleep until ``min_interval`` has passed since the last execution."""
        if self._last_executed is None:
            return

        while True:
            elapsed = self._clock() - self._last_executed
            if elapsed >= self.min_interval:
                return
            await asyncio.sleep(self.min_interval - elapsed)

    async def _process(self):
        try:
            while self._requests:
                request = self._requests.popleft()
                if request.future.done():
                    # Caller went away while waiting
                    continue

                await self._wait_for_slot()

                try:
                    result = await request.invoke()
                except asyncio.CancelledError:
                    if not request.future.done():
                        request.future.cancel()
                    raise
                except Exception as e:
                    if not request.future.done():
                        request.future.set_exception(e)
                else:
                    if not request.future.done():
                        request.future.set_result(result)

                self._last_executed = self._clock()
                self.executed += 1

                if self.cooldown > 0:
                    await asyncio.sleep(self.cooldown)
        finally:
            self._processing = False
            self._runner = None

    async def dispose(self):
        """Stop the runner and reject everything still waiting."""
        self._closed = True
        waiting = len(self._requests)

        runner = self._runner
        if runner is not None and not runner.done():
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass

        while self._requests:
            request = self._requests.popleft()
            if not request.future.done():
                request.future.set_exception(QueueClosed(waiting))

        if waiting:
            logger.info(f"Request queue disposed with {waiting} pending requests")
