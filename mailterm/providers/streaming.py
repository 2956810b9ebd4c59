"""
Producer/consumer plumbing for blocking backend fetches.

A producer runs in a worker thread and pushes results into a bounded queue;
the consumer drains the queue on the event loop and only then checks the
completion future, which carries the producer's terminal error.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

_END = object()


class FetchStream:
    """
    Bounded result channel plus a single-value completion signal.

    The consumer must drain the stream completely (iterate it or call
    collect()) before awaiting wait(); otherwise a producer blocked on the
    full queue is never released.
    """

    def __init__(self, maxsize: int = 10):
        self._loop = asyncio.get_running_loop()
        self._results: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._done: asyncio.Future = self._loop.create_future()

    def put(self, item: Any) -> None:
        """Push one result from the producer thread, blocking while the queue is full."""
        asyncio.run_coroutine_threadsafe(self._results.put(item), self._loop).result()

    def _close(self, error: Optional[BaseException]) -> None:
        self.put(_END)
        self._loop.call_soon_threadsafe(self._finish, error)

    def _finish(self, error: Optional[BaseException]) -> None:
        if self._done.done():
            return
        if error is not None:
            self._done.set_exception(error)
        else:
            self._done.set_result(None)

    def _produce(self, producer: Callable[["FetchStream"], None]) -> None:
        error = None
        try:
            producer(self)
        except Exception as e:
            logger.warning(f"Fetch producer failed: {e}")
            error = e
        finally:
            self._close(error)

    def start(self, producer: Callable[["FetchStream"], None]) -> "asyncio.Future":
        """Run the producer in the default executor."""
        return self._loop.run_in_executor(None, self._produce, producer)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        item = await self._results.get()
        if item is _END:
            raise StopAsyncIteration
        return item

    async def collect(self) -> List[Any]:
        """Drain every remaining result."""
        return [item async for item in self]

    async def wait(self) -> None:
        """Wait for the producer's terminal status, re-raising its error."""
        await self._done

    @classmethod
    async def run(cls, producer: Callable[["FetchStream"], None], maxsize: int = 10) -> List[Any]:
        """
        Run a producer to completion and return everything it produced.

        Raises:
            Whatever the producer raised, after all partial results were drained
        """
        stream = cls(maxsize=maxsize)
        worker = stream.start(producer)
        items = await stream.collect()
        await worker
        await stream.wait()
        return items
