import asyncio
from typing import AsyncIterable, Awaitable, Callable, Generic, Set, TypeVar

from structlog import get_logger

logger = get_logger()

T = TypeVar("T")
R = TypeVar("R")


class WorkerPool(Generic[T, R]):
    """
    Runs a coroutine per item with at most `max_concurrency` in flight.

    Items are pulled from the source only when a slot is free. Results are
    collected by the single loop in `run`, one completion at a time. The first
    failing task aborts the run: every other in-flight task is cancelled, and
    the error propagates unchanged. Work that already finished is not undone.
    """

    def __init__(self, max_concurrency: int):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")
        self.max_concurrency = max_concurrency

    async def run(
        self, items: AsyncIterable[T], task: Callable[[T], Awaitable[R]]
    ) -> Set[R]:
        results: Set[R] = set()
        pending: Set[asyncio.Task] = set()

        try:
            async for item in items:
                if len(pending) >= self.max_concurrency:
                    pending = await self._wait_next(pending, results)
                pending.add(asyncio.create_task(task(item)))

            while pending:
                pending = await self._wait_next(pending, results)
        except BaseException:
            for pending_task in pending:
                pending_task.cancel()
            raise

        return results

    async def _wait_next(
        self, pending: Set[asyncio.Task], results: Set[R]
    ) -> Set[asyncio.Task]:
        done, pending = await asyncio.wait(
            pending, return_when=asyncio.FIRST_COMPLETED
        )

        error = None
        for done_task in done:
            if done_task.cancelled():
                continue
            task_error = done_task.exception()
            if task_error is None:
                results.add(done_task.result())
            elif error is None:
                error = task_error

        if error is not None:
            logger.error(
                "worker pool aborted",
                error=repr(error),
                completed=len(results),
                cancelled=len(pending),
            )
            raise error

        return pending
