"""Bounded-concurrency batch execution with pacing between batches."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class FetchResult(Generic[R]):
    """Outcome of one unit of work: a value, or absent with the reason."""

    value: R | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: R) -> "FetchResult[R]":
        return cls(value=value)

    @classmethod
    def absent(cls, reason: str) -> "FetchResult[R]":
        return cls(error=reason or "unknown error")


class BatchRunner:
    """Runs independent coroutines ``width`` at a time.

    Each batch settles completely before the next one starts, with a fixed
    pause in between. A failing item never affects its siblings.
    """

    def __init__(self, width: int, pause: float = 0.0, name: str = "batch"):
        """Initialize batch runner.

        Args:
            width: Maximum concurrently pending operations
            pause: Seconds to sleep between batches (not after the last)
            name: Label used in logs
        """
        if width < 1:
            raise ValueError("width must be at least 1")
        if pause < 0:
            raise ValueError("pause cannot be negative")
        self.width = width
        self.pause = pause
        self.name = name
        self.batches_completed = 0

    async def _run_one(self, worker: Callable[[T], Awaitable[R]], item: T) -> FetchResult[R]:
        try:
            return FetchResult.success(await worker(item))
        except Exception as e:
            logger.debug("batch_item_failed", runner=self.name, error=str(e))
            return FetchResult.absent(str(e) or type(e).__name__)

    async def run(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
        on_batch: Callable[[int, int], None] | None = None,
    ) -> list[FetchResult[R]]:
        """Run ``worker`` over every item.

        Args:
            items: Units of work, in order
            worker: Coroutine function called once per item
            on_batch: Optional callback receiving (items done, total) after each batch

        Returns:
            One FetchResult per item, in input order
        """
        results: list[FetchResult[R]] = []
        total = len(items)

        for start in range(0, total, self.width):
            batch = items[start : start + self.width]
            results.extend(await asyncio.gather(*(self._run_one(worker, item) for item in batch)))
            self.batches_completed += 1

            if on_batch:
                on_batch(min(start + self.width, total), total)

            if start + self.width < total:
                await asyncio.sleep(self.pause)

        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.info("batch_run_partial", runner=self.name, total=total, failed=failed)
        return results
