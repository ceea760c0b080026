"""Structured concurrency helpers for running async workloads in parallel."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol, TypeVar

from tqdm import tqdm

from .log_utils import logger


class ProgressReporter(Protocol):
    """Lightweight progress reporter abstraction."""

    def start(self, total: int) -> None: ...

    def increment(self) -> None: ...

    def close(self) -> None: ...


class TqdmProgressReporter:
    """Progress reporter backed by tqdm (writes to stderr)."""

    def __init__(self, desc: str, unit: str = "it") -> None:
        self._desc = desc
        self._unit = unit
        self._pbar: tqdm | None = None

    def start(self, total: int) -> None:
        self._pbar = tqdm(
            total=total,
            desc=self._desc,
            unit=self._unit,
            smoothing=0,
            leave=False,
        )

    def increment(self) -> None:
        if self._pbar is not None:
            self._pbar.update(1)

    def close(self) -> None:
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None


T = TypeVar("T")
J = TypeVar("J")


class ParallelExecutor:
    """Run one async callable per job with bounded concurrency.

    Jobs are pulled from a shared queue by ``max_concurrency`` workers. Every job
    runs exactly once; a job that raises does not stop the others and its
    exception takes its slot in the result list. Results always come back in
    submission order, whatever order the jobs finish in.
    """

    def __init__(
        self,
        *,
        max_concurrency: int,
        progress_reporter: ProgressReporter | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._max_concurrency = max_concurrency
        self._progress = progress_reporter

    async def map(
        self,
        fn: Callable[[int, J], Awaitable[T]],
        jobs: Sequence[J],
    ) -> list[T | BaseException]:
        """Execute ``fn(index, job)`` for every job and collect the outcomes."""
        total = len(jobs)
        if total == 0:
            return []

        results: list[T | BaseException | None] = [None] * total
        queue: asyncio.Queue[tuple[int, J]] = asyncio.Queue()
        for index, job in enumerate(jobs):
            queue.put_nowait((index, job))

        if self._progress:
            self._progress.start(total)

        async def worker() -> None:
            while True:
                try:
                    index, job = queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                try:
                    results[index] = await fn(index, job)
                except Exception as exc:
                    logger.debug(f"Parallel executor job {index} failed: {exc!r}")
                    results[index] = exc
                queue.task_done()
                if self._progress:
                    self._progress.increment()

        try:
            async with asyncio.TaskGroup() as tg:
                for _ in range(min(self._max_concurrency, total)):
                    tg.create_task(worker())
        finally:
            if self._progress:
                self._progress.close()

        return results  # type: ignore[return-value]
