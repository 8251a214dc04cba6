"""Long-lived worker pool that grid evaluations dispatch tiles against."""

from __future__ import annotations

import logging
import os
from concurrent.futures import FIRST_EXCEPTION, Executor, ProcessPoolExecutor, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, Optional

from .errors import ConfigurationError, PoolClosedError

logger = logging.getLogger(__name__)

KINDS = ("thread", "process")
WORKERS_ENV = "FRACTALGRID_WORKERS"


def default_worker_count() -> int:
    """Pool size from ``FRACTALGRID_WORKERS`` or the number of CPU cores."""

    configured = os.environ.get(WORKERS_ENV)
    if configured:
        try:
            count = int(configured)
        except ValueError as exc:
            raise ConfigurationError(f"{WORKERS_ENV} must be an integer, got {configured!r}") from exc
        if count <= 0:
            raise ConfigurationError(f"{WORKERS_ENV} must be positive, got {count}")
        return count
    return os.cpu_count() or 1


class WorkerPool:
    """A fixed set of workers, created once and reused for many evaluations.

    ``thread`` workers write straight into the caller's buffer. ``process``
    workers write into a shared-memory buffer set up by the engine. The pool
    is owned by whoever created it and must be closed by them, usually via
    ``with WorkerPool() as pool:``.
    """

    def __init__(self, workers: Optional[int] = None, kind: str = "thread"):
        if kind not in KINDS:
            raise ConfigurationError(f"unknown pool kind {kind!r}; choose from {', '.join(KINDS)}")
        if workers is None:
            workers = default_worker_count()
        if workers <= 0:
            raise ConfigurationError(f"worker count must be positive, got {workers}")

        self.size = int(workers)
        self.kind = kind
        self._executor: Optional[Executor]
        if kind == "thread":
            self._executor = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix="fractalgrid")
        else:
            self._executor = ProcessPoolExecutor(max_workers=self.size)
        logger.debug("started %s pool with %d workers", kind, self.size)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"WorkerPool(workers={self.size}, kind={self.kind!r}, {state})"

    @property
    def closed(self) -> bool:
        return self._executor is None

    @property
    def shares_memory(self) -> bool:
        return self.kind == "thread"

    def run(self, fn: Callable[..., Any], tasks: Iterable[Any]) -> list[Any]:
        """Run ``fn`` over ``tasks`` and block until all of them finished.

        Results come back in task order. The first worker error is re-raised
        once every other task has settled.
        """

        if self._executor is None:
            raise PoolClosedError("cannot dispatch work on a closed WorkerPool")
        futures = [self._executor.submit(fn, task) for task in tasks]
        _, pending = wait(futures, return_when=FIRST_EXCEPTION)
        if pending:
            for future in pending:
                future.cancel()
            wait(pending)
        for future in futures:
            if not future.cancelled() and future.exception() is not None:
                raise future.exception()
        return [future.result() for future in futures]

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
            logger.debug("closed %s pool", self.kind)

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
