"""
Bounded worker pools with blocking backpressure.

WHY
───
The orchestrator fans out twice: one worker per concurrently processed slice
and, inside each slice, a handful of workers running batch tasks. Fetching a
page is usually much faster than processing it, so an unbounded queue would
pull an entire slice into memory before the first batch finished. Both pools
are therefore fixed-size with a bounded pending-task budget, and ``submit``
*blocks* the producer while the budget is exhausted instead of dropping work.

ARCHITECTURE
────────────
::

    PoolProvider.provide(size, label) ─► WorkerPool
                                          ├── .submit(fn)            blocks when full
                                          ├── .shutdown()            stop accepting work
                                          └── .await_termination(t)  wait for submitted work

    BlockingThreadPool
      ThreadPoolExecutor(size, thread_name_prefix=label)
      + BoundedSemaphore(size + queue_size)   released when each task finishes

Once a pool has been shut down, further submissions are discarded with a
warning and ``submit`` returns ``None``.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Protocol, runtime_checkable

from slicer.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 1024


@runtime_checkable
class WorkerPool(Protocol):
    """What the orchestrator needs from a pool."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future | None: ...

    def shutdown(self) -> None: ...

    def await_termination(self, timeout: float | None = None) -> bool: ...


@runtime_checkable
class PoolProvider(Protocol):
    """Creates worker pools on demand."""

    def provide(self, size: int, label: str) -> WorkerPool: ...


class BlockingThreadPool:
    """Fixed-size thread pool whose ``submit`` blocks while the queue is full.

    Args:
        size: Number of worker threads.
        label: Thread name prefix (threads are named ``{label}_{n}``).
        queue_size: Tasks allowed to wait beyond the ones running.
    """

    def __init__(self, size: int, label: str, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        if size <= 0:
            raise ValueError(f"pool size must be positive: {size}")
        if queue_size <= 0:
            raise ValueError(f"queue_size must be positive: {queue_size}")
        self.size = size
        self.label = label
        self._executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix=label)
        self._slots = threading.BoundedSemaphore(size + queue_size)
        self._lock = threading.Lock()
        self._pending: set[Future] = set()
        self._closed = False

    def __repr__(self) -> str:
        return f"BlockingThreadPool(size={self.size}, label={self.label!r}, closed={self._closed})"

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future | None:
        """Submit ``fn``; blocks while the pool is saturated.

        Returns:
            The task's future, or ``None`` if the pool no longer accepts work.
        """
        if self._closed:
            logger.warning("pool_task_discarded", pool=self.label, reason="shutdown")
            return None
        self._slots.acquire()
        with self._lock:
            if self._closed:
                self._slots.release()
                logger.warning("pool_task_discarded", pool=self.label, reason="shutdown")
                return None
            try:
                future = self._executor.submit(fn, *args, **kwargs)
            except RuntimeError:
                self._slots.release()
                raise
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        self._slots.release()

    def shutdown(self) -> None:
        """Stop accepting work. Already submitted tasks keep running."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=False)

    def await_termination(self, timeout: float | None = None) -> bool:
        """Wait for submitted tasks; ``True`` if all finished within ``timeout``."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def __enter__(self) -> BlockingThreadPool:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()


class ThreadPoolProvider:
    """Default provider: one :class:`BlockingThreadPool` per request."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.queue_size = queue_size

    def provide(self, size: int, label: str) -> BlockingThreadPool:
        logger.debug("pool_created", pool=label, size=size, queue_size=self.queue_size)
        return BlockingThreadPool(size, label, queue_size=self.queue_size)


__all__ = [
    "WorkerPool",
    "PoolProvider",
    "BlockingThreadPool",
    "ThreadPoolProvider",
    "DEFAULT_QUEUE_SIZE",
]
