"""
Slice orchestrator - partitioned, resumable, two-level concurrent processing.

Manifesto:
    A source too large for one pass is split into slices. Each slice is
    paginated, each page is chunked into batches, and each batch becomes a
    task. Slices run side by side in an outer pool; a slice's batches run in a
    small inner pool. Every slice ends as *completed* or *failed* in the
    checkpoint store, so a crashed or partially failed run can be finished
    later instead of restarted.

Architecture:
    ::

        process() / process_error_slices() / resume_progress()
              │  RunGuard: idle -> running (ConcurrentRunError otherwise)
              ▼
        _launch(slices)                      ◄── persists "all" first
              │
              ├── 1 slice  ──► _run_slice() inline
              └── N slices ──► outer pool (slice_concurrency workers)
                                 submit, sleep(launch_interval), submit, ...
                                       │
                                       ▼
                               _process_slice(slice)
                                 fetch page ─► chunk(batch_size) ─► tasks
                                   │  (retry)          │
                                   │                   ├── fast path: inline
                                   ▼                   └── inner pool (lazy)
                                 next page (cursor = previous page)
                                       │
                                       ▼
                                 drain handles ─► completed | error checkpoint

        failed slices ─► one more _launch pass (process/resume only)

Run modes and retry depth:
    - ``process()``: initial pass + one internal retry pass.
    - ``process_error_slices()``: a single pass over persisted errors not
      completed since; failures are final.
    - ``resume_progress()``: launch over ``all - completed`` (with its
      internal retry pass), then ``process_error_slices()``. A slice can
      therefore be attempted three times on resume but only twice on a
      fresh run.

Concurrency:
    - Page fetches of one slice are strictly sequential (each needs the
      previous page); batches of consecutive pages may overlap.
    - The item counter is the only state shared by workers and is updated
      under a lock, once per successful slice.
    - Interrupting the calling thread (``KeyboardInterrupt``) stops
      submitting and waiting; queued and running tasks are abandoned, not
      cancelled. Partial results are available from :attr:`last_run`.

Example::

    source = list(range(1000))
    target = set()

    def fetch(slice_, previous):
        start = slice_.begin if previous is None else previous.extra["next"]
        stop = min(start + 100, slice_.end)
        return Page(source[start:stop], has_next=stop < slice_.end, extra={"next": stop})

    def task(items):
        return lambda: target.update(items) or True

    orchestrator = SliceOrchestrator(
        lambda: range_slices(0, 1000, 128), fetch, task,
        checkpoint_store=FileCheckpointStore("/tmp/orders", SliceCodec("int")),
        launch_interval=0,
    )
    orchestrator.process()          # True
    orchestrator.processed_count    # 1000

Tags:
    orchestration, batching, pagination, checkpoint, resume, thread-pool,
    slicer
"""

from __future__ import annotations

import contextvars
import os
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future
from typing import Any

from slicer.checkpoint.base import CheckpointStore
from slicer.checkpoint.file import FileCheckpointStore
from slicer.checkpoint.memory import MemoryCheckpointStore
from slicer.core.errors import (
    FetchError,
    InconsistentCheckpointError,
    InvalidConfigError,
    NoResumableStateError,
)
from slicer.core.logging import LogContext, get_logger
from slicer.core.settings import SlicerSettings
from slicer.execution.pool import PoolProvider, ThreadPoolProvider
from slicer.execution.retry import DEFAULT_DELAY_UNIT, RetryPolicy, retry_call
from slicer.orchestration.contracts import DataProvider, ResourceFetcher, SliceSource, TaskFactory
from slicer.orchestration.state import (
    RunContext,
    RunGuard,
    RunMode,
    RunReport,
    RunState,
    SliceCollector,
)
from slicer.slices.codec import SliceCodec
from slicer.slices.models import Page, Slice

logger = get_logger(__name__)

DEFAULT_SLICE_CONCURRENCY = 8
DEFAULT_BATCH_SIZE = 1000
DEFAULT_LAUNCH_INTERVAL = 3.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_SLICE_TIMEOUT = 60 * 60.0
DEFAULT_RUN_TIMEOUT = 7 * 24 * 60 * 60.0
POOL_LABEL = "slicer"


def default_desired_concurrency() -> int:
    """``2 * cpu_count + 1``."""
    return (os.cpu_count() or 1) * 2 + 1


def chunk(items: Sequence[Any], size: int) -> list[list[Any]]:
    """Split ``items`` into consecutive lists of at most ``size``, order preserved."""
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def _failed_handle(error: Exception) -> Future:
    handle: Future = Future()
    handle.set_exception(error)
    return handle


class SliceOrchestrator:
    """Drives slice dispatch, pagination, batching, retries and checkpoints.

    Args:
        slice_source: Produces the slices of a fresh run.
        fetcher: Returns one page of a slice given the previous page.
        task_factory: Turns a batch of items into a zero-argument task.
        checkpoint_store: Where slice outcomes are recorded
            (default: in-memory store).
        pool_provider: Supplies outer and inner pools
            (default: :class:`ThreadPoolProvider`).
        slice_concurrency: Slices processed at once (> 0).
        batch_size: Max items per task (> 0).
        launch_interval: Seconds between outer submissions (>= 0).
        retry_attempts: Attempts per fetch and per task (>= 0; 0 acts as 1).
        retry_nullable: Whether a task returning ``None`` is retried.
        desired_concurrency: Target total worker count across both levels
            (default ``2 * cpu_count + 1``).
        slice_timeout: Seconds to wait for one slice's batches.
        run_timeout: Seconds to wait for all slices of a pass.
        retry_delay_unit: Seconds per configured attempt between retries.
        sleep: Sleep function for the launch stagger (injectable for tests).
    """

    def __init__(
        self,
        slice_source: SliceSource,
        fetcher: ResourceFetcher,
        task_factory: TaskFactory,
        *,
        checkpoint_store: CheckpointStore | None = None,
        pool_provider: PoolProvider | None = None,
        slice_concurrency: int = DEFAULT_SLICE_CONCURRENCY,
        batch_size: int = DEFAULT_BATCH_SIZE,
        launch_interval: float = DEFAULT_LAUNCH_INTERVAL,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_nullable: bool = True,
        desired_concurrency: int | None = None,
        slice_timeout: float = DEFAULT_SLICE_TIMEOUT,
        run_timeout: float = DEFAULT_RUN_TIMEOUT,
        retry_delay_unit: float = DEFAULT_DELAY_UNIT,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        self._guard = RunGuard()
        self._slice_source = slice_source
        self._fetcher = fetcher
        self._task_factory = task_factory
        self._sleep = sleep
        self._last_run: RunReport | None = None

        self.checkpoint_store = checkpoint_store if checkpoint_store is not None else MemoryCheckpointStore()
        self.pool_provider = pool_provider if pool_provider is not None else ThreadPoolProvider()
        self.slice_concurrency = slice_concurrency
        self.batch_size = batch_size
        self.launch_interval = launch_interval
        self.retry_attempts = retry_attempts
        self.retry_nullable = retry_nullable
        self.desired_concurrency = (
            desired_concurrency if desired_concurrency is not None else default_desired_concurrency()
        )
        self.slice_timeout = slice_timeout
        self.run_timeout = run_timeout
        self.retry_delay_unit = retry_delay_unit

    # ── alternate constructors ───────────────────────────────────

    @classmethod
    def from_provider(cls, provider: DataProvider, **kwargs: Any) -> SliceOrchestrator:
        """Build an orchestrator delegating to a :class:`DataProvider`."""
        return cls(provider.generate_slices, provider.fetch, provider.create_task, **kwargs)

    @classmethod
    def from_settings(
        cls,
        settings: SlicerSettings,
        slice_source: SliceSource,
        fetcher: ResourceFetcher,
        task_factory: TaskFactory,
        *,
        codec: SliceCodec | None = None,
        **overrides: Any,
    ) -> SliceOrchestrator:
        """Build an orchestrator with a file checkpoint store from settings."""
        options: dict[str, Any] = {
            "checkpoint_store": FileCheckpointStore(
                settings.checkpoint_dir, codec or SliceCodec(), max_history=settings.max_history
            ),
            "pool_provider": ThreadPoolProvider(queue_size=settings.queue_size),
            "slice_concurrency": settings.slice_concurrency,
            "batch_size": settings.batch_size,
            "launch_interval": settings.launch_interval,
            "retry_attempts": settings.retry_attempts,
            "retry_nullable": settings.retry_nullable,
        }
        options.update(overrides)
        return cls(slice_source, fetcher, task_factory, **options)

    # ── configuration ────────────────────────────────────────────

    def _set(self, name: str, value: Any) -> None:
        self._guard.ensure_idle()
        setattr(self, f"_{name}", value)

    @property
    def slice_concurrency(self) -> int:
        return self._slice_concurrency

    @slice_concurrency.setter
    def slice_concurrency(self, value: int) -> None:
        if value <= 0:
            raise InvalidConfigError("slice_concurrency", value, f"slice_concurrency must be > 0: {value}")
        self._set("slice_concurrency", value)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @batch_size.setter
    def batch_size(self, value: int) -> None:
        if value <= 0:
            raise InvalidConfigError("batch_size", value, f"batch_size must be > 0: {value}")
        self._set("batch_size", value)

    @property
    def launch_interval(self) -> float:
        return self._launch_interval

    @launch_interval.setter
    def launch_interval(self, value: float) -> None:
        if value < 0:
            raise InvalidConfigError("launch_interval", value, f"launch_interval must be >= 0: {value}")
        self._set("launch_interval", value)

    @property
    def retry_attempts(self) -> int:
        return self._retry_attempts

    @retry_attempts.setter
    def retry_attempts(self, value: int) -> None:
        if value < 0:
            raise InvalidConfigError("retry_attempts", value, f"retry_attempts must be >= 0: {value}")
        self._set("retry_attempts", value)

    @property
    def retry_nullable(self) -> bool:
        return self._retry_nullable

    @retry_nullable.setter
    def retry_nullable(self, value: bool) -> None:
        self._set("retry_nullable", bool(value))

    @property
    def desired_concurrency(self) -> int:
        return self._desired_concurrency

    @desired_concurrency.setter
    def desired_concurrency(self, value: int) -> None:
        if value <= 0:
            raise InvalidConfigError("desired_concurrency", value, f"desired_concurrency must be > 0: {value}")
        self._set("desired_concurrency", value)

    @property
    def slice_timeout(self) -> float:
        return self._slice_timeout

    @slice_timeout.setter
    def slice_timeout(self, value: float) -> None:
        if value <= 0:
            raise InvalidConfigError("slice_timeout", value, f"slice_timeout must be > 0: {value}")
        self._set("slice_timeout", value)

    @property
    def run_timeout(self) -> float:
        return self._run_timeout

    @run_timeout.setter
    def run_timeout(self, value: float) -> None:
        if value <= 0:
            raise InvalidConfigError("run_timeout", value, f"run_timeout must be > 0: {value}")
        self._set("run_timeout", value)

    @property
    def retry_delay_unit(self) -> float:
        return self._retry_delay_unit

    @retry_delay_unit.setter
    def retry_delay_unit(self, value: float) -> None:
        if value < 0:
            raise InvalidConfigError("retry_delay_unit", value, f"retry_delay_unit must be >= 0: {value}")
        self._set("retry_delay_unit", value)

    @property
    def pool_provider(self) -> PoolProvider:
        return self._pool_provider

    @pool_provider.setter
    def pool_provider(self, value: PoolProvider) -> None:
        if value is None:
            raise InvalidConfigError("pool_provider", value, "pool_provider must not be None")
        self._set("pool_provider", value)

    @property
    def checkpoint_store(self) -> CheckpointStore:
        return self._checkpoint_store

    @checkpoint_store.setter
    def checkpoint_store(self, value: CheckpointStore) -> None:
        if value is None:
            raise InvalidConfigError("checkpoint_store", value, "checkpoint_store must not be None")
        self._set("checkpoint_store", value)

    @property
    def inner_pool_size(self) -> int:
        """Workers per slice: ``max(1, desired_concurrency // slice_concurrency)``."""
        return max(1, self._desired_concurrency // self._slice_concurrency)

    # ── observability ────────────────────────────────────────────

    @property
    def state(self) -> RunState:
        return self._guard.state

    @property
    def last_run(self) -> RunReport | None:
        """Report of the most recently finished or interrupted run."""
        return self._last_run

    @property
    def processed_count(self) -> int:
        """Items counted by the most recent run."""
        return self._last_run.items_processed if self._last_run else 0

    # ── entry points ─────────────────────────────────────────────

    def process(self) -> bool:
        """Process every slice from the slice source.

        Clears previous checkpoint records, runs one pass over all slices and
        one retry pass over the failures.

        Returns:
            ``True`` if every slice eventually completed.

        Raises:
            ConcurrentRunError: If this instance is already running.
            CheckpointError: If the checkpoint store fails, including inside a
                slice worker (re-raised once the pass has drained).
        """
        with self._guard.running():
            ctx = RunContext(RunMode.PROCESS)
            with LogContext(run_id=ctx.run_id, mode=ctx.mode.value):
                logger.info("run_started")
                slices = self._collect(self._slice_source())
                self.checkpoint_store.clear_record()
                failed = self._interruptible(ctx, lambda: self._launch(ctx, slices, retry_failed=True))
                return self._finish(ctx, failed)

    def process_error_slices(self) -> bool:
        """Re-process slices recorded as failed and not completed since.

        Returns:
            ``True`` if there was nothing to re-process or every slice
            completed on this single pass.

        Raises:
            ConcurrentRunError: If this instance is already running.
            CheckpointError: If the checkpoint store fails, including inside a
                slice worker (re-raised once the pass has drained).
        """
        with self._guard.running():
            ctx = RunContext(RunMode.ERRORS)
            with LogContext(run_id=ctx.run_id, mode=ctx.mode.value):
                errors = self.checkpoint_store.get_errors()
                if not errors:
                    logger.info("no_error_slices_recorded")
                    return self._finish(ctx, [])
                remaining = self._ordered(errors - self.checkpoint_store.get_completed())
                if not remaining:
                    logger.info("error_slices_already_completed", errors=len(errors))
                    return self._finish(ctx, [])
                logger.info("error_slices_reprocessing", slices=len(remaining))
                failed = self._interruptible(ctx, lambda: self._launch(ctx, remaining, retry_failed=False))
                return self._finish(ctx, failed)

    def resume_progress(self) -> bool:
        """Finish the previous run from its checkpoint.

        Launches the slices recorded as *all* minus those recorded as
        *completed*, then delegates to :meth:`process_error_slices`.

        Raises:
            ConcurrentRunError: If this instance is already running.
            CheckpointError: If the checkpoint store fails, including inside a
                slice worker (re-raised once the pass has drained).
            NoResumableStateError: If the all or completed record is empty.
            InconsistentCheckpointError: If subtracting completed slices did
                not shrink a non-empty set (key equality/hash defect).
        """
        with self._guard.running():
            ctx = RunContext(RunMode.RESUME)
            with LogContext(run_id=ctx.run_id, mode=ctx.mode.value):
                all_slices = self.checkpoint_store.get_all()
                if not all_slices:
                    logger.warning("resume_no_all_slices_record")
                    raise NoResumableStateError(
                        "No slice record of a previous run; run process() instead"
                    )
                completed = self.checkpoint_store.get_completed()
                if not completed:
                    logger.warning("resume_no_completed_slices_record")
                    raise NoResumableStateError(
                        "No completed slices recorded for the previous run; run process() instead"
                    )
                remaining = all_slices - completed
                if remaining and len(remaining) == len(all_slices):
                    logger.error(
                        "resume_inconsistent_checkpoint", all=len(all_slices), completed=len(completed)
                    )
                    raise InconsistentCheckpointError(
                        "Completed slices do not match any recorded slice; check that the slice "
                        "key type has stable equality and hashing and that the records are intact"
                    ).with_context(all=len(all_slices), completed=len(completed))
                logger.info("resume_started", remaining=len(remaining), completed=len(completed))
                failed = self._interruptible(
                    ctx, lambda: self._launch(ctx, self._ordered(remaining), retry_failed=True)
                )
                self._finish(ctx, failed)

        logger.info("resume_processing_error_slices")
        return self.process_error_slices()

    # ── launch ───────────────────────────────────────────────────

    @staticmethod
    def _collect(slices: Iterable[Slice] | None) -> list[Slice]:
        if slices is None:
            return []
        return list(dict.fromkeys(s for s in slices if s is not None))

    @staticmethod
    def _ordered(slices: set[Slice]) -> list[Slice]:
        try:
            return sorted(slices, key=lambda s: (s.begin, s.end))
        except TypeError:
            return list(slices)

    def _interruptible(self, ctx: RunContext, launch: Callable[[], list[Slice]]) -> list[Slice]:
        try:
            return launch()
        except KeyboardInterrupt:
            partial = ctx.current_failures.snapshot()
            self._last_run = RunReport.from_context(ctx, partial, interrupted=True)
            logger.error("run_interrupted", failed=len(partial), items=ctx.counter.value)
            raise

    def _launch(self, ctx: RunContext, slices: list[Slice], *, retry_failed: bool) -> list[Slice]:
        failed = self._launch_pass(ctx, slices)
        if failed and retry_failed:
            logger.info("launch_retrying_failed_slices", failed=len(failed), slices=[str(s) for s in failed])
            failed = self._launch_pass(ctx, failed)
        return failed

    def _launch_pass(self, ctx: RunContext, slices: list[Slice]) -> list[Slice]:
        failures = ctx.new_pass()
        if not slices:
            logger.warning("launch_no_slices")
            return []

        self.checkpoint_store.save_all(set(slices))
        logger.info(
            "launch_started", slices=len(slices), slice_concurrency=self._slice_concurrency
        )
        if len(slices) == 1:
            self._run_slice(ctx, slices[0], failures)
            return failures.snapshot()

        pool = self._pool_provider.provide(self._slice_concurrency, f"{POOL_LABEL}-slices")
        handles: list[Future] = []
        try:
            for index, slice_ in enumerate(slices):
                handle = pool.submit(contextvars.copy_context().run, self._run_slice, ctx, slice_, failures)
                if handle is not None:
                    handles.append(handle)
                if self._launch_interval > 0 and index < len(slices) - 1:
                    self._sleep(self._launch_interval)
            logger.info("launch_submitted", slices=len(slices))
            pool.shutdown()
            if not pool.await_termination(self._run_timeout):
                logger.warning("launch_timed_out", timeout=self._run_timeout)
        except KeyboardInterrupt:
            pool.shutdown()
            raise

        # Checkpoint store failures inside a worker surface here.
        for handle in handles:
            if handle.done() and handle.exception() is not None:
                raise handle.exception()
        return failures.snapshot()

    # ── slices ───────────────────────────────────────────────────

    def _run_slice(self, ctx: RunContext, slice_: Slice, failures: SliceCollector) -> bool:
        with LogContext(slice=str(slice_)):
            started = time.monotonic()
            try:
                ok, count = self._process_slice(slice_)
            except Exception:
                logger.exception("slice_crashed")
                ok, count = False, 0

            if ok:
                total = ctx.counter.add(count)
                self.checkpoint_store.save_completed(slice_)
                logger.info(
                    "slice_completed",
                    items=count,
                    total=total,
                    elapsed=round(time.monotonic() - started, 3),
                )
            else:
                self.checkpoint_store.save_error(slice_)
                failures.add(slice_)
                logger.warning("slice_failed", elapsed=round(time.monotonic() - started, 3))
            return ok

    def _fetch(self, slice_: Slice, previous: Page | None) -> Page | None:
        try:
            return retry_call(
                lambda: self._fetcher(slice_, previous),
                self._retry_attempts,
                False,
                delay_unit=self._retry_delay_unit,
            )
        except Exception as e:
            raise FetchError(f"Fetching slice {slice_} failed", cause=e).with_context(
                slice=str(slice_), page_index=previous.page_index + 1 if previous else 0
            ) from e

    def _use_inline(self, first_page: bool, has_next: bool, size: int) -> bool:
        if self._desired_concurrency // self._slice_concurrency <= 1:
            return True
        return first_page and not has_next and size <= self._batch_size

    def _batch_unit(self, policy: RetryPolicy, items: list[Any]) -> Callable[[], Any]:
        task = self._task_factory(items)
        if not callable(task):
            raise TypeError(f"task_factory must return a callable, got {type(task).__name__}")
        return policy.wrap(task)

    def _run_inline(self, policy: RetryPolicy, items: list[Any]) -> bool:
        """Run one batch in the calling thread.

        Only a raised error or a disallowed ``None`` fails the batch; any
        other result, falsy ones included, is accepted.
        """
        try:
            result = self._batch_unit(policy, items)()
        except Exception:
            logger.exception("batch_failed_inline", items=len(items))
            return False
        if result is None and not policy.null_allowed:
            logger.warning("batch_returned_none_inline", items=len(items))
            return False
        return True

    def _process_slice(self, slice_: Slice) -> tuple[bool, int]:
        """Fetch, batch and execute one slice; returns ``(ok, item_count)``."""
        policy = RetryPolicy(self._retry_attempts, self._retry_nullable, self._retry_delay_unit)
        handles: list[Future] = []
        inner = None
        previous: Page | None = None
        count = 0

        try:
            while True:
                try:
                    page = self._fetch(slice_, previous)
                except FetchError as e:
                    logger.error("slice_fetch_failed", **e.to_dict())
                    return False, count
                if page is None:
                    logger.warning("slice_fetch_returned_none", page_index=previous.page_index + 1 if previous else 0)
                    return False, count
                if page.is_empty:
                    logger.debug("slice_fetch_exhausted", items=count)
                    break

                items = list(page.data)
                batches = chunk(items, self._batch_size)
                logger.debug("slice_page_fetched", items=len(items), batches=len(batches), has_next=page.has_next)

                if self._use_inline(previous is None, page.has_next, len(items)):
                    for batch in batches:
                        if not self._run_inline(policy, batch):
                            return False, count
                else:
                    if inner is None:
                        inner = self._pool_provider.provide(
                            self.inner_pool_size, f"{POOL_LABEL}-{slice_.begin}-{slice_.end}"
                        )
                    for batch in batches:
                        try:
                            unit = self._batch_unit(policy, batch)
                        except Exception as e:
                            handles.append(_failed_handle(e))
                            continue
                        handle = inner.submit(contextvars.copy_context().run, unit)
                        if handle is not None:
                            handles.append(handle)

                count += len(items)
                previous = page
                if not page.has_next:
                    break

            if inner is not None:
                inner.shutdown()
                if not inner.await_termination(self._slice_timeout):
                    logger.warning("slice_batches_timed_out", timeout=self._slice_timeout)
        finally:
            if inner is not None:
                inner.shutdown()

        return self._resolve(handles), count

    @staticmethod
    def _resolve(handles: list[Future]) -> bool:
        """Drain every pooled handle; ``False`` if any failed, was falsy or did not finish."""
        ok = True
        for index, handle in enumerate(handles):
            if not handle.done():
                logger.warning("batch_unfinished", batch=index)
                ok = False
                continue
            try:
                result = handle.result()
            except Exception as e:
                logger.error("batch_failed", batch=index, error=repr(e))
                ok = False
                continue
            if not result:
                logger.warning("batch_returned_falsy", batch=index, result=repr(result))
                ok = False
        return ok

    # ── reporting ────────────────────────────────────────────────

    def _finish(self, ctx: RunContext, failed: list[Slice]) -> bool:
        report = RunReport.from_context(ctx, failed)
        self._last_run = report
        if report.succeeded:
            logger.info("run_completed", items=report.items_processed, elapsed=round(report.elapsed, 3))
        else:
            logger.warning(
                "run_completed_with_failures",
                failed=len(failed),
                slices=[str(s) for s in failed],
                items=report.items_processed,
                elapsed=round(report.elapsed, 3),
            )
        return report.succeeded


__all__ = [
    "SliceOrchestrator",
    "chunk",
    "default_desired_concurrency",
    "DEFAULT_SLICE_CONCURRENCY",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_LAUNCH_INTERVAL",
    "DEFAULT_RETRY_ATTEMPTS",
    "DEFAULT_SLICE_TIMEOUT",
    "DEFAULT_RUN_TIMEOUT",
]
