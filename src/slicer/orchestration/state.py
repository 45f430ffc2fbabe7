"""
Run state, guard and per-run context.

Each orchestrator instance owns exactly one :class:`RunGuard`; it is the only
re-entrancy protection and is scoped to that instance. Everything mutated
during a run (item counter, failure collectors) lives in a :class:`RunContext`
created fresh for every entry-point invocation, so successive runs and
separate orchestrators never share mutable state.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from slicer.core.errors import ConcurrentRunError
from slicer.core.timestamps import generate_ulid
from slicer.slices.models import Slice


class RunState(str, Enum):
    """Lifecycle of an orchestrator instance."""

    IDLE = "idle"
    RUNNING = "running"


class RunMode(str, Enum):
    """Which public entry point started a run."""

    PROCESS = "process"
    ERRORS = "errors"
    RESUME = "resume"


class RunGuard:
    """Atomic ``idle -> running`` check-and-set."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    def acquire(self) -> None:
        with self._lock:
            if self._state is not RunState.IDLE:
                raise ConcurrentRunError()
            self._state = RunState.RUNNING

    def release(self) -> None:
        with self._lock:
            self._state = RunState.IDLE

    def ensure_idle(self) -> None:
        """Raise :class:`ConcurrentRunError` unless idle."""
        if self._state is not RunState.IDLE:
            raise ConcurrentRunError("Cannot change configuration while a run is in progress")

    @contextmanager
    def running(self) -> Iterator[None]:
        self.acquire()
        try:
            yield
        finally:
            self.release()


class ItemCounter:
    """Thread-safe monotonically increasing counter."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def add(self, amount: int) -> int:
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class SliceCollector:
    """Thread-safe, insertion-ordered set of slices."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slices: dict[Slice, None] = {}

    def add(self, slice_: Slice) -> None:
        with self._lock:
            self._slices[slice_] = None

    def snapshot(self) -> list[Slice]:
        with self._lock:
            return list(self._slices)

    def __len__(self) -> int:
        with self._lock:
            return len(self._slices)


@dataclass
class RunContext:
    """Mutable state of one entry-point invocation."""

    mode: RunMode
    run_id: str = field(default_factory=generate_ulid)
    counter: ItemCounter = field(default_factory=ItemCounter)
    started: float = field(default_factory=time.monotonic)
    current_failures: SliceCollector = field(default_factory=SliceCollector)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def new_pass(self) -> SliceCollector:
        """Start collecting failures of a new launch pass."""
        self.current_failures = SliceCollector()
        return self.current_failures


@dataclass(frozen=True, slots=True)
class RunReport:
    """Outcome of a finished (or interrupted) run."""

    run_id: str
    mode: RunMode
    succeeded: bool
    items_processed: int
    failed_slices: frozenset[Slice]
    elapsed: float
    interrupted: bool = False

    @classmethod
    def from_context(
        cls,
        ctx: RunContext,
        failed: list[Slice] | set[Slice],
        *,
        interrupted: bool = False,
    ) -> RunReport:
        return cls(
            run_id=ctx.run_id,
            mode=ctx.mode,
            succeeded=not failed and not interrupted,
            items_processed=ctx.counter.value,
            failed_slices=frozenset(failed),
            elapsed=ctx.elapsed,
            interrupted=interrupted,
        )


__all__ = [
    "RunState",
    "RunMode",
    "RunGuard",
    "ItemCounter",
    "SliceCollector",
    "RunContext",
    "RunReport",
]
