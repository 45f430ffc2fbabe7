"""In-process checkpoint store.

Same semantics as :class:`~slicer.checkpoint.file.FileCheckpointStore`
without touching disk: useful in tests and for ephemeral jobs that only need
error re-processing within one process lifetime.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Set

from slicer.checkpoint.base import CheckpointSummary
from slicer.slices.models import Slice


class MemoryCheckpointStore:
    """Thread-safe in-memory checkpoint store with bounded history."""

    def __init__(self, max_history: int = 10) -> None:
        self._lock = threading.Lock()
        self._all: set[Slice] = set()
        self._completed: list[Slice] = []
        self._errors: list[Slice] = []
        self.history: deque[CheckpointSummary] = deque(maxlen=max_history)

    def save_all(self, slices: Set[Slice]) -> None:
        with self._lock:
            self._all = set(slices)

    def save_completed(self, slice_: Slice) -> None:
        with self._lock:
            self._completed.append(slice_)

    def save_error(self, slice_: Slice) -> None:
        with self._lock:
            self._errors.append(slice_)

    def get_all(self) -> set[Slice]:
        with self._lock:
            return set(self._all)

    def get_completed(self) -> set[Slice]:
        with self._lock:
            return set(self._completed)

    def get_errors(self) -> set[Slice]:
        with self._lock:
            return set(self._errors)

    @property
    def completed_log(self) -> list[Slice]:
        """Completed records in append order, duplicates included."""
        with self._lock:
            return list(self._completed)

    @property
    def error_log(self) -> list[Slice]:
        """Error records in append order, duplicates included."""
        with self._lock:
            return list(self._errors)

    def clear_record(self) -> None:
        with self._lock:
            if self._all or self._completed or self._errors:
                self.history.append(
                    CheckpointSummary(
                        all_slices=frozenset(self._all),
                        completed=frozenset(self._completed),
                        errors=frozenset(self._errors),
                    )
                )
            self._all = set()
            self._completed = []
            self._errors = []


__all__ = ["MemoryCheckpointStore"]
