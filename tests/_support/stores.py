"""Checkpoint stores that record or break on purpose."""

from __future__ import annotations

import threading

from slicer.checkpoint import MemoryCheckpointStore
from slicer.core.errors import CheckpointError


class EventRecordingStore(MemoryCheckpointStore):
    """Memory store that logs every write as ``(operation, payload)``."""

    def __init__(self, max_history: int = 10):
        super().__init__(max_history=max_history)
        self.events: list[tuple[str, object]] = []
        self._events_lock = threading.Lock()

    def _record(self, operation: str, payload: object = None) -> None:
        with self._events_lock:
            self.events.append((operation, payload))

    def save_all(self, slices):
        self._record("save_all", frozenset(slices))
        super().save_all(slices)

    def save_completed(self, slice_):
        self._record("save_completed", slice_)
        super().save_completed(slice_)

    def save_error(self, slice_):
        self._record("save_error", slice_)
        super().save_error(slice_)

    def clear_record(self):
        self._record("clear_record")
        super().clear_record()

    def operations(self) -> list[str]:
        return [operation for operation, _ in self.events]


class BrokenCompletedStore(MemoryCheckpointStore):
    """Memory store whose completed record cannot be written."""

    def save_completed(self, slice_):
        raise CheckpointError("completed record unavailable")
