"""Pool providers that record what the orchestrator asked for."""

from __future__ import annotations

import threading

from slicer.execution.pool import BlockingThreadPool, ThreadPoolProvider


class RecordingPoolProvider(ThreadPoolProvider):
    """Real thread pools, plus a log of ``(size, label)`` per request."""

    def __init__(self, queue_size: int = 1024):
        super().__init__(queue_size=queue_size)
        self.requests: list[tuple[int, str]] = []
        self._lock = threading.Lock()

    def provide(self, size: int, label: str) -> BlockingThreadPool:
        with self._lock:
            self.requests.append((size, label))
        return super().provide(size, label)

    @property
    def labels(self) -> list[str]:
        return [label for _, label in self.requests]

    def inner_requests(self) -> list[tuple[int, str]]:
        return [(size, label) for size, label in self.requests if not label.endswith("-slices")]
