"""
Slicer - partitioned, resumable batch processing.

Split a large source into slices, page through each slice, process pages in
bounded-concurrency batches and checkpoint every slice's outcome so that
failed or interrupted runs can be finished later.
"""

__version__ = "0.1.0"

from slicer.checkpoint import FileCheckpointStore, MemoryCheckpointStore  # noqa: E402
from slicer.core.errors import (  # noqa: E402
    ConcurrentRunError,
    InconsistentCheckpointError,
    InvalidConfigError,
    NoResumableStateError,
    SlicerError,
)
from slicer.orchestration import SliceOrchestrator  # noqa: E402
from slicer.slices import Page, Slice, SliceCodec, datetime_slices, range_slices  # noqa: E402

__all__ = [
    "__version__",
    "SliceOrchestrator",
    "Slice",
    "Page",
    "SliceCodec",
    "range_slices",
    "datetime_slices",
    "FileCheckpointStore",
    "MemoryCheckpointStore",
    "SlicerError",
    "InvalidConfigError",
    "ConcurrentRunError",
    "NoResumableStateError",
    "InconsistentCheckpointError",
]
