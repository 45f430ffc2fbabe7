"""
Checkpoint stores: record which slices were attempted, completed and failed.
"""

from slicer.checkpoint.base import CheckpointStore, CheckpointSummary, summarize
from slicer.checkpoint.file import FileCheckpointStore
from slicer.checkpoint.memory import MemoryCheckpointStore

__all__ = [
    "CheckpointStore",
    "CheckpointSummary",
    "summarize",
    "FileCheckpointStore",
    "MemoryCheckpointStore",
]
