"""
Checkpoint store contract.

A checkpoint store keeps three independently persisted slice sets for the
most recent run:

- **all**: written once per launch, before any slice is dispatched
  (overwrite). The baseline a crashed run resumes from.
- **completed**: appended to once per successful slice.
- **error**: appended to once per failed slice.

``clear_record`` archives the current records into history and is called
only when a fresh run starts; error re-processing and resume must see the
previous run's records.

Implementations must tolerate ``save_completed`` / ``save_error`` being
called concurrently from many worker threads.
"""

from __future__ import annotations

from collections.abc import Set
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from slicer.slices.models import Slice


@runtime_checkable
class CheckpointStore(Protocol):
    """Persists and retrieves the slice sets of the latest run."""

    def save_all(self, slices: Set[Slice]) -> None:
        """Overwrite the all-slices record."""
        ...

    def save_completed(self, slice_: Slice) -> None:
        """Append one completed slice."""
        ...

    def save_error(self, slice_: Slice) -> None:
        """Append one failed slice."""
        ...

    def get_all(self) -> set[Slice]:
        """Most recent all-slices record, empty if none."""
        ...

    def get_completed(self) -> set[Slice]:
        """Completed slices recorded so far, empty if none."""
        ...

    def get_errors(self) -> set[Slice]:
        """Failed slices recorded so far, empty if none."""
        ...

    def clear_record(self) -> None:
        """Archive current records into history and start empty."""
        ...


@dataclass(frozen=True, slots=True)
class CheckpointSummary:
    """Point-in-time view of a checkpoint store."""

    all_slices: frozenset[Slice] = field(default_factory=frozenset)
    completed: frozenset[Slice] = field(default_factory=frozenset)
    errors: frozenset[Slice] = field(default_factory=frozenset)

    @property
    def remaining(self) -> frozenset[Slice]:
        """Slices of the last run not yet completed."""
        return self.all_slices - self.completed

    @property
    def outstanding_errors(self) -> frozenset[Slice]:
        """Failed slices that did not succeed on a later pass."""
        return self.errors - self.completed

    @property
    def is_resumable(self) -> bool:
        return bool(self.all_slices) and bool(self.completed) and bool(self.remaining)

    def to_dict(self) -> dict[str, int | bool]:
        return {
            "all": len(self.all_slices),
            "completed": len(self.completed),
            "errors": len(self.errors),
            "remaining": len(self.remaining),
            "outstanding_errors": len(self.outstanding_errors),
            "resumable": self.is_resumable,
        }


def summarize(store: CheckpointStore) -> CheckpointSummary:
    """Read all three records of ``store`` into a :class:`CheckpointSummary`."""
    return CheckpointSummary(
        all_slices=frozenset(store.get_all()),
        completed=frozenset(store.get_completed()),
        errors=frozenset(store.get_errors()),
    )


__all__ = ["CheckpointStore", "CheckpointSummary", "summarize"]
