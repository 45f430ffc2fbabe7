"""
Slice and Page value types.

A :class:`Slice` names one independently processable partition of a data
source. It is frozen and compares structurally, so sets of slices can be
persisted, reloaded and diffed (``all - completed``) during resume. The key
type ``K`` must itself have stable equality and hashing; the engine cannot
check that for you.

A :class:`Page` is the transient result of one fetch. The orchestrator hands
the previous page back to the fetcher as a pagination cursor and never
persists it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

K = TypeVar("K")
T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Slice(Generic[K]):
    """Half-open ``[begin, end)`` partition key."""

    begin: K
    end: K

    def __str__(self) -> str:
        return f"{self.begin}-{self.end}"


@dataclass(slots=True)
class Page(Generic[T]):
    """One fetched page of a slice's data.

    Attributes:
        data: Items of this page. ``None`` or empty ends the slice's fetch loop.
        has_next: Whether another page follows.
        page_size: Requested page size, informational.
        page_index: Zero-based page number, commonly used as the cursor.
        extra: Fetcher-private cursor state (offsets, continuation tokens).
    """

    data: Sequence[T] | None
    has_next: bool = False
    page_size: int = 0
    page_index: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.data) if self.data else 0

    @property
    def is_empty(self) -> bool:
        return not self.data


__all__ = ["Slice", "Page"]
