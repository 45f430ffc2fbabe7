"""
Collaborator contracts injected into the orchestrator.

The orchestrator is not subclassed. It is handed three capabilities:

- ``slice_source() -> Iterable[Slice]`` - the partition set of a fresh run
- ``fetcher(slice, previous_page) -> Page | None`` - one page of a slice;
  ``previous_page`` is ``None`` on the first call and acts as the cursor
- ``task_factory(items) -> Callable[[], Any]`` - one unit of work per batch;
  a unit that raises or returns a falsy value marks its slice failed

:class:`DataProvider` bundles the three as methods for callers that prefer
one object per data source.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar, runtime_checkable

from slicer.slices.models import Page, Slice

T = TypeVar("T")
K = TypeVar("K")

SliceSource = Callable[[], Iterable[Slice[Any]]]
ResourceFetcher = Callable[[Slice[Any], Page[Any] | None], Page[Any] | None]
TaskFactory = Callable[[list[Any]], Callable[[], Any]]


@runtime_checkable
class DataProvider(Protocol[T, K]):
    """Where the data comes from, how it is split and where it goes."""

    def generate_slices(self) -> Iterable[Slice[K]]: ...

    def fetch(self, slice_: Slice[K], previous: Page[T] | None) -> Page[T] | None: ...

    def create_task(self, items: list[T]) -> Callable[[], Any]: ...


__all__ = ["SliceSource", "ResourceFetcher", "TaskFactory", "DataProvider"]
