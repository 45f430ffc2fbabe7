"""Range slice sources.

Fixed-span partitioners for numeric ids and timestamps. Each returns an
ordered list of consecutive slices covering ``[minimum, maximum)``; the last
slice is truncated at ``maximum``. A custom ``step`` callable may replace the
uniform ``end + span`` progression when partitions should grow or shrink
(e.g. denser recent data).

Examples:
    >>> [str(s) for s in range_slices(0, 300, 128)]
    ['0-128', '128-256', '256-300']
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TypeVar

from slicer.core.errors import InvalidConfigError
from slicer.slices.models import Slice

N = TypeVar("N", int, float)


def _walk(minimum, maximum, span, step):
    slices = []
    start = minimum
    end = step(minimum, span)
    while end <= maximum:
        slices.append(Slice(start, end))
        start = end
        end = step(end, span)
    if start != maximum:
        slices.append(Slice(start, maximum))
    return slices


def range_slices(
    minimum: N,
    maximum: N,
    span: N,
    *,
    step: Callable[[N, N], N] | None = None,
) -> list[Slice[N]]:
    """Partition ``[minimum, maximum)`` into slices of ``span``.

    Raises:
        InvalidConfigError: If ``minimum >= maximum`` or ``span <= 0``.
    """
    if minimum >= maximum:
        raise InvalidConfigError(
            "minimum", minimum, f"minimum must be less than maximum: {minimum} >= {maximum}"
        )
    if span <= 0:
        raise InvalidConfigError("span", span, f"span must be positive: {span}")
    return _walk(minimum, maximum, span, step or (lambda end, s: end + s))


def datetime_slices(
    start: datetime,
    stop: datetime,
    span: timedelta,
    *,
    step: Callable[[datetime, timedelta], datetime] | None = None,
) -> list[Slice[datetime]]:
    """Partition ``[start, stop)`` into slices of ``span``."""
    if start >= stop:
        raise InvalidConfigError(
            "start", start, f"start must be earlier than stop: {start} >= {stop}"
        )
    if span <= timedelta(0):
        raise InvalidConfigError("span", span, f"span must be positive: {span}")
    return _walk(start, stop, span, step or (lambda end, s: end + s))


__all__ = ["range_slices", "datetime_slices"]
