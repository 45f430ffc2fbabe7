"""Retry executor for fetches and batch tasks.

Wraps a zero-argument unit of work with a bounded number of attempts, an
optional "``None`` counts as failure" rule and a fixed pause between attempts.

The pause is ``max_attempts * delay_unit`` seconds, the same before every
retry: it scales with how many attempts were *configured*, not with how many
have been made, so there is no exponential growth.

Example:
    >>> from slicer.execution.retry import RetryPolicy
    >>>
    >>> policy = RetryPolicy(max_attempts=3, null_allowed=False)
    >>> page = policy.call(lambda: fetch(slice_, previous))
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from slicer.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

DEFAULT_DELAY_UNIT = 0.5


def retry_call(
    unit: Callable[[], T],
    max_attempts: int,
    null_allowed: bool,
    *,
    delay_unit: float = DEFAULT_DELAY_UNIT,
    sleep: Callable[[float], Any] = time.sleep,
) -> T | None:
    """Call ``unit`` until it succeeds or ``max_attempts`` are used up.

    An attempt succeeds when it returns without raising and either the result
    is not ``None`` or ``null_allowed`` is true.

    Args:
        unit: Work to attempt.
        max_attempts: Attempt budget; values below 1 behave as 1.
        null_allowed: Whether a ``None`` result counts as success.
        delay_unit: Seconds per configured attempt slept between attempts.
        sleep: Sleep function (injectable for tests).

    Returns:
        The successful result, or ``None`` if the final attempt returned a
        disallowed ``None`` without raising.

    Raises:
        Exception: Whatever the final attempt raised.
    """
    attempts = max(1, max_attempts)
    delay = max_attempts * delay_unit
    for attempt in range(1, attempts + 1):
        try:
            result = unit()
        except Exception as e:
            if attempt >= attempts:
                logger.error("retry_exhausted", attempt=attempt, max_attempts=attempts, error=repr(e))
                raise
            logger.warning("retry_attempt_failed", attempt=attempt, max_attempts=attempts, error=repr(e))
        else:
            if result is not None or null_allowed:
                return result
            logger.warning("retry_attempt_returned_none", attempt=attempt, max_attempts=attempts)

        if attempt < attempts and delay > 0:
            sleep(delay)
    return None


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Immutable retry settings shared by all workers of a run.

    Attributes:
        max_attempts: Attempts per unit (0 behaves as 1).
        null_allowed: Whether ``None`` is an acceptable result.
        delay_unit: Seconds per configured attempt between retries.
    """

    max_attempts: int = 3
    null_allowed: bool = True
    delay_unit: float = DEFAULT_DELAY_UNIT

    def call(self, unit: Callable[[], T]) -> T | None:
        """Run ``unit`` under this policy."""
        return retry_call(unit, self.max_attempts, self.null_allowed, delay_unit=self.delay_unit)

    def wrap(self, unit: Callable[[], T]) -> Callable[[], T | None]:
        """Return a zero-argument callable running ``unit`` under this policy."""

        def _retrying() -> T | None:
            return self.call(unit)

        return _retrying


__all__ = ["retry_call", "RetryPolicy", "DEFAULT_DELAY_UNIT"]
