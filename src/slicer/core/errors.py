"""
Structured error types for the slicer engine.

Every error the engine raises on purpose is a :class:`SlicerError`. Each
carries a category for routing, a context dict for structured logging and an
optional chained cause.

Only a handful of these ever escape the orchestrator's public entry points.
Slice-level failure (a fetch or batch that exhausted its retries) is *data*,
recorded in the error checkpoint and reflected in the boolean result, never
an exception.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        SlicerError                          │
        │                 (category, context, cause)                  │
        ├─────────────────────────────────────────────────────────────┤
        │                                                             │
        │  ConfigError          RunStateError        CheckpointError  │
        │  (CONFIG)             (ORCHESTRATION)      (STORAGE)        │
        │       │                    │                    │           │
        │  InvalidConfigError   ConcurrentRunError   SliceCodecError  │
        │                       NoResumableStateError                 │
        │                       InconsistentCheckpointError           │
        │                                                             │
        │  FetchError (SOURCE) - logged, demoted to slice failure     │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = InvalidConfigError("batch_size", 0)
    >>> error.category
    <ErrorCategory.CONFIG: 'CONFIG'>
    >>> error.to_dict()["key"]
    'batch_size'

Tags:
    error-handling, exception-hierarchy, orchestration, checkpoint, slicer
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    CONFIG = "CONFIG"  # Invalid settings
    ORCHESTRATION = "ORCHESTRATION"  # Run-state and resume problems
    STORAGE = "STORAGE"  # Checkpoint I/O, codec
    SOURCE = "SOURCE"  # Upstream fetch failures
    INTERNAL = "INTERNAL"


class SlicerError(Exception):
    """
    Base exception for all slicer errors.

    Subclasses set ``default_category``. Additional structured metadata can be
    attached with :meth:`with_context` and is emitted by :meth:`to_dict`.

    Examples:
        >>> error = SlicerError("boom").with_context(slice="0-128")
        >>> error.context
        {'slice': '0-128'}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SlicerError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(SlicerError):
    """
    Configuration error.

    Raised synchronously when a setting is assigned, before any run starts.
    """

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(
            message or f"Invalid configuration for {key}: {value!r}",
            context={"key": key, "value": repr(value)},
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["key"] = self.key
        return result


# =============================================================================
# RUN STATE / RESUME ERRORS
# =============================================================================


class RunStateError(SlicerError):
    """Base for errors about the orchestrator's run state or resumability."""

    default_category = ErrorCategory.ORCHESTRATION


class ConcurrentRunError(RunStateError):
    """An entry point (or setter) was invoked while a run is active."""

    def __init__(self, message: str = "A run is already in progress on this orchestrator"):
        super().__init__(message)


class NoResumableStateError(RunStateError):
    """Resume was requested but no usable checkpoint exists."""


class InconsistentCheckpointError(RunStateError):
    """
    Subtracting completed slices did not shrink the recorded slice set.

    Almost always means the slice key type has unstable equality or hashing,
    or the checkpoint files were edited by hand.
    """


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class CheckpointError(SlicerError):
    """Checkpoint store could not read or write its records."""

    default_category = ErrorCategory.STORAGE


class SliceCodecError(CheckpointError):
    """A slice or slice set could not be encoded or decoded."""


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class FetchError(SlicerError):
    """
    The resource fetcher failed for a slice after exhausting its retries.

    Never propagated from an entry point; the orchestrator logs it and marks
    the slice failed.
    """

    default_category = ErrorCategory.SOURCE


__all__ = [
    "ErrorCategory",
    "SlicerError",
    "ConfigError",
    "InvalidConfigError",
    "RunStateError",
    "ConcurrentRunError",
    "NoResumableStateError",
    "InconsistentCheckpointError",
    "CheckpointError",
    "SliceCodecError",
    "FetchError",
]
