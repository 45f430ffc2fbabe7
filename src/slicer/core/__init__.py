"""
Slicer core primitives: errors, logging, settings and timestamps.
"""

from slicer.core.errors import (
    CheckpointError,
    ConcurrentRunError,
    ConfigError,
    ErrorCategory,
    FetchError,
    InconsistentCheckpointError,
    InvalidConfigError,
    NoResumableStateError,
    RunStateError,
    SliceCodecError,
    SlicerError,
)
from slicer.core.logging import LogContext, configure_logging, get_logger
from slicer.core.timestamps import generate_ulid, utc_now

__all__ = [
    # errors
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
    # logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # timestamps
    "generate_ulid",
    "utc_now",
]
