"""
Execution primitives: the retry executor and bounded worker pools.
"""

from slicer.execution.pool import (
    DEFAULT_QUEUE_SIZE,
    BlockingThreadPool,
    PoolProvider,
    ThreadPoolProvider,
    WorkerPool,
)
from slicer.execution.retry import RetryPolicy, retry_call

__all__ = [
    "retry_call",
    "RetryPolicy",
    "WorkerPool",
    "PoolProvider",
    "BlockingThreadPool",
    "ThreadPoolProvider",
    "DEFAULT_QUEUE_SIZE",
]
