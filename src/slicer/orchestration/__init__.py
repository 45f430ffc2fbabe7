"""
Orchestration: the slice orchestrator, its run state and collaborator contracts.
"""

from slicer.orchestration.contracts import DataProvider, ResourceFetcher, SliceSource, TaskFactory
from slicer.orchestration.orchestrator import SliceOrchestrator, chunk, default_desired_concurrency
from slicer.orchestration.state import RunGuard, RunMode, RunReport, RunState

__all__ = [
    "SliceOrchestrator",
    "chunk",
    "default_desired_concurrency",
    "DataProvider",
    "SliceSource",
    "ResourceFetcher",
    "TaskFactory",
    "RunGuard",
    "RunMode",
    "RunReport",
    "RunState",
]
