"""
Shared pytest fixtures and configuration for slicer tests.

This module provides:
- Location-based auto markers (unit / integration)
- In-memory and file checkpoint stores
- ``make_orchestrator``: an orchestrator factory with the launch stagger and
  retry pauses switched off so tests run fast

Usage:
    def test_something(make_orchestrator, list_source):
        orchestrator = make_orchestrator(list_source)
        assert orchestrator.process()
"""

from pathlib import Path
from typing import Any

import pytest
import structlog

from slicer.checkpoint import FileCheckpointStore, MemoryCheckpointStore
from slicer.core.logging import clear_context
from slicer.orchestration import SliceOrchestrator
from slicer.slices import SliceCodec
from tests._support.sources import ListSource


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_log_context():
    """No structlog context leaks between tests."""
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Checkpoint Stores
# =============================================================================


@pytest.fixture
def memory_store() -> MemoryCheckpointStore:
    return MemoryCheckpointStore()


@pytest.fixture
def file_store(tmp_path: Path) -> FileCheckpointStore:
    return FileCheckpointStore(tmp_path / "checkpoints", SliceCodec("int"), max_history=3)


# =============================================================================
# Sources and Orchestrators
# =============================================================================


@pytest.fixture
def list_source() -> ListSource:
    """1000 integers, slices of 128, pages of 100."""
    return ListSource(list(range(1000)), span=128, page_size=100)


@pytest.fixture
def make_orchestrator(memory_store):
    """Factory building a fast orchestrator around a ``ListSource``."""

    def _make(source: ListSource, **overrides: Any) -> SliceOrchestrator:
        options: dict[str, Any] = {
            "checkpoint_store": memory_store,
            "launch_interval": 0,
            "retry_delay_unit": 0,
            "slice_concurrency": 4,
            "batch_size": 25,
        }
        options.update(overrides)
        return SliceOrchestrator.from_provider(source, **options)

    return _make
