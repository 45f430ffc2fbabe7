"""Tests for the slicer error hierarchy."""

import pytest

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


class TestSlicerError:
    """Tests for the base error."""

    def test_defaults(self):
        error = SlicerError("boom")
        assert error.message == "boom"
        assert str(error) == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.context == {}
        assert error.cause is None

    def test_cause_is_chained(self):
        cause = ValueError("bad")
        error = SlicerError("wrapped", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause

    def test_with_context_is_fluent(self):
        error = SlicerError("boom")
        assert error.with_context(slice="0-128", page_index=2) is error
        assert error.context == {"slice": "0-128", "page_index": 2}

    def test_to_dict(self):
        error = SlicerError("boom", cause=OSError("disk")).with_context(a=1)
        data = error.to_dict()
        assert data == {
            "error_type": "SlicerError",
            "message": "boom",
            "category": "INTERNAL",
            "context": {"a": 1},
            "cause": "disk",
        }

    def test_to_dict_omits_empty_fields(self):
        data = SlicerError("boom").to_dict()
        assert "context" not in data
        assert "cause" not in data

    def test_repr(self):
        assert repr(CheckpointError("x")) == "CheckpointError('x', category=STORAGE)"

    def test_explicit_category_wins(self):
        error = ConfigError("x", category=ErrorCategory.SOURCE)
        assert error.category == ErrorCategory.SOURCE


class TestCategories:
    """Each family carries its routing category."""

    @pytest.mark.parametrize(
        "error, category",
        [
            (InvalidConfigError("batch_size", 0), ErrorCategory.CONFIG),
            (ConcurrentRunError(), ErrorCategory.ORCHESTRATION),
            (NoResumableStateError("none"), ErrorCategory.ORCHESTRATION),
            (InconsistentCheckpointError("odd"), ErrorCategory.ORCHESTRATION),
            (CheckpointError("io"), ErrorCategory.STORAGE),
            (SliceCodecError("tag"), ErrorCategory.STORAGE),
            (FetchError("down"), ErrorCategory.SOURCE),
        ],
    )
    def test_category(self, error, category):
        assert error.category == category
        assert isinstance(error, SlicerError)

    def test_hierarchy(self):
        assert issubclass(InvalidConfigError, ConfigError)
        assert issubclass(ConcurrentRunError, RunStateError)
        assert issubclass(NoResumableStateError, RunStateError)
        assert issubclass(InconsistentCheckpointError, RunStateError)
        assert issubclass(SliceCodecError, CheckpointError)


class TestInvalidConfigError:
    def test_default_message(self):
        error = InvalidConfigError("batch_size", 0)
        assert error.message == "Invalid configuration for batch_size: 0"
        assert error.key == "batch_size"
        assert error.value == 0

    def test_custom_message(self):
        error = InvalidConfigError("batch_size", -1, "batch_size must be > 0: -1")
        assert str(error) == "batch_size must be > 0: -1"

    def test_to_dict_carries_key(self):
        data = InvalidConfigError("launch_interval", -0.5).to_dict()
        assert data["key"] == "launch_interval"
        assert data["context"] == {"key": "launch_interval", "value": "-0.5"}


def test_concurrent_run_default_message():
    assert "already in progress" in str(ConcurrentRunError())
