"""Tests for SlicerSettings."""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from slicer.core.settings import SlicerSettings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No SLICER_* variables or .env file from the developer's machine."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("SLICER_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self):
        settings = SlicerSettings()
        assert settings.slice_concurrency == 8
        assert settings.batch_size == 1000
        assert settings.launch_interval == 3.0
        assert settings.retry_attempts == 3
        assert settings.retry_nullable is True
        assert settings.queue_size == 1024
        assert settings.checkpoint_dir == Path("slicer_checkpoints")
        assert settings.max_history == 10
        assert settings.log_level == "INFO"
        assert settings.log_json is None


class TestEnvironment:
    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("SLICER_SLICE_CONCURRENCY", "16")
        monkeypatch.setenv("SLICER_BATCH_SIZE", "500")
        monkeypatch.setenv("SLICER_LAUNCH_INTERVAL", "1.5")
        monkeypatch.setenv("SLICER_RETRY_NULLABLE", "false")
        monkeypatch.setenv("SLICER_CHECKPOINT_DIR", "/var/lib/etl")

        settings = SlicerSettings()
        assert settings.slice_concurrency == 16
        assert settings.batch_size == 500
        assert settings.launch_interval == 1.5
        assert settings.retry_nullable is False
        assert settings.checkpoint_dir == Path("/var/lib/etl")

    def test_reads_dotenv(self, tmp_path):
        (tmp_path / ".env").write_text("SLICER_MAX_HISTORY=4\n")
        assert SlicerSettings().max_history == 4

    def test_ignores_unknown_keys(self, monkeypatch):
        monkeypatch.setenv("SLICER_NOT_A_SETTING", "1")
        SlicerSettings()


class TestValidation:
    @pytest.mark.parametrize(
        "field, value",
        [
            ("slice_concurrency", 0),
            ("batch_size", 0),
            ("launch_interval", -1),
            ("retry_attempts", -1),
            ("queue_size", 0),
            ("max_history", 0),
        ],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            SlicerSettings(**{field: value})

    def test_zero_values_allowed_where_documented(self):
        settings = SlicerSettings(launch_interval=0, retry_attempts=0)
        assert settings.launch_interval == 0
        assert settings.retry_attempts == 0
