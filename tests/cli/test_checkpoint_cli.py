"""Tests for ``slicer checkpoint`` CLI commands."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from slicer import __version__
from slicer.checkpoint import FileCheckpointStore
from slicer.cli.app import app
from slicer.core.errors import CheckpointError
from slicer.slices import Slice, SliceCodec

runner = CliRunner()


@pytest.fixture
def populated(tmp_path):
    store = FileCheckpointStore(tmp_path, SliceCodec("int"))
    store.save_all({Slice(0, 128), Slice(128, 256), Slice(256, 300)})
    store.save_completed(Slice(0, 128))
    store.save_error(Slice(128, 256))
    return store


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == f"slicer {__version__}"

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "checkpoint" in result.output


class TestShow:
    def test_json(self, populated):
        result = runner.invoke(app, ["checkpoint", "show", "--dir", str(populated.base_dir), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["all"] == 3
        assert payload["completed"] == 1
        assert payload["resumable"] is True
        assert payload["remaining_slices"] == ["128-256", "256-300"]
        assert payload["error_slices"] == ["128-256"]

    def test_table(self, populated):
        result = runner.invoke(app, ["checkpoint", "show", "-d", str(populated.base_dir)])
        assert result.exit_code == 0
        assert "remaining" in result.output
        assert "Outstanding errors: 128-256" in result.output

    def test_limit(self, populated):
        result = runner.invoke(app, ["checkpoint", "show", "-d", str(populated.base_dir), "-n", "1"])
        assert "Remaining: 128-256 (+1 more)" in result.output

    def test_empty_directory(self, tmp_path):
        result = runner.invoke(app, ["checkpoint", "show", "-d", str(tmp_path), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["all"] == 0

    def test_default_dir_from_environment(self, populated, monkeypatch):
        monkeypatch.setenv("SLICER_CHECKPOINT_DIR", str(populated.base_dir))
        result = runner.invoke(app, ["checkpoint", "show", "--json"])
        assert json.loads(result.output)["errors"] == 1

    def test_corrupt_record(self, tmp_path):
        (tmp_path / "process_info").mkdir()
        (tmp_path / "process_info" / "completed_slices.txt").write_text("garbage\n")
        result = runner.invoke(app, ["checkpoint", "show", "-d", str(tmp_path)])
        assert result.exit_code == 1


class TestRotate:
    def test_rotate(self, populated):
        result = runner.invoke(app, ["checkpoint", "rotate", "-d", str(populated.base_dir)])
        assert result.exit_code == 0
        assert "1 snapshots kept" in result.output
        assert populated.get_all() == set()
        assert len(populated.history()) == 1

    def test_rotate_prunes(self, populated):
        for _ in range(3):
            populated.save_completed(Slice(0, 128))
            runner.invoke(app, ["checkpoint", "rotate", "-d", str(populated.base_dir), "--max-history", "2"])
        assert len(populated.history()) == 2

    def test_rotate_failure(self, populated):
        with patch.object(FileCheckpointStore, "clear_record", side_effect=CheckpointError("disk full")):
            result = runner.invoke(app, ["checkpoint", "rotate", "-d", str(populated.base_dir)])
        assert result.exit_code == 1

    def test_rejects_invalid_max_history(self, populated):
        result = runner.invoke(app, ["checkpoint", "rotate", "-d", str(populated.base_dir), "--max-history", "0"])
        assert result.exit_code != 0
