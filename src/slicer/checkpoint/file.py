"""
File-backed checkpoint store.

Layout under ``base_dir``::

    base_dir/
    ├── process_info/
    │   ├── all_slices.txt          one line: "tag__[...]"  (overwritten)
    │   ├── completed_slices.txt    one encoded slice per line (appended)
    │   └── error_slices.txt        one encoded slice per line (appended)
    └── process_history/
        ├── hist_2026-01-30-09_12_44_000153/
        └── hist_2026-01-31-02_00_03_412876/    at most ``max_history`` kept

The all-slices record is replaced atomically (temp file + rename) so a crash
mid-write leaves the previous baseline intact. Appends are serialized per
file with a lock; each record is a single ``write`` of one line.

Example::

    store = FileCheckpointStore("/var/lib/etl/orders", SliceCodec("int"))
    store.save_all({Slice(0, 128), Slice(128, 256)})
    store.save_completed(Slice(0, 128))
    store.get_all() - store.get_completed()   # {Slice(128, 256)}
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from collections.abc import Set
from pathlib import Path

from slicer.core.errors import CheckpointError
from slicer.core.logging import get_logger
from slicer.core.timestamps import snapshot_stamp
from slicer.slices.codec import SliceCodec
from slicer.slices.models import Slice

logger = get_logger(__name__)

INFO_DIR = "process_info"
HISTORY_DIR = "process_history"
HISTORY_PREFIX = "hist_"
ALL_FILE = "all_slices.txt"
COMPLETED_FILE = "completed_slices.txt"
ERROR_FILE = "error_slices.txt"


class FileCheckpointStore:
    """Checkpoint store persisting slice sets as text files.

    Args:
        base_dir: Directory holding ``process_info/`` and ``process_history/``.
        codec: Slice codec used for every record.
        max_history: Number of rotated snapshots to keep (oldest pruned first).
    """

    def __init__(
        self,
        base_dir: str | os.PathLike[str],
        codec: SliceCodec | None = None,
        max_history: int = 10,
    ) -> None:
        if max_history <= 0:
            raise ValueError(f"max_history must be positive: {max_history}")
        self.base_dir = Path(base_dir)
        self.codec = codec or SliceCodec()
        self.max_history = max_history
        self.info_dir = self.base_dir / INFO_DIR
        self.history_dir = self.base_dir / HISTORY_DIR
        self.all_path = self.info_dir / ALL_FILE
        self.completed_path = self.info_dir / COMPLETED_FILE
        self.error_path = self.info_dir / ERROR_FILE
        self._locks = {
            self.all_path: threading.Lock(),
            self.completed_path: threading.Lock(),
            self.error_path: threading.Lock(),
        }

    def __repr__(self) -> str:
        return f"FileCheckpointStore({str(self.base_dir)!r}, max_history={self.max_history})"

    # ── writes ───────────────────────────────────────────────────

    def save_all(self, slices: Set[Slice]) -> None:
        text = self.codec.encode_set(slices) if slices else ""
        with self._locks[self.all_path]:
            try:
                self.info_dir.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=self.info_dir, prefix=".all_slices.", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as fh:
                        fh.write(text)
                    os.replace(tmp, self.all_path)
                except BaseException:
                    Path(tmp).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise CheckpointError(f"Failed to save all-slices record: {e}", cause=e) from e

    def save_completed(self, slice_: Slice) -> None:
        self._append(self.completed_path, slice_)

    def save_error(self, slice_: Slice) -> None:
        self._append(self.error_path, slice_)

    def _append(self, path: Path, slice_: Slice) -> None:
        line = self.codec.encode(slice_) + "\n"
        with self._locks[path]:
            try:
                self.info_dir.mkdir(parents=True, exist_ok=True)
                with path.open("a", encoding="utf-8") as fh:
                    fh.write(line)
            except OSError as e:
                raise CheckpointError(f"Failed to append to {path.name}: {e}", cause=e) from e

    # ── reads ────────────────────────────────────────────────────

    def get_all(self) -> set[Slice]:
        with self._locks[self.all_path]:
            text = self._read(self.all_path).strip()
        if not text:
            return set()
        return self.codec.decode_set(text)

    def get_completed(self) -> set[Slice]:
        return self._read_lines(self.completed_path)

    def get_errors(self) -> set[Slice]:
        return self._read_lines(self.error_path)

    def _read_lines(self, path: Path) -> set[Slice]:
        with self._locks[path]:
            text = self._read(path)
        return {self.codec.decode(line) for line in text.splitlines() if line.strip()}

    @staticmethod
    def _read(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise CheckpointError(f"Failed to read {path.name}: {e}", cause=e) from e

    # ── rotation ─────────────────────────────────────────────────

    def clear_record(self) -> None:
        """Move current records into a history snapshot and prune old snapshots."""
        locks = list(self._locks.values())
        for lock in locks:
            lock.acquire()
        try:
            snapshot = self._new_snapshot_dir()
            moved = False
            for path in (self.all_path, self.completed_path, self.error_path):
                if path.exists():
                    snapshot.mkdir(parents=True, exist_ok=True)
                    logger.info("checkpoint_record_archived", file=str(path), snapshot=str(snapshot))
                    os.replace(path, snapshot / path.name)
                    moved = True
            if not moved:
                logger.info("checkpoint_nothing_to_archive", base_dir=str(self.base_dir))
            self._prune_history()
        except OSError as e:
            raise CheckpointError(f"Failed to rotate checkpoint records: {e}", cause=e) from e
        finally:
            for lock in reversed(locks):
                lock.release()

    def _new_snapshot_dir(self) -> Path:
        base = self.history_dir / f"{HISTORY_PREFIX}{snapshot_stamp()}"
        candidate = base
        n = 1
        while candidate.exists():
            candidate = base.with_name(f"{base.name}_{n}")
            n += 1
        return candidate

    def history(self) -> list[Path]:
        """Snapshot directories, oldest first."""
        if not self.history_dir.is_dir():
            return []
        snapshots = [
            p for p in self.history_dir.iterdir()
            if p.is_dir() and p.name.startswith(HISTORY_PREFIX)
        ]
        return sorted(snapshots, key=lambda p: (p.stat().st_mtime, p.name))

    def _prune_history(self) -> None:
        snapshots = self.history()
        excess = len(snapshots) - self.max_history
        for path in snapshots[: max(excess, 0)]:
            shutil.rmtree(path)
            logger.info("checkpoint_history_pruned", snapshot=str(path))


__all__ = ["FileCheckpointStore"]
