"""Environment-driven settings for the slicer engine.

``SlicerSettings`` collects every tunable the orchestrator and the default
file checkpoint store accept, validated by pydantic at load time. Values are
read from ``SLICER_*`` environment variables and an optional ``.env`` file.

Examples:
    >>> from slicer.core.settings import SlicerSettings
    >>> settings = SlicerSettings(slice_concurrency=4, launch_interval=0)
    >>> settings.batch_size
    1000

Environment::

    SLICER_SLICE_CONCURRENCY=16
    SLICER_BATCH_SIZE=500
    SLICER_LAUNCH_INTERVAL=1.5
    SLICER_CHECKPOINT_DIR=/var/lib/etl/checkpoints

Tags:
    settings, configuration, pydantic, environment, slicer
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SlicerSettings(BaseSettings):
    """Tunables shared by the orchestrator, pools and checkpoint store.

    Fields
    ──────
    slice_concurrency : Slices processed concurrently (outer pool size)
    batch_size        : Max items handed to one task
    launch_interval   : Seconds slept between outer submissions
    retry_attempts    : Attempts per fetch / batch (0 behaves as 1)
    retry_nullable    : Whether a task returning None counts as success
    checkpoint_dir    : Base directory of the file checkpoint store
    max_history       : Rotated checkpoint snapshots kept
    queue_size        : Pending-task budget of each worker pool
    """

    model_config = SettingsConfigDict(
        env_prefix="SLICER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Orchestration ────────────────────────────────────────────
    slice_concurrency: int = Field(default=8, gt=0)
    batch_size: int = Field(default=1000, gt=0)
    launch_interval: float = Field(default=3.0, ge=0)
    retry_attempts: int = Field(default=3, ge=0)
    retry_nullable: bool = True

    # ── Pools ────────────────────────────────────────────────────
    queue_size: int = Field(default=1024, gt=0)

    # ── Checkpoints ──────────────────────────────────────────────
    checkpoint_dir: Path = Field(
        default_factory=lambda: Path("slicer_checkpoints"),
        description="Base directory holding process_info/ and process_history/",
    )
    max_history: int = Field(default=10, gt=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
