"""
CLI: ``slicer checkpoint`` - look at and rotate file checkpoint records.

The directory defaults to ``SLICER_CHECKPOINT_DIR`` (see
:class:`~slicer.core.settings.SlicerSettings`).
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from slicer.checkpoint import FileCheckpointStore, summarize
from slicer.core.errors import SlicerError
from slicer.core.settings import SlicerSettings

app = typer.Typer(no_args_is_help=True)

console = Console()
err_console = Console(stderr=True)


def _store(directory: Path | None, max_history: int | None = None) -> FileCheckpointStore:
    settings = SlicerSettings()
    return FileCheckpointStore(
        directory or settings.checkpoint_dir,
        max_history=max_history or settings.max_history,
    )


def _fail(error: SlicerError) -> typer.Exit:
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    return typer.Exit(code=1)


@app.command("show")
def show(
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Checkpoint base directory"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max slices listed per section"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Summarize the records of the last run."""
    store = _store(directory)
    try:
        summary = summarize(store)
    except SlicerError as e:
        raise _fail(e) from e

    remaining = sorted(str(s) for s in summary.remaining)
    errors = sorted(str(s) for s in summary.outstanding_errors)

    if json_out:
        payload = summary.to_dict() | {"remaining_slices": remaining, "error_slices": errors}
        console.print_json(json.dumps(payload))
        return

    table = Table(title=f"Checkpoint {store.base_dir}")
    table.add_column("Record")
    table.add_column("Slices", justify="right")
    for key, value in summary.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)

    for title, items in (("Remaining", remaining), ("Outstanding errors", errors)):
        if items:
            shown = ", ".join(items[:limit])
            more = f" (+{len(items) - limit} more)" if len(items) > limit else ""
            console.print(f"[bold]{title}[/bold]: {shown}{more}")


@app.command("rotate")
def rotate(
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Checkpoint base directory"),
    max_history: int | None = typer.Option(None, "--max-history", min=1),
) -> None:
    """Archive current records into history, as a fresh run would."""
    store = _store(directory, max_history)
    try:
        store.clear_record()
    except SlicerError as e:
        raise _fail(e) from e
    console.print(f"Rotated checkpoint records in {store.base_dir} ({len(store.history())} snapshots kept)")
