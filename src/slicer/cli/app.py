"""
Root Typer application for the slicer CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from slicer.cli.checkpoint import app as checkpoint_app
from slicer.core.logging import configure_logging
from slicer.core.settings import SlicerSettings

app = Typer(
    name="slicer",
    help="slicer - inspect and maintain slice checkpoints.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from slicer import __version__

        typer.echo(f"slicer {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level (default: SLICER_LOG_LEVEL or INFO)."
    ),
) -> None:
    """slicer CLI - checkpoint inspection and rotation."""
    settings = SlicerSettings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.log_json)


app.add_typer(checkpoint_app, name="checkpoint", help="Inspect or rotate checkpoint records.")


if __name__ == "__main__":
    app()
