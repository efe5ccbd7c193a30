"""
CLI entry point using Typer.

Provides commands for running GZCLP on top of Hevy:
- init / add-exercise / status: set up and inspect the program
- sync / review / apply / reject: turn logged workouts into progression
- push: reconcile local weights with the Hevy routines
- predict / detect-stage: forecasts and stage inference
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from .. import __version__
from . import views
from .app import app
from .commands import analysis, program, sync  # noqa: F401  (registers commands)


def _version_callback(value: bool) -> None:
    if value:
        views.console.print(f"gzclp-sync {__version__}")
        raise typer.Exit(0)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log API calls and sync decisions"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """
    GZCLP progression tracker that keeps your Hevy routines in sync.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=views.console, show_path=False)],
    )


if __name__ == "__main__":
    app()
