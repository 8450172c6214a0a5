"""promptbandit CLI.

Typer app assembly. Global options configure logging before any command
runs; command logic lives in the ``commands`` package.

Package structure:
    cli/
    ├── __init__.py           # App assembly
    ├── helpers.py            # Logging state, optimizer construction
    ├── output.py             # Rich formatting
    └── commands/
        ├── classify.py       # detect, extract
        ├── instruct.py       # instruct
        └── replay.py         # replay, stats
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from promptbandit import __version__

# Re-export helpers module for direct access to internal state (conftest.py needs this)
from . import helpers as helpers
from .commands import detect, extract, instruct, replay, stats
from .helpers import (
    configure_global_logging,
    set_log_file,
    set_log_format,
    set_log_level,
)
from .output import console

app = typer.Typer(
    name="promptbandit",
    help="Adaptive tool-usage prompt optimization",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"promptbandit v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="PROMPTBANDIT_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for log file output",
            envvar="PROMPTBANDIT_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json or console",
            envvar="PROMPTBANDIT_LOG_FORMAT",
        ),
    ] = None,
) -> None:
    """promptbandit - learn which tool instructions make a model call its tools."""
    configure_global_logging(console)


# Heuristics
app.command()(detect)
app.command()(extract)

# Instruction generation and learning
app.command()(instruct)
app.command()(replay)
app.command()(stats)


__all__ = [
    "app",
    "main",
    "console",
]
