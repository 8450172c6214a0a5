"""Instruction generation command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from promptbandit.core.constants import KNOWN_TOOLS

from ..helpers import load_optimizer
from ..output import console, instruction_panel


def instruct(
    text: str = typer.Argument("", help="User message the instruction is built for"),
    tools: Annotated[
        list[str] | None,
        typer.Option("--tool", "-t", help="Available tool (repeatable). Defaults to all."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Optimizer YAML config", exists=True),
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Random seed")] = None,
    raw: bool = typer.Option(False, "--raw", help="Print the bare instruction text"),
) -> None:
    """Compose a tool-usage instruction from a fresh optimizer.

    Examples:
        promptbandit instruct "search for the WorldModel class" --seed 7
        promptbandit instruct -t search_my_code -t calculator --raw
    """
    optimizer = load_optimizer(console, config, seed)
    composed = optimizer.compose_instruction(tools or sorted(KNOWN_TOOLS), text)

    if raw:
        typer.echo(composed.text, nl=False)
        return

    console.print(instruction_panel(composed.text))
    console.print(f"[dim]Patterns: {', '.join(composed.pattern_ids)}[/dim]")
