"""Replay and statistics commands.

Commands:
- replay: Train an optimizer on a recorded conversation and summarize it
- stats: Print the plain-text statistics report after an optional replay
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import yaml
from pydantic import ValidationError
from rich.markup import escape

from promptbandit.replay import ReplayScript, replay as run_replay

from ..helpers import ErrorMessages, load_optimizer
from ..output import console, instruction_panel, print_json, print_snapshot


def _load_script(path: Path) -> ReplayScript:
    try:
        return ReplayScript.from_yaml(path)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        console.print(f"[red]{ErrorMessages.SCRIPT_LOAD_ERROR}:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def replay(
    script: Annotated[Path, typer.Argument(help="YAML/JSON replay script", exists=True)],
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Optimizer YAML config", exists=True),
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Random seed")] = None,
    show_instruction: bool = typer.Option(
        False,
        "--show-instruction",
        "-s",
        help="Also print the instruction the next turn would receive",
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Replay a recorded conversation through the optimizer.

    Examples:
        promptbandit replay turns.yaml
        promptbandit replay turns.yaml --seed 1 --show-instruction
        promptbandit replay turns.yaml --json
    """
    replay_script = _load_script(script)
    optimizer = load_optimizer(console, config, seed)
    result = run_replay(optimizer, replay_script)
    snapshot = optimizer.snapshot()

    if json_output:
        output = {
            "turns": len(result.outcomes),
            "misses": result.misses,
            **snapshot.to_dict(),
        }
        if show_instruction:
            output["next_instruction"] = optimizer.generate_optimized_tool_instruction(
                replay_script.available_tools
            )
        print_json(output)
        return

    console.print(
        f"[bold]Replayed {len(result.outcomes)} turns[/bold] "
        f"([red]{result.misses}[/red] missed tool calls)\n"
    )
    print_snapshot(snapshot)

    if show_instruction:
        console.print()
        console.print(
            instruction_panel(
                optimizer.generate_optimized_tool_instruction(replay_script.available_tools),
                title="Next Instruction",
            )
        )


def stats(
    script: Annotated[
        Path | None,
        typer.Option("--replay", "-r", help="Replay script to learn from first", exists=True),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Optimizer YAML config", exists=True),
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Random seed")] = None,
) -> None:
    """Print the optimizer statistics report.

    Without --replay this shows the initial state of a fresh optimizer.

    Examples:
        promptbandit stats
        promptbandit stats --replay turns.yaml
    """
    optimizer = load_optimizer(console, config, seed)
    if script is not None:
        run_replay(optimizer, _load_script(script))
    typer.echo(optimizer.get_statistics(), nl=False)
