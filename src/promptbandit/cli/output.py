"""Rich output formatting for the promptbandit CLI."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from promptbandit.optimizer import OptimizerSnapshot

# Shared console instance; commands print through this
console = Console()


def rate_color(rate: float) -> str:
    """Green for healthy success rates, yellow for middling, red for poor."""
    if rate >= 0.7:
        return "green"
    if rate >= 0.4:
        return "yellow"
    return "red"


def create_weights_table(snapshot: OptimizerSnapshot) -> Table:
    table = Table(title="Learned Weights", show_header=True, header_style="bold cyan")
    table.add_column("Weight")
    table.add_column("Value", justify="right")
    for name, value in snapshot.weights.as_dict().items():
        table.add_row(name.replace("_", " ").title(), f"{value:.2f}")
    return table


def create_patterns_table(snapshot: OptimizerSnapshot) -> Table:
    table = Table(title="Pattern Performance", show_header=True, header_style="bold cyan")
    table.add_column("Pattern")
    table.add_column("Success", justify="right")
    table.add_column("Uses", justify="right")
    table.add_column("Rate", justify="right")
    for p in snapshot.patterns:
        color = rate_color(p.success_rate) if p.usage_count else "dim"
        table.add_row(
            p.name,
            str(p.success_count),
            str(p.usage_count),
            f"[{color}]{p.success_rate:.0%}[/]",
        )
    return table


def print_snapshot(snapshot: OptimizerSnapshot) -> None:
    console.print(create_weights_table(snapshot))
    console.print(create_patterns_table(snapshot))
    color = rate_color(snapshot.success_ratio)
    console.print(
        f"Tracked interactions: {snapshot.tracked_outcomes}  "
        f"Overall success: [{color}]{snapshot.success_ratio:.0%}[/]"
    )


def instruction_panel(text: str, title: str = "Tool Instruction") -> Panel:
    # Text, not markup: templates contain [TOOL:...] brackets
    return Panel(Text(text.rstrip("\n")), title=title, border_style="blue")


def print_json(data: Any) -> None:
    """Print JSON without Rich wrapping or markup interpretation."""
    console.print(
        json.dumps(data, indent=2),
        soft_wrap=True,
        highlight=False,
        markup=False,
    )
