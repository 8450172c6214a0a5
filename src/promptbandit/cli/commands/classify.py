"""Heuristic classifier commands.

Commands:
- detect: Show the tools a user message is expected to need
- extract: Show the tool calls found in a model response
"""

from __future__ import annotations

import typer

from promptbandit.learning.classifiers import detect_expected_tools, extract_tool_calls

from ..output import console, print_json


def detect(
    text: str = typer.Argument(..., help="User message to classify"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show which tools a user message is expected to need.

    Examples:
        promptbandit detect "search for the WorldModel class"
        promptbandit detect "what is 2 + 2" --json
    """
    tools = sorted(detect_expected_tools(text))

    if json_output:
        print_json({"expected_tools": tools})
        return

    if not tools:
        console.print("[dim]No tools expected[/dim]")
        return
    for tool in tools:
        console.print(f"  [cyan]{tool}[/cyan]")


def extract(
    text: str = typer.Argument(..., help="Model response to scan for [TOOL:...] markers"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the tool calls found in a model response, in order.

    Examples:
        promptbandit extract "I'll check. [TOOL:search_my_code WorldModel] done."
    """
    calls = extract_tool_calls(text)

    if json_output:
        print_json({"tool_calls": calls})
        return

    if not calls:
        console.print("[dim]No tool calls found[/dim]")
        return
    for call in calls:
        console.print(f"  [green]{call}[/green]")
