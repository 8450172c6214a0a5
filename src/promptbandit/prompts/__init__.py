"""Instruction templating for tool-usage prompts."""

from promptbandit.prompts.templating import (
    InstructionBuilder,
    InstructionContext,
    Mistake,
)

__all__ = [
    "InstructionBuilder",
    "InstructionContext",
    "Mistake",
]
