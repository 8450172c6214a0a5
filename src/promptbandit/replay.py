"""Replay recorded conversation turns through an optimizer.

A replay script is a YAML (or JSON) document listing the tools offered to
the model and the turns of a conversation. Each turn is pushed through the
full loop: compose the instruction, build the outcome from the recorded
response and executed tools, record it with explicit attribution.

Example YAML:
    available_tools: [search_my_code, read_my_file, calculator]
    turns:
      - input: "search for the WorldModel class"
        response: "Let me look. [TOOL:search_my_code WorldModel]"
      - input: "what is 2 + 2"
        response: "It is 4."
        executed_tools: []
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from promptbandit.core.constants import KNOWN_TOOLS
from promptbandit.core.logging import TurnContext, get_logger, with_context
from promptbandit.learning.outcomes import Outcome
from promptbandit.optimizer import PromptOptimizer

_logger = get_logger("replay")


class ReplayTurn(BaseModel):
    """One recorded exchange."""

    input: str = Field(description="The user's message")
    response: str = Field(default="", description="The model's reply")
    executed_tools: list[str] = Field(
        default_factory=list,
        description="Tools the execution layer reports as invoked",
    )


class ReplayScript(BaseModel):
    """A recorded conversation."""

    session_id: str = Field(default="replay", description="Session id used in logs")
    available_tools: list[str] = Field(
        default_factory=lambda: sorted(KNOWN_TOOLS),
        description="Tool names offered to the model on every turn",
    )
    turns: list[ReplayTurn] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: Path) -> ReplayScript:
        """Load a replay script from a YAML or JSON file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})


@dataclass
class ReplayResult:
    """Outcomes produced by a replay, in turn order."""

    outcomes: list[Outcome] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)

    @property
    def misses(self) -> int:
        return sum(1 for o in self.outcomes if o.is_miss)


def replay(optimizer: PromptOptimizer, script: ReplayScript) -> ReplayResult:
    """Feed every turn of ``script`` through ``optimizer``.

    Args:
        optimizer: The optimizer to train.
        script: The recorded conversation.

    Returns:
        The instructions composed for and the outcomes recorded from each turn.
    """
    result = ReplayResult()
    ctx = TurnContext(session_id=script.session_id, component="replay")

    for turn in script.turns:
        with with_context(ctx):
            composed = optimizer.compose_instruction(script.available_tools, turn.input)
            outcome = optimizer.build_outcome(turn.input, turn.response, turn.executed_tools)
            optimizer.record_outcome(outcome, composed.pattern_ids)
        result.instructions.append(composed.text)
        result.outcomes.append(outcome)
        ctx = ctx.next_turn()

    _logger.info(
        "replay_finished",
        session_id=script.session_id,
        turns=len(script.turns),
        misses=result.misses,
    )
    return result
