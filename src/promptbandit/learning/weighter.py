"""Online adaptation of instruction emphasis weights.

Four scalar knobs steer how forcefully the composed instruction pushes the
model towards tool usage:

- tool_syntax_emphasis: rises when the model calls tools successfully
- warning_emphasis: rises when expected tools were not called (banner)
- example_density: rises on the same misses (example block)
- context_injection: carried for reporting; no signal updates it yet

Weights start at 1.0, only ever increase, and are clamped to their caps.
There is no decay.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from promptbandit.core.config import WeightConfig
from promptbandit.core.constants import INITIAL_WEIGHT
from promptbandit.learning.outcomes import Outcome


@dataclass(frozen=True)
class WeightState:
    """Immutable snapshot of the four emphasis weights."""

    tool_syntax_emphasis: float = INITIAL_WEIGHT
    example_density: float = INITIAL_WEIGHT
    warning_emphasis: float = INITIAL_WEIGHT
    context_injection: float = INITIAL_WEIGHT

    def as_dict(self) -> dict[str, float]:
        return {
            "tool_syntax_emphasis": self.tool_syntax_emphasis,
            "example_density": self.example_density,
            "warning_emphasis": self.warning_emphasis,
            "context_injection": self.context_injection,
        }


def adapt_weights(
    weights: WeightState,
    outcome: Outcome,
    config: WeightConfig | None = None,
) -> WeightState:
    """Return the weights after learning from one outcome.

    Args:
        weights: Current weights.
        outcome: The outcome just recorded.
        config: Learning rate and caps. Defaults if None.

    Returns:
        A new WeightState; ``weights`` itself is not modified.
    """
    config = config or WeightConfig()
    rate = config.learning_rate

    if outcome.actual_tool_calls and outcome.was_successful:
        return replace(
            weights,
            tool_syntax_emphasis=_raise(
                weights.tool_syntax_emphasis, rate, config.tool_syntax_emphasis_cap
            ),
        )

    if outcome.is_miss:
        return replace(
            weights,
            warning_emphasis=_raise(weights.warning_emphasis, rate * 2, config.warning_emphasis_cap),
            example_density=_raise(weights.example_density, rate, config.example_density_cap),
        )

    return weights


def _raise(value: float, increment: float, cap: float) -> float:
    # Rounded to absorb binary drift: three 0.1 steps from 1.0 must equal 1.3
    return max(value, round(min(cap, value + increment), 10))
