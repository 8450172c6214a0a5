"""Learning module: sampling, pattern statistics, outcomes and weights."""

from promptbandit.learning.classifiers import detect_expected_tools, extract_tool_calls
from promptbandit.learning.distributions import Sampler
from promptbandit.learning.outcomes import Outcome, OutcomeLog
from promptbandit.learning.patterns import (
    BUILTIN_PATTERNS,
    Pattern,
    PatternSpec,
    PatternStats,
    PatternStore,
)
from promptbandit.learning.selector import PatternSelector, Selection
from promptbandit.learning.weighter import WeightState, adapt_weights

__all__ = [
    # Classifiers
    "detect_expected_tools",
    "extract_tool_calls",
    # Sampling
    "Sampler",
    # Outcomes
    "Outcome",
    "OutcomeLog",
    # Patterns
    "BUILTIN_PATTERNS",
    "Pattern",
    "PatternSpec",
    "PatternStats",
    "PatternStore",
    # Selection
    "PatternSelector",
    "Selection",
    # Weights
    "WeightState",
    "adapt_weights",
]
