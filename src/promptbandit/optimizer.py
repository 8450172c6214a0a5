"""Runtime prompt optimizer that learns from interaction outcomes.

The PromptOptimizer closes the learning loop around a conversational agent:

1. Before generating a reply the conversation loop asks which tools the user
   probably needs (``detect_expected_tools``) and for the tool-usage section
   of the prompt (``compose_instruction`` / ``generate_optimized_tool_instruction``).
2. After the reply and any tool execution it records an Outcome
   (``build_outcome`` + ``record_outcome``), which updates the pattern
   posteriors, the recent-outcome buffer and the emphasis weights.

State lives in memory for the lifetime of the process. OptimizerRegistry
keeps independent optimizers per session id when sessions must not share
what they learn.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from promptbandit.core.config import AttributionPolicy, OptimizerConfig
from promptbandit.core.constants import INSTRUCTION_CATEGORIES
from promptbandit.core.errors import UnknownPatternError
from promptbandit.core.logging import get_logger
from promptbandit.learning.classifiers import detect_expected_tools, extract_tool_calls
from promptbandit.learning.distributions import Sampler
from promptbandit.learning.outcomes import Outcome, OutcomeLog
from promptbandit.learning.patterns import Pattern, PatternSpec, PatternStore
from promptbandit.learning.selector import PatternSelector, Selection
from promptbandit.learning.weighter import WeightState, adapt_weights
from promptbandit.prompts.templating import InstructionBuilder, InstructionContext

_logger = get_logger("optimizer")


@dataclass(frozen=True)
class ComposedInstruction:
    """Instruction text plus the selections that produced it."""

    text: str
    selections: tuple[Selection, ...]

    @property
    def pattern_ids(self) -> tuple[str, ...]:
        """Ids of the selected patterns, for explicit outcome attribution."""
        return tuple(s.pattern.pattern_id for s in self.selections)


@dataclass(frozen=True)
class PatternReport:
    """Per-pattern line of the statistics report."""

    pattern_id: str
    name: str
    usage_count: int
    success_count: int
    failure_count: int
    success_rate: float


@dataclass(frozen=True)
class OptimizerSnapshot:
    """Structured view of the optimizer state."""

    tracked_outcomes: int
    success_ratio: float
    weights: WeightState
    patterns: list[PatternReport] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "tracked_outcomes": self.tracked_outcomes,
            "success_ratio": self.success_ratio,
            "weights": self.weights.as_dict(),
            "patterns": [
                {
                    "pattern_id": p.pattern_id,
                    "name": p.name,
                    "usage_count": p.usage_count,
                    "success_count": p.success_count,
                    "failure_count": p.failure_count,
                    "success_rate": p.success_rate,
                }
                for p in self.patterns
            ],
        }


class PromptOptimizer:
    """Adaptive tool-instruction generator.

    Uses a multi-armed bandit (Thompson sampling with epsilon exploration)
    over instruction patterns, plus monotone emphasis weights driven by
    whether expected tools were actually called.
    """

    def __init__(
        self,
        config: OptimizerConfig | None = None,
        *,
        patterns: Iterable[PatternSpec] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the optimizer.

        Args:
            config: Optimizer configuration. Defaults if None.
            patterns: Pattern catalogue. The built-in catalogue if None.
            rng: Random source. Seeded from ``config.seed`` if None.

        Raises:
            EmptyPatternStoreError: If ``patterns`` is empty.
            DuplicatePatternError: If two patterns share an id.
        """
        self.config = config or OptimizerConfig()
        self.store = PatternStore(
            patterns,
            fallback=self.config.fallback,
            failed_variant_limit=self.config.failed_variant_limit,
        )
        self.outcomes = OutcomeLog(self.config.outcome_history)
        self.sampler = Sampler(rng or random.Random(self.config.seed))
        self.selector = PatternSelector(
            self.store,
            self.sampler,
            exploration_rate=self.config.exploration_rate,
        )
        self.builder = InstructionBuilder(self.config.composer)
        self._weights = WeightState()
        self._weights_lock = threading.Lock()

    @property
    def weights(self) -> WeightState:
        with self._weights_lock:
            return self._weights

    # ------------------------------------------------------------------
    # Before response generation
    # ------------------------------------------------------------------

    def detect_expected_tools(self, user_input: str) -> frozenset[str]:
        return detect_expected_tools(user_input)

    def extract_tool_calls(self, response: str) -> list[str]:
        return extract_tool_calls(response)

    def select_best_pattern(self, category: str, now: datetime | None = None) -> Pattern:
        """Select a pattern for ``category`` by Thompson sampling."""
        return self.selector.select(category, now).pattern

    def compose_instruction(
        self,
        available_tools: Sequence[str],
        user_input: str | None = "",
        now: datetime | None = None,
    ) -> ComposedInstruction:
        """Build the tool-usage instruction and report which patterns it used.

        Args:
            available_tools: Tool names offered to the model this turn.
            user_input: The user's message (logged only).
            now: Timestamp stamped on the selected patterns.

        Returns:
            The instruction text and the three selections behind it.
        """
        now = now or datetime.now(UTC)
        syntax, mandatory, trigger = (
            self.selector.select(category, now) for category in INSTRUCTION_CATEGORIES
        )

        weights = self.weights
        text = self.builder.build(
            InstructionContext(
                syntax=syntax.pattern.template,
                mandatory=mandatory.pattern.template,
                trigger=trigger.pattern.template,
                weights=weights,
                available_tools=list(available_tools),
                recent_failures=self.outcomes.recent_failures(
                    self.config.composer.max_recent_failures
                ),
            )
        )

        composed = ComposedInstruction(text=text, selections=(syntax, mandatory, trigger))
        _logger.debug(
            "instruction_composed",
            pattern_ids=list(composed.pattern_ids),
            warning_banner=self.builder.show_warning_banner(weights),
            examples=self.builder.show_examples(weights),
            input_chars=len(user_input or ""),
        )
        return composed

    def generate_optimized_tool_instruction(
        self,
        available_tools: Sequence[str],
        user_input: str | None = "",
    ) -> str:
        """Build the tool-usage instruction text for the next prompt.

        The ids of the selected patterns are discarded. Under explicit
        attribution an outcome recorded without ids updates no pattern
        statistics; use ``compose_instruction(...).pattern_ids`` and pass them
        to ``record_outcome`` instead.
        """
        return self.compose_instruction(available_tools, user_input).text

    # ------------------------------------------------------------------
    # After response generation
    # ------------------------------------------------------------------

    def build_outcome(
        self,
        user_input: str,
        response: str,
        executed_tools: Iterable[str] = (),
        elapsed: timedelta | None = None,
    ) -> Outcome:
        """Assemble an Outcome for one finished exchange.

        Actual tool calls are the markers found in the response plus the
        tools the execution layer reports as invoked.
        """
        actual = set(extract_tool_calls(response))
        actual.update(executed_tools)
        return Outcome(
            user_input=user_input,
            response=response,
            expected_tools=detect_expected_tools(user_input),
            actual_tool_calls=frozenset(actual),
            elapsed=elapsed or timedelta(0),
        )

    def record_outcome(
        self,
        outcome: Outcome,
        pattern_ids: Iterable[str] | None = None,
    ) -> None:
        """Learn from one outcome.

        Args:
            outcome: The finished exchange.
            pattern_ids: Patterns that built this turn's instruction, usually
                ``ComposedInstruction.pattern_ids``. Required for pattern
                statistics under explicit attribution; ignored under
                recent-window attribution.

        Raises:
            UnknownPatternError: If an explicit pattern id is not in the store.
        """
        credited = self._attributed_patterns(outcome, pattern_ids)

        self.outcomes.push(outcome)
        for pattern in credited:
            self.store.record_touch(pattern, outcome)

        with self._weights_lock:
            before = self._weights
            self._weights = adapt_weights(before, outcome, self.config.weights)
            after = self._weights

        if after != before:
            _logger.debug("weights_adapted", **after.as_dict())

        if outcome.is_miss:
            _logger.info(
                "tool_expectation_missed",
                expected_tools=sorted(outcome.expected_tools),
            )

        _logger.debug(
            "outcome_recorded",
            successful=outcome.was_successful,
            credited=[p.pattern_id for p in credited],
            tracked=len(self.outcomes),
        )

    def _attributed_patterns(
        self,
        outcome: Outcome,
        pattern_ids: Iterable[str] | None,
    ) -> list[Pattern]:
        if self.config.attribution is AttributionPolicy.RECENT_WINDOW:
            window = timedelta(seconds=self.config.attribution_window_seconds)
            return self.store.touched_since(datetime.now(UTC) - window)

        if pattern_ids is None:
            _logger.info("outcome_unattributed", successful=outcome.was_successful)
            return []

        credited: list[Pattern] = []
        for pattern_id in dict.fromkeys(pattern_ids):
            pattern = self.store.get(pattern_id)
            if pattern is None:
                raise UnknownPatternError(pattern_id)
            credited.append(pattern)
        return credited

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def snapshot(self) -> OptimizerSnapshot:
        reports = []
        for pattern in self.store.ranked():
            stats = pattern.stats()
            reports.append(
                PatternReport(
                    pattern_id=pattern.pattern_id,
                    name=pattern.name,
                    usage_count=stats.usage_count,
                    success_count=stats.success_count,
                    failure_count=stats.failure_count,
                    success_rate=stats.success_rate,
                )
            )
        return OptimizerSnapshot(
            tracked_outcomes=len(self.outcomes),
            success_ratio=self.outcomes.success_ratio(),
            weights=self.weights,
            patterns=reports,
        )

    def get_statistics(self) -> str:
        """Human-readable report of weights, pattern performance and success rate."""
        snap = self.snapshot()
        w = snap.weights
        lines = [
            "=== Prompt Optimization Statistics ===",
            f"Total interactions tracked: {snap.tracked_outcomes}",
            "Learned weights:",
            f"  Tool Syntax Emphasis: {w.tool_syntax_emphasis:.2f}",
            f"  Example Density: {w.example_density:.2f}",
            f"  Warning Emphasis: {w.warning_emphasis:.2f}",
            f"  Context Injection: {w.context_injection:.2f}",
            "",
            "Pattern Performance:",
        ]
        for p in snap.patterns:
            lines.append(f"  {p.name}: {p.success_rate:.0%} ({p.success_count}/{p.usage_count})")
        lines.append("")
        lines.append(f"Overall Success Rate: {snap.success_ratio:.0%}")
        return "\n".join(lines) + "\n"


class OptimizerRegistry:
    """One PromptOptimizer per session id, created on first use."""

    def __init__(self, config: OptimizerConfig | None = None) -> None:
        self.config = config or OptimizerConfig()
        self._optimizers: dict[str, PromptOptimizer] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> PromptOptimizer:
        with self._lock:
            optimizer = self._optimizers.get(session_id)
            if optimizer is None:
                optimizer = PromptOptimizer(self.config)
                self._optimizers[session_id] = optimizer
                _logger.debug("session_optimizer_created", session_id=session_id)
            return optimizer

    def sessions(self) -> list[str]:
        with self._lock:
            return list(self._optimizers)

    def discard(self, session_id: str) -> bool:
        """Forget a session's optimizer. Returns whether one existed."""
        with self._lock:
            return self._optimizers.pop(session_id, None) is not None


_default_optimizer: PromptOptimizer | None = None
_default_lock = threading.Lock()


def get_default_optimizer() -> PromptOptimizer:
    """Process-wide optimizer, constructed on first call and never torn down."""
    global _default_optimizer
    with _default_lock:
        if _default_optimizer is None:
            _default_optimizer = PromptOptimizer()
        return _default_optimizer
