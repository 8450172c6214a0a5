"""Thompson-sampling pattern selection with epsilon exploration.

For each category the selector either explores (uniform pick among the
candidates, with probability ``exploration_rate``) or exploits by drawing a
success probability for every candidate from its Beta(successes + 1,
failures + 1) posterior and taking the best draw. Ties go to the candidate
encountered first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from promptbandit.core.constants import DEFAULT_EXPLORATION_RATE
from promptbandit.core.logging import get_logger
from promptbandit.learning.distributions import Sampler
from promptbandit.learning.patterns import Pattern, PatternStore

_logger = get_logger("selector")


@dataclass(frozen=True)
class Selection:
    """Result of one selection."""

    pattern: Pattern
    category: str
    explored: bool
    score: float | None = None
    """Winning posterior sample; None for exploratory picks."""


class PatternSelector:
    """Chooses one pattern per category from a PatternStore."""

    def __init__(
        self,
        store: PatternStore,
        sampler: Sampler | None = None,
        *,
        exploration_rate: float = DEFAULT_EXPLORATION_RATE,
    ) -> None:
        if not 0.0 <= exploration_rate <= 1.0:
            raise ValueError(f"exploration_rate must be in [0, 1], got {exploration_rate}")
        self.store = store
        self.sampler = sampler or Sampler()
        self.exploration_rate = exploration_rate

    def select(self, category: str, now: datetime | None = None) -> Selection:
        """Select a pattern for ``category`` and mark it used.

        Args:
            category: Category word matched against pattern names.
            now: Timestamp stamped on the selected pattern. Current UTC if None.

        Returns:
            The selection; its pattern is always one of the category's
            candidates as defined by the store's fallback policy.
        """
        candidates = self.store.lookup_by_category(category)
        rng = self.sampler.rng

        if rng.random() < self.exploration_rate:
            selection = Selection(
                pattern=candidates[rng.randrange(len(candidates))],
                category=category,
                explored=True,
            )
        else:
            selection = self._exploit(category, candidates)

        self.store.mark_used(selection.pattern, now or datetime.now(UTC))
        _logger.debug(
            "pattern_selected",
            category=category,
            pattern_id=selection.pattern.pattern_id,
            explored=selection.explored,
            score=selection.score,
            candidates=len(candidates),
        )
        return selection

    def _exploit(self, category: str, candidates: list[Pattern]) -> Selection:
        best: Pattern | None = None
        best_score = -1.0
        for pattern in candidates:
            stats = pattern.stats()
            score = self.sampler.posterior_sample(stats.success_count, stats.failure_count)
            if score > best_score:
                best = pattern
                best_score = score

        assert best is not None
        return Selection(pattern=best, category=category, explored=False, score=best_score)
