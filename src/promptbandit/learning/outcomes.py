"""Outcome recording for tool-usage learning.

An Outcome captures one exchange: what the user asked, what the model said,
which tools the heuristics expected and which tools were actually invoked.
The OutcomeLog keeps a bounded, thread-safe window of recent outcomes from
which weights, statistics and the "recent mistakes" block are derived.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from promptbandit.core.constants import DEFAULT_OUTCOME_HISTORY


@dataclass(frozen=True)
class Outcome:
    """Immutable record of one exchange.

    ``was_successful`` is derived rather than stored: an exchange succeeds
    when no tools were expected or when at least one tool was called.
    """

    user_input: str
    response: str
    expected_tools: frozenset[str] = frozenset()
    actual_tool_calls: frozenset[str] = frozenset()
    elapsed: timedelta = timedelta(0)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        # Accept any iterable of names while keeping the stored form hashable
        object.__setattr__(self, "expected_tools", frozenset(self.expected_tools))
        object.__setattr__(self, "actual_tool_calls", frozenset(self.actual_tool_calls))

    @property
    def was_successful(self) -> bool:
        return not self.expected_tools or bool(self.actual_tool_calls)

    @property
    def is_miss(self) -> bool:
        """True when tools were expected but none were called."""
        return bool(self.expected_tools) and not self.actual_tool_calls

    def describe_failure(self) -> str:
        """Format the expected-versus-actual summary stored on patterns."""
        expected = ",".join(sorted(self.expected_tools))
        actual = ",".join(sorted(self.actual_tool_calls))
        return f"Expected: {expected} Got: {actual}"


class OutcomeLog:
    """Bounded FIFO buffer of recent outcomes.

    Pushing beyond capacity silently evicts the oldest entry. All methods are
    safe to call from concurrent threads; iteration works on a snapshot.
    """

    def __init__(self, capacity: int = DEFAULT_OUTCOME_HISTORY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._outcomes: deque[Outcome] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def push(self, outcome: Outcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)

    def snapshot(self) -> list[Outcome]:
        """Copy of the buffer, oldest first."""
        with self._lock:
            return list(self._outcomes)

    def __iter__(self) -> Iterator[Outcome]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)

    @property
    def count(self) -> int:
        return len(self)

    def take_last(
        self,
        predicate: Callable[[Outcome], bool],
        n: int,
    ) -> list[Outcome]:
        """Return the most recent ``n`` outcomes matching ``predicate``.

        Args:
            predicate: Filter applied to every buffered outcome.
            n: Maximum number of outcomes to return.

        Returns:
            Matching outcomes in chronological order (oldest first).
        """
        if n <= 0:
            return []
        matches = [o for o in self.snapshot() if predicate(o)]
        return matches[-n:]

    def recent_failures(self, n: int) -> list[Outcome]:
        """Most recent failed outcomes that had expected tools."""
        return self.take_last(lambda o: not o.was_successful and bool(o.expected_tools), n)

    def success_ratio(self) -> float:
        """Fraction of buffered outcomes that succeeded (0.0 when empty)."""
        outcomes = self.snapshot()
        if not outcomes:
            return 0.0
        return sum(1 for o in outcomes if o.was_successful) / len(outcomes)
