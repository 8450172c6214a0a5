"""Instruction patterns and their usage statistics.

A Pattern is a statically authored instruction template describing one way
to tell the downstream model how to invoke tools. The PatternStore holds a
fixed catalogue of patterns (the six built-ins unless another catalogue is
supplied) together with the mutable success/failure counters that feed
Thompson sampling.

Category membership is not stored: a pattern belongs to a category when its
display name contains the category word, case-insensitively.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime

from promptbandit.core.config import FallbackPolicy
from promptbandit.core.constants import DEFAULT_FAILED_VARIANT_LIMIT
from promptbandit.core.errors import DuplicatePatternError, EmptyPatternStoreError
from promptbandit.learning.outcomes import Outcome


@dataclass(frozen=True)
class PatternStats:
    """Consistent point-in-time view of a pattern's counters."""

    usage_count: int
    success_count: int
    failure_count: int
    last_used: datetime | None

    @property
    def success_rate(self) -> float:
        if self.usage_count == 0:
            return 0.0
        return self.success_count / self.usage_count


class Pattern:
    """A named instruction template with thread-safe usage statistics."""

    def __init__(
        self,
        pattern_id: str,
        name: str,
        template: str,
        *,
        failed_variant_limit: int = DEFAULT_FAILED_VARIANT_LIMIT,
    ) -> None:
        self.pattern_id = pattern_id
        self.name = name
        self.template = template
        self.usage_count = 0
        self.success_count = 0
        self.failure_count = 0
        self.last_used: datetime | None = None
        self.successful_variants: set[str] = set()
        self.failed_variants: deque[str] = deque(maxlen=failed_variant_limit)
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Pattern({self.pattern_id!r}, name={self.name!r})"

    def matches(self, category: str) -> bool:
        return category.lower() in self.name.lower()

    def stats(self) -> PatternStats:
        with self._lock:
            return PatternStats(
                usage_count=self.usage_count,
                success_count=self.success_count,
                failure_count=self.failure_count,
                last_used=self.last_used,
            )

    @property
    def success_rate(self) -> float:
        return self.stats().success_rate

    def record(self, outcome: Outcome) -> None:
        """Count one outcome against this pattern."""
        with self._lock:
            self.usage_count += 1
            if outcome.was_successful:
                self.success_count += 1
                if outcome.actual_tool_calls:
                    self.successful_variants.add(",".join(sorted(outcome.actual_tool_calls)))
            else:
                self.failure_count += 1
                self.failed_variants.append(outcome.describe_failure())

    def touch(self, now: datetime) -> None:
        with self._lock:
            self.last_used = now


@dataclass(frozen=True)
class PatternSpec:
    """Static definition of a catalogue entry."""

    pattern_id: str
    name: str
    template: str


BUILTIN_PATTERNS: tuple[PatternSpec, ...] = (
    PatternSpec(
        "tool_syntax_basic",
        "Basic Tool Syntax",
        "To use a tool, write [TOOL:toolname input]",
    ),
    PatternSpec(
        "tool_syntax_emphatic",
        "Emphatic Tool Syntax",
        "⚠️ CRITICAL: You MUST use exact syntax [TOOL:toolname input] - no exceptions!",
    ),
    PatternSpec(
        "tool_syntax_example_heavy",
        "Example-Heavy Tool Syntax",
        "Tool syntax: [TOOL:name args]\n"
        "Example 1: [TOOL:search_my_code WorldModel]\n"
        "Example 2: [TOOL:read_my_file src/file.py]\n"
        "Example 3: [TOOL:calculator 2+2]\n"
        "ALWAYS follow this exact pattern.",
    ),
    PatternSpec(
        "mandatory_rule",
        "Mandatory Rule Pattern",
        "MANDATORY: Questions about code/architecture REQUIRE tool usage.\n"
        "NEVER answer from memory. ALWAYS [TOOL:search_my_code X] first.",
    ),
    PatternSpec(
        "action_trigger_sparse",
        "Sparse Action Triggers",
        "'search X' → [TOOL:search_my_code X]",
    ),
    PatternSpec(
        "action_trigger_detailed",
        "Detailed Action Triggers",
        "TRIGGERS: When user says 'search/find/look for X' you MUST output "
        "[TOOL:search_my_code X]\n"
        "When user asks 'is there a X' you MUST output [TOOL:search_my_code X]\n"
        "When user says 'read file X' you MUST output [TOOL:read_my_file X]",
    ),
)
"""The canonical catalogue: three syntax, one mandatory and two trigger patterns."""


class PatternStore:
    """Fixed catalogue of patterns plus their mutable statistics.

    Patterns are registered once at construction and never added or removed
    afterwards. The store is never empty.
    """

    def __init__(
        self,
        patterns: Iterable[PatternSpec] | None = None,
        *,
        fallback: FallbackPolicy = FallbackPolicy.FIRST_INSERTED,
        failed_variant_limit: int = DEFAULT_FAILED_VARIANT_LIMIT,
    ) -> None:
        """Initialize the store.

        Args:
            patterns: Catalogue to load. The built-in catalogue if None.
            fallback: Candidates returned when a category matches nothing.
            failed_variant_limit: Failure descriptions kept per pattern.

        Raises:
            EmptyPatternStoreError: If the catalogue is empty.
            DuplicatePatternError: If two entries share an id.
        """
        specs = BUILTIN_PATTERNS if patterns is None else tuple(patterns)
        if not specs:
            raise EmptyPatternStoreError("A pattern store needs at least one pattern")

        self.fallback = fallback
        self._patterns: dict[str, Pattern] = {}
        for spec in specs:
            if spec.pattern_id in self._patterns:
                raise DuplicatePatternError(spec.pattern_id)
            self._patterns[spec.pattern_id] = Pattern(
                spec.pattern_id,
                spec.name,
                spec.template,
                failed_variant_limit=failed_variant_limit,
            )

    def __iter__(self) -> Iterator[Pattern]:
        return iter(self._patterns.values())

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, pattern_id: object) -> bool:
        return pattern_id in self._patterns

    def get(self, pattern_id: str) -> Pattern | None:
        return self._patterns.get(pattern_id)

    @property
    def first(self) -> Pattern:
        return next(iter(self._patterns.values()))

    def lookup_by_category(self, category: str) -> list[Pattern]:
        """Return the patterns belonging to ``category``, in catalogue order.

        When nothing matches, the store's fallback policy decides: either the
        first-inserted pattern alone or the whole catalogue.
        """
        matches = [p for p in self._patterns.values() if p.matches(category)]
        if matches:
            return matches
        if self.fallback is FallbackPolicy.ALL_PATTERNS:
            return list(self._patterns.values())
        return [self.first]

    def record_touch(self, pattern: Pattern, outcome: Outcome) -> None:
        pattern.record(outcome)

    def mark_used(self, pattern: Pattern, now: datetime | None = None) -> None:
        pattern.touch(now or datetime.now(UTC))

    def touched_since(self, cutoff: datetime) -> list[Pattern]:
        """Patterns whose last use is strictly after ``cutoff``."""
        touched = []
        for pattern in self._patterns.values():
            last_used = pattern.stats().last_used
            if last_used is not None and last_used > cutoff:
                touched.append(pattern)
        return touched

    def ranked(self) -> list[Pattern]:
        """Patterns sorted by success rate, best first (stable for ties)."""
        return sorted(self._patterns.values(), key=lambda p: p.success_rate, reverse=True)
