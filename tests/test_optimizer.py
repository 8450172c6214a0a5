"""Tests for promptbandit.optimizer module.

Covers the full learning loop: composing instructions, building and
recording outcomes, attribution policies, weight-driven instruction
changes, the statistics report and per-session registries.
"""

from __future__ import annotations

import random
import threading
from datetime import UTC, datetime, timedelta

import pytest
from structlog.testing import capture_logs

from promptbandit import OptimizerRegistry, PromptOptimizer, get_default_optimizer
from promptbandit.core.config import AttributionPolicy, OptimizerConfig
from promptbandit.core.errors import EmptyPatternStoreError, UnknownPatternError
from promptbandit.learning.outcomes import Outcome
from promptbandit.prompts.templating import EXAMPLES_HEADER, MISTAKES_HEADER, WARNING_BANNER
from tests.helpers import make_outcome

TOOLS = ["search_my_code", "read_my_file", "calculator"]
QUESTION = "search for the WorldModel class"


# ─── Composition ───────────────────────────────────────────────────────


class TestComposeInstruction:
    def test_one_pattern_per_category(self, optimizer: PromptOptimizer):
        composed = optimizer.compose_instruction(TOOLS, QUESTION)
        syntax, mandatory, trigger = composed.pattern_ids
        assert syntax.startswith("tool_syntax_")
        assert mandatory == "mandatory_rule"
        assert trigger.startswith("action_trigger_")

    def test_text_contains_selected_templates(self, optimizer: PromptOptimizer):
        composed = optimizer.compose_instruction(TOOLS)
        for selection in composed.selections:
            assert selection.pattern.template in composed.text

    def test_fresh_optimizer_has_no_optional_blocks(self, optimizer: PromptOptimizer):
        text = optimizer.generate_optimized_tool_instruction(TOOLS)
        assert WARNING_BANNER not in text
        assert EXAMPLES_HEADER not in text
        assert MISTAKES_HEADER not in text

    def test_selected_patterns_stamped(self, optimizer: PromptOptimizer, now: datetime):
        composed = optimizer.compose_instruction(TOOLS, now=now)
        for pattern_id in composed.pattern_ids:
            assert optimizer.store.get(pattern_id).last_used == now

    def test_none_input_composes(self, optimizer: PromptOptimizer):
        composed = optimizer.compose_instruction(TOOLS, None)
        assert len(composed.pattern_ids) == 3
        assert "MANDATORY:" in optimizer.generate_optimized_tool_instruction(TOOLS, None)

    def test_select_best_pattern(self, optimizer: PromptOptimizer):
        pattern = optimizer.select_best_pattern("trigger")
        assert pattern in optimizer.store.lookup_by_category("trigger")

    def test_seed_reproducible(self):
        config = OptimizerConfig(seed=17)
        first = [PromptOptimizer(config).compose_instruction(TOOLS).pattern_ids for _ in range(5)]
        assert len(set(first)) == 1


# ─── Outcomes ──────────────────────────────────────────────────────────


class TestBuildOutcome:
    def test_union_of_markers_and_executed(self, optimizer: PromptOptimizer):
        outcome = optimizer.build_outcome(
            "what is 2 + 2",
            "Sure. [TOOL:calculator 2+2]",
            executed_tools=["read_my_file"],
        )
        assert outcome.expected_tools == {"calculator"}
        assert outcome.actual_tool_calls == {"calculator", "read_my_file"}
        assert outcome.was_successful

    def test_miss(self, optimizer: PromptOptimizer):
        outcome = optimizer.build_outcome(QUESTION, "It is in the models folder.")
        assert outcome.is_miss
        assert outcome.elapsed == timedelta(0)

    def test_elapsed_carried(self, optimizer: PromptOptimizer):
        outcome = optimizer.build_outcome("hi", "hello", elapsed=timedelta(seconds=2))
        assert outcome.elapsed == timedelta(seconds=2)

    def test_delegating_classifiers(self, optimizer: PromptOptimizer):
        assert optimizer.detect_expected_tools("calculate 3 * 4") == {"calculator"}
        assert optimizer.extract_tool_calls("[TOOL:calculator 3*4]") == ["calculator"]


class TestRecordOutcome:
    def test_three_misses_end_to_end(self, optimizer: PromptOptimizer):
        for _ in range(3):
            composed = optimizer.compose_instruction(TOOLS, QUESTION)
            outcome = optimizer.build_outcome(QUESTION, "It lives in the core package.")
            optimizer.record_outcome(outcome, composed.pattern_ids)

        weights = optimizer.weights
        assert weights.warning_emphasis == 1.6
        assert weights.example_density == 1.3

        text = optimizer.generate_optimized_tool_instruction(TOOLS)
        assert WARNING_BANNER in text
        assert "CONCRETE EXAMPLES" not in text
        assert MISTAKES_HEADER in text
        assert text.count(f"User asked '{QUESTION}...' but you didn't call search_my_code") == 3

    def test_fourth_miss_shows_examples(self, optimizer: PromptOptimizer, miss: Outcome):
        for _ in range(4):
            optimizer.record_outcome(miss)
        text = optimizer.generate_optimized_tool_instruction(TOOLS)
        assert EXAMPLES_HEADER in text
        assert "  [TOOL:calculator your_input_here]" in text

    def test_explicit_attribution_credits_only_given_patterns(
        self, optimizer: PromptOptimizer, hit: Outcome
    ):
        composed = optimizer.compose_instruction(TOOLS)
        optimizer.record_outcome(hit, composed.pattern_ids)
        for pattern in optimizer.store:
            expected = 1 if pattern.pattern_id in composed.pattern_ids else 0
            assert pattern.usage_count == expected
            assert pattern.success_count == expected

    def test_explicit_without_ids_credits_nothing(
        self, optimizer: PromptOptimizer, miss: Outcome
    ):
        optimizer.compose_instruction(TOOLS)
        optimizer.record_outcome(miss)
        assert all(p.usage_count == 0 for p in optimizer.store)
        assert len(optimizer.outcomes) == 1
        assert optimizer.weights.warning_emphasis == pytest.approx(1.2)

    def test_unattributed_logged_at_info(self, optimizer: PromptOptimizer, miss: Outcome):
        with capture_logs() as logs:
            optimizer.record_outcome(miss)
        events = {entry["event"]: entry for entry in logs}
        assert events["outcome_unattributed"]["log_level"] == "info"
        assert events["outcome_unattributed"]["successful"] is False

    def test_duplicate_ids_counted_once(self, optimizer: PromptOptimizer, hit: Outcome):
        optimizer.record_outcome(hit, ["mandatory_rule", "mandatory_rule"])
        assert optimizer.store.get("mandatory_rule").usage_count == 1

    def test_unknown_id_rejected_before_any_update(
        self, optimizer: PromptOptimizer, miss: Outcome
    ):
        with pytest.raises(UnknownPatternError) as exc_info:
            optimizer.record_outcome(miss, ["mandatory_rule", "ghost"])
        assert exc_info.value.pattern_id == "ghost"
        assert len(optimizer.outcomes) == 0
        assert optimizer.store.get("mandatory_rule").usage_count == 0
        assert optimizer.weights.warning_emphasis == 1.0

    def test_recent_window_attribution(self, rng: random.Random, miss: Outcome):
        optimizer = PromptOptimizer(
            OptimizerConfig(attribution=AttributionPolicy.RECENT_WINDOW), rng=rng
        )
        stale = optimizer.store.get("tool_syntax_emphatic")
        optimizer.store.mark_used(stale, datetime.now(UTC) - timedelta(minutes=10))
        composed = optimizer.compose_instruction(TOOLS)

        optimizer.record_outcome(miss)

        credited = {p.pattern_id for p in optimizer.store if p.usage_count}
        assert set(composed.pattern_ids) <= credited
        if "tool_syntax_emphatic" not in composed.pattern_ids:
            assert stale.usage_count == 0

    def test_miss_logged(self, optimizer: PromptOptimizer, miss: Outcome):
        with capture_logs() as logs:
            optimizer.record_outcome(miss, ["mandatory_rule"])
        events = {entry["event"]: entry for entry in logs}
        assert events["tool_expectation_missed"]["expected_tools"] == ["search_my_code"]
        assert events["tool_expectation_missed"]["log_level"] == "info"
        assert events["outcome_recorded"]["credited"] == ["mandatory_rule"]

    def test_concurrent_recording(self, optimizer: PromptOptimizer, miss: Outcome, hit: Outcome):
        def worker(outcome: Outcome) -> None:
            for _ in range(50):
                composed = optimizer.compose_instruction(TOOLS)
                optimizer.record_outcome(outcome, composed.pattern_ids)

        threads = [threading.Thread(target=worker, args=(o,)) for o in (miss, hit) * 3]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(optimizer.outcomes) == 100
        for pattern in optimizer.store:
            stats = pattern.stats()
            assert stats.usage_count == stats.success_count + stats.failure_count
        assert sum(p.usage_count for p in optimizer.store) == 300 * 3
        weights = optimizer.weights
        assert weights.warning_emphasis == 3.0
        assert weights.tool_syntax_emphasis == 2.0


# ─── Introspection ─────────────────────────────────────────────────────


class TestStatistics:
    def test_fresh_report(self, optimizer: PromptOptimizer):
        report = optimizer.get_statistics()
        lines = report.splitlines()
        assert lines[:7] == [
            "=== Prompt Optimization Statistics ===",
            "Total interactions tracked: 0",
            "Learned weights:",
            "  Tool Syntax Emphasis: 1.00",
            "  Example Density: 1.00",
            "  Warning Emphasis: 1.00",
            "  Context Injection: 1.00",
        ]
        assert "Pattern Performance:" in lines
        assert "  Basic Tool Syntax: 0% (0/0)" in lines
        assert lines[-1] == "Overall Success Rate: 0%"
        assert report.endswith("\n")

    def test_report_after_learning(self, optimizer: PromptOptimizer, miss: Outcome, hit: Outcome):
        optimizer.record_outcome(hit, ["mandatory_rule"])
        optimizer.record_outcome(hit, ["mandatory_rule"])
        optimizer.record_outcome(miss, ["mandatory_rule"])
        optimizer.record_outcome(make_outcome(expected=()), ["tool_syntax_basic"])
        report = optimizer.get_statistics()
        assert "Total interactions tracked: 4" in report
        assert "  Mandatory Rule Pattern: 67% (2/3)" in report
        assert "  Basic Tool Syntax: 100% (1/1)" in report
        assert "  Tool Syntax Emphasis: 1.20" in report
        assert "  Warning Emphasis: 1.20" in report
        assert "Overall Success Rate: 75%" in report

    def test_patterns_ranked_best_first(self, optimizer: PromptOptimizer, hit: Outcome):
        optimizer.record_outcome(hit, ["action_trigger_detailed"])
        snapshot = optimizer.snapshot()
        assert snapshot.patterns[0].pattern_id == "action_trigger_detailed"

    def test_snapshot_to_dict(self, optimizer: PromptOptimizer, miss: Outcome):
        optimizer.record_outcome(miss, ["mandatory_rule"])
        data = optimizer.snapshot().to_dict()
        assert data["tracked_outcomes"] == 1
        assert data["success_ratio"] == 0.0
        assert data["weights"]["warning_emphasis"] == pytest.approx(1.2)
        assert len(data["patterns"]) == 6


class TestConstruction:
    def test_custom_catalogue_must_not_be_empty(self):
        with pytest.raises(EmptyPatternStoreError):
            PromptOptimizer(patterns=[])

    def test_outcome_history_configurable(self, miss: Outcome):
        optimizer = PromptOptimizer(OptimizerConfig(outcome_history=5))
        for _ in range(9):
            optimizer.record_outcome(miss)
        assert len(optimizer.outcomes) == 5


class TestRegistry:
    def test_sessions_isolated(self, miss: Outcome):
        registry = OptimizerRegistry()
        a = registry.get("a")
        b = registry.get("b")
        assert a is not b
        assert registry.get("a") is a

        a.record_outcome(miss)
        assert len(a.outcomes) == 1
        assert len(b.outcomes) == 0
        assert b.weights.warning_emphasis == 1.0

    def test_sessions_and_discard(self):
        registry = OptimizerRegistry()
        registry.get("a")
        registry.get("b")
        assert registry.sessions() == ["a", "b"]
        assert registry.discard("a") is True
        assert registry.discard("a") is False
        assert registry.sessions() == ["b"]

    def test_config_shared(self):
        config = OptimizerConfig(exploration_rate=0.0)
        registry = OptimizerRegistry(config)
        assert registry.get("x").config is config

    def test_default_optimizer_is_singleton(self):
        assert get_default_optimizer() is get_default_optimizer()
