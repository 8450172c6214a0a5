"""Tests for promptbandit.replay module."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from promptbandit.optimizer import PromptOptimizer
from promptbandit.prompts.templating import WARNING_BANNER
from promptbandit.replay import ReplayScript, ReplayTurn, replay

SCRIPT_YAML = """\
session_id: demo
available_tools: [search_my_code, read_my_file, calculator]
turns:
  - input: "search for the WorldModel class"
    response: "It is in the core package."
  - input: "what is 2 + 2"
    response: "[TOOL:calculator 2+2]"
  - input: "hello"
    response: "Hi!"
  - input: "show me main.py"
    response: "Here it is."
    executed_tools: [read_my_file]
"""


@pytest.fixture
def script_path(tmp_path: Path) -> Path:
    path = tmp_path / "turns.yaml"
    path.write_text(SCRIPT_YAML)
    return path


class TestReplayScript:
    def test_from_yaml(self, script_path: Path):
        script = ReplayScript.from_yaml(script_path)
        assert script.session_id == "demo"
        assert len(script.turns) == 4
        assert script.turns[3].executed_tools == ["read_my_file"]
        assert script.turns[2].executed_tools == []

    def test_defaults(self):
        script = ReplayScript()
        assert script.session_id == "replay"
        assert "search_my_code" in script.available_tools
        assert script.turns == []

    def test_turn_requires_input(self):
        with pytest.raises(ValidationError):
            ReplayScript.model_validate({"turns": [{"response": "x"}]})


class TestReplay:
    def test_outcomes_per_turn(self, optimizer: PromptOptimizer, script_path: Path):
        result = replay(optimizer, ReplayScript.from_yaml(script_path))
        assert len(result.outcomes) == 4
        assert len(result.instructions) == 4
        assert result.misses == 1
        assert [o.was_successful for o in result.outcomes] == [False, True, True, True]
        assert result.outcomes[3].actual_tool_calls == {"read_my_file"}

    def test_patterns_credited_every_turn(self, optimizer: PromptOptimizer, script_path: Path):
        replay(optimizer, ReplayScript.from_yaml(script_path))
        assert sum(p.usage_count for p in optimizer.store) == 4 * 3
        assert optimizer.store.get("mandatory_rule").usage_count == 4
        assert len(optimizer.outcomes) == 4

    def test_repeated_misses_escalate(self, optimizer: PromptOptimizer):
        script = ReplayScript(
            turns=[ReplayTurn(input="find the parser", response="No idea.") for _ in range(3)]
        )
        result = replay(optimizer, script)
        assert result.misses == 3
        assert WARNING_BANNER not in result.instructions[-1]
        assert WARNING_BANNER in optimizer.generate_optimized_tool_instruction(script.available_tools)
