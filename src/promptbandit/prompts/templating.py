"""Instruction templating for tool-usage prompts.

Renders the tool-usage section of the downstream prompt from the selected
pattern templates, the current emphasis weights and recent mistakes. The
layout lives in a single Jinja2 template; the builder only decides which
optional blocks are switched on.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import jinja2

from promptbandit.core.config import ComposerConfig
from promptbandit.learning.outcomes import Outcome
from promptbandit.learning.weighter import WeightState

WARNING_BANNER = "🚨 ABSOLUTE REQUIREMENT: USE TOOLS, DON'T JUST TALK ABOUT THEM 🚨"
EXAMPLES_HEADER = "CONCRETE EXAMPLES (use these patterns exactly):"
MISTAKES_HEADER = "❌ RECENT MISTAKES TO AVOID:"

INSTRUCTION_TEMPLATE = """\
{% if warning_banner %}
{{ warning_banner }}
{% endif %}

{{ syntax }}

{% if example_tools %}
{{ examples_header }}
{% for tool in example_tools %}
  [TOOL:{{ tool }} your_input_here]
{% endfor %}

{% endif %}
{{ mandatory }}

{{ trigger }}
{% if mistakes %}

{{ mistakes_header }}
{% for mistake in mistakes %}
  - User asked '{{ mistake.preview }}...' but you didn't call {{ mistake.tools }}
{% endfor %}
{% endif %}
"""


@dataclass
class Mistake:
    """A recent failure rendered into the instruction."""

    preview: str
    tools: str


@dataclass
class InstructionContext:
    """Everything needed to render one instruction."""

    syntax: str
    mandatory: str
    trigger: str
    weights: WeightState
    available_tools: Sequence[str] = field(default_factory=list)
    recent_failures: Sequence[Outcome] = field(default_factory=list)


class InstructionBuilder:
    """Builds the tool-usage instruction text.

    Handles Jinja2 rendering and the weight thresholds that switch the
    warning banner and the example block on.
    """

    def __init__(
        self,
        config: ComposerConfig | None = None,
        jinja_env: jinja2.Environment | None = None,
    ) -> None:
        """Initialize the instruction builder.

        Args:
            config: Thresholds and limits. Defaults if None.
            jinja_env: Optional custom Jinja2 environment.
        """
        self.config = config or ComposerConfig()
        self.env = jinja_env or jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._template = self.env.from_string(INSTRUCTION_TEMPLATE)

    def show_warning_banner(self, weights: WeightState) -> bool:
        return weights.warning_emphasis > self.config.warning_banner_threshold

    def show_examples(self, weights: WeightState) -> bool:
        return weights.example_density > self.config.example_density_threshold

    def build_template_context(self, context: InstructionContext) -> dict[str, Any]:
        """Convert an InstructionContext into template variables."""
        example_tools: list[str] = []
        if self.show_examples(context.weights):
            example_tools = list(context.available_tools)[: self.config.max_example_tools]

        limit = self.config.max_recent_failures
        failures = list(context.recent_failures)[-limit:] if limit else []

        return {
            "warning_banner": WARNING_BANNER if self.show_warning_banner(context.weights) else "",
            "syntax": context.syntax,
            "examples_header": EXAMPLES_HEADER,
            "example_tools": example_tools,
            "mandatory": context.mandatory,
            "trigger": context.trigger,
            "mistakes_header": MISTAKES_HEADER,
            "mistakes": [self._format_mistake(o) for o in failures],
        }

    def build(self, context: InstructionContext) -> str:
        """Render the instruction text."""
        return self._template.render(**self.build_template_context(context))

    def _format_mistake(self, outcome: Outcome) -> Mistake:
        return Mistake(
            preview=outcome.user_input[: self.config.failure_preview_chars],
            tools=", ".join(sorted(outcome.expected_tools)),
        )
