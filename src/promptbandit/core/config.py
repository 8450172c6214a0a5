"""Configuration models for the prompt optimizer.

Pydantic models for loading and validating optimizer settings, either in code
or from YAML. Every field defaults to the behaviour of the built-in optimizer,
so ``OptimizerConfig()`` is always a valid configuration.

Example YAML:
    exploration_rate: 0.15
    attribution: explicit
    fallback: first_inserted
    seed: 42
    weights:
      learning_rate: 0.1
    composer:
      max_example_tools: 5
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from promptbandit.core.constants import (
    DEFAULT_ATTRIBUTION_WINDOW_SECONDS,
    DEFAULT_EXPLORATION_RATE,
    DEFAULT_FAILED_VARIANT_LIMIT,
    DEFAULT_LEARNING_RATE,
    DEFAULT_OUTCOME_HISTORY,
    EXAMPLE_DENSITY_CAP,
    EXAMPLE_DENSITY_THRESHOLD,
    FAILURE_PREVIEW_CHARS,
    MAX_EXAMPLE_TOOLS,
    MAX_RECENT_FAILURES,
    TOOL_SYNTAX_EMPHASIS_CAP,
    WARNING_BANNER_THRESHOLD,
    WARNING_EMPHASIS_CAP,
)


class AttributionPolicy(str, Enum):
    """How a recorded outcome is credited to patterns."""

    EXPLICIT = "explicit"
    """Only the pattern ids passed with the outcome are updated."""

    RECENT_WINDOW = "recent_window"
    """Every pattern used within the attribution window is updated."""


class FallbackPolicy(str, Enum):
    """Candidates returned when no pattern name matches a category."""

    FIRST_INSERTED = "first_inserted"
    """Only the first pattern of the catalogue."""

    ALL_PATTERNS = "all_patterns"
    """Every pattern of the catalogue."""


class WeightConfig(BaseModel):
    """Learning rate and caps of the emphasis weights.

    A successful tool-calling outcome raises tool_syntax_emphasis by
    learning_rate; a miss raises warning_emphasis by twice the learning rate
    and example_density by learning_rate. Weights never exceed their caps.
    """

    learning_rate: float = Field(
        default=DEFAULT_LEARNING_RATE,
        gt=0.0,
        le=1.0,
        description="Base increment applied to weights after an outcome.",
    )
    tool_syntax_emphasis_cap: float = Field(
        default=TOOL_SYNTAX_EMPHASIS_CAP,
        ge=1.0,
        description="Upper bound of tool_syntax_emphasis.",
    )
    example_density_cap: float = Field(
        default=EXAMPLE_DENSITY_CAP,
        ge=1.0,
        description="Upper bound of example_density.",
    )
    warning_emphasis_cap: float = Field(
        default=WARNING_EMPHASIS_CAP,
        ge=1.0,
        description="Upper bound of warning_emphasis.",
    )


class ComposerConfig(BaseModel):
    """Thresholds and limits used when composing an instruction."""

    warning_banner_threshold: float = Field(
        default=WARNING_BANNER_THRESHOLD,
        description="Banner is shown when warning_emphasis is strictly above this.",
    )
    example_density_threshold: float = Field(
        default=EXAMPLE_DENSITY_THRESHOLD,
        description="Example block is shown when example_density is strictly above this.",
    )
    max_example_tools: int = Field(
        default=MAX_EXAMPLE_TOOLS,
        ge=0,
        description="Maximum number of tools listed in the example block.",
    )
    max_recent_failures: int = Field(
        default=MAX_RECENT_FAILURES,
        ge=0,
        description="Maximum number of recent mistakes listed.",
    )
    failure_preview_chars: int = Field(
        default=FAILURE_PREVIEW_CHARS,
        gt=0,
        description="User input is truncated to this many characters in mistakes.",
    )


class OptimizerConfig(BaseModel):
    """Top-level optimizer configuration."""

    exploration_rate: float = Field(
        default=DEFAULT_EXPLORATION_RATE,
        ge=0.0,
        le=1.0,
        description="Probability of a uniform random pick instead of Thompson sampling.",
    )
    outcome_history: int = Field(
        default=DEFAULT_OUTCOME_HISTORY,
        gt=0,
        description="Capacity of the recent-outcome buffer.",
    )
    attribution: AttributionPolicy = Field(
        default=AttributionPolicy.EXPLICIT,
        description="Which patterns are credited or blamed for an outcome.",
    )
    attribution_window_seconds: float = Field(
        default=DEFAULT_ATTRIBUTION_WINDOW_SECONDS,
        gt=0,
        description="Look-back window used by the recent_window attribution policy.",
    )
    fallback: FallbackPolicy = Field(
        default=FallbackPolicy.FIRST_INSERTED,
        description="Candidates used when no pattern matches a category.",
    )
    failed_variant_limit: int = Field(
        default=DEFAULT_FAILED_VARIANT_LIMIT,
        gt=0,
        description="Maximum failure descriptions kept per pattern (oldest dropped).",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the optimizer's random source. None draws from the OS.",
    )
    weights: WeightConfig = Field(default_factory=WeightConfig)
    composer: ComposerConfig = Field(default_factory=ComposerConfig)

    @model_validator(mode="after")
    def _validate_thresholds_reachable(self) -> OptimizerConfig:
        if self.composer.example_density_threshold >= self.weights.example_density_cap:
            raise ValueError(
                f"example_density_threshold ({self.composer.example_density_threshold}) "
                f"must be below example_density_cap ({self.weights.example_density_cap})"
            )
        if self.composer.warning_banner_threshold >= self.weights.warning_emphasis_cap:
            raise ValueError(
                f"warning_banner_threshold ({self.composer.warning_banner_threshold}) "
                f"must be below warning_emphasis_cap ({self.weights.warning_emphasis_cap})"
            )
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> OptimizerConfig:
        """Load optimizer configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> OptimizerConfig:
        """Load optimizer configuration from a YAML string."""
        data = yaml.safe_load(yaml_str)
        return cls.model_validate(data or {})


class LogConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum log level to capture",
    )
    format: Literal["json", "console"] = Field(
        default="console",
        description="Output format: json for structured, console for human-readable",
    )
    file_path: Path | None = Field(
        default=None,
        description="Optional log file path; stderr when unset",
    )
