"""Core configuration, errors, constants and logging."""

from promptbandit.core.config import (
    AttributionPolicy,
    ComposerConfig,
    FallbackPolicy,
    LogConfig,
    OptimizerConfig,
    WeightConfig,
)
from promptbandit.core.errors import (
    ConfigurationError,
    DuplicatePatternError,
    EmptyPatternStoreError,
    PromptBanditError,
    UnknownPatternError,
)

__all__ = [
    "AttributionPolicy",
    "ComposerConfig",
    "ConfigurationError",
    "DuplicatePatternError",
    "EmptyPatternStoreError",
    "FallbackPolicy",
    "LogConfig",
    "OptimizerConfig",
    "PromptBanditError",
    "UnknownPatternError",
    "WeightConfig",
]
