"""Shared utilities for promptbandit CLI commands.

- Logging configuration state set by global options
- Optimizer construction from CLI options
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from promptbandit.core.config import LogConfig, OptimizerConfig
from promptbandit.core.errors import ConfigurationError
from promptbandit.core.logging import configure_logging
from promptbandit.optimizer import PromptOptimizer


class ErrorMessages:
    """Constants for CLI error messages."""

    CONFIG_LOAD_ERROR = "Error loading config"
    SCRIPT_LOAD_ERROR = "Error loading replay script"


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """CLI logging state set by the global options."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console"] = "console"
    configured: bool = False


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    _log_config.level = level.upper()  # type: ignore[assignment]


def set_log_file(path: Path | None) -> None:
    _log_config.file = path


def set_log_format(fmt: str) -> None:
    _log_config.format = fmt  # type: ignore[assignment]


def get_log_config() -> CliLoggingConfig:
    return _log_config


def configure_global_logging(console: Console) -> None:
    """Configure logging from the global CLI options, once per process.

    Raises:
        typer.Exit: If the options are invalid.
    """
    if _log_config.configured:
        return

    try:
        settings = LogConfig(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        console.print(f"[red]Logging configuration error:[/red] invalid {fields}")
        raise typer.Exit(1) from None

    configure_logging(
        level=settings.level,
        format=settings.format,
        file_path=settings.file_path,
    )
    _log_config.configured = True


def reset_logging_state() -> None:
    """Reset logging state so tests can reconfigure."""
    global _log_config
    _log_config = CliLoggingConfig()


# =============================================================================
# Optimizer construction
# =============================================================================


def load_optimizer(
    console: Console,
    config_path: Path | None,
    seed: int | None,
) -> PromptOptimizer:
    """Build an optimizer from an optional YAML config and seed override.

    Raises:
        typer.Exit: If the config cannot be loaded.
    """
    try:
        config = OptimizerConfig.from_yaml(config_path) if config_path else OptimizerConfig()
        if seed is not None:
            config = config.model_copy(update={"seed": seed})
        return PromptOptimizer(config)
    except (OSError, yaml.YAMLError, ValidationError, ConfigurationError) as e:
        console.print(f"[red]{ErrorMessages.CONFIG_LOAD_ERROR}:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None
