"""Pytest fixtures for promptbandit tests."""

import logging
import random
from collections.abc import Generator
from datetime import UTC, datetime

import pytest
import structlog

from promptbandit.core.config import OptimizerConfig
from promptbandit.learning.outcomes import Outcome
from promptbandit.optimizer import PromptOptimizer
from tests.helpers import make_outcome


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging state before and after each test.

    This ensures test isolation for logging configuration.
    """
    import promptbandit.cli.helpers as helpers

    helpers.reset_logging_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    helpers.reset_logging_state()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def rng() -> random.Random:
    """Deterministic random source."""
    return random.Random(1234)


@pytest.fixture
def optimizer(rng: random.Random) -> PromptOptimizer:
    """Default-config optimizer with a seeded random source."""
    return PromptOptimizer(rng=rng)


@pytest.fixture
def greedy_optimizer(rng: random.Random) -> PromptOptimizer:
    """Optimizer that never explores."""
    return PromptOptimizer(OptimizerConfig(exploration_rate=0.0), rng=rng)


@pytest.fixture
def miss() -> Outcome:
    """Tools expected, none called."""
    return make_outcome()


@pytest.fixture
def hit() -> Outcome:
    """Tools expected and called."""
    return make_outcome(
        response="[TOOL:search_my_code WorldModel]",
        actual=("search_my_code",),
    )


@pytest.fixture
def chat() -> Outcome:
    """No tools expected, none called."""
    return make_outcome(user_input="hello there", response="Hi!", expected=())
