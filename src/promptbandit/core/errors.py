"""Exception hierarchy for promptbandit.

All library exceptions inherit from PromptBanditError, enabling callers
to catch broad (PromptBanditError) or narrow (e.g., EmptyPatternStoreError).
Operations on valid input never raise; these signal misconfiguration or
misuse by the caller.
"""

from __future__ import annotations


class PromptBanditError(Exception):
    """Base exception for all promptbandit errors."""


class ConfigurationError(PromptBanditError):
    """Raised when the optimizer is assembled from an unusable configuration.

    These are fatal: the caller should surface them at startup rather than
    retry.
    """


class EmptyPatternStoreError(ConfigurationError):
    """Raised when a pattern store is constructed without any patterns.

    Selection always needs at least one candidate to fall back on.
    """


class DuplicatePatternError(ConfigurationError):
    """Raised when two patterns in one catalogue share the same id."""

    def __init__(self, pattern_id: str) -> None:
        super().__init__(f"Duplicate pattern id: {pattern_id!r}")
        self.pattern_id = pattern_id


class UnknownPatternError(PromptBanditError):
    """Raised when an outcome is attributed to a pattern id not in the store."""

    def __init__(self, pattern_id: str) -> None:
        super().__init__(f"Unknown pattern id: {pattern_id!r}")
        self.pattern_id = pattern_id
