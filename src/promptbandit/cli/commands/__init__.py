"""CLI command implementations."""

from .classify import detect, extract
from .instruct import instruct
from .replay import replay, stats

__all__ = [
    "detect",
    "extract",
    "instruct",
    "replay",
    "stats",
]
