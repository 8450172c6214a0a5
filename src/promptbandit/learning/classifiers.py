"""Keyword heuristics for expected and actual tool usage.

``detect_expected_tools`` guesses, from the user's wording alone, which tools
a good answer would need. ``extract_tool_calls`` reads the tool names the
model actually emitted as ``[TOOL:<name> <args>]`` markers. Both degrade to
empty results on empty input.
"""

from __future__ import annotations

import re

from promptbandit.core.constants import (
    TOOL_CALCULATOR,
    TOOL_MODIFY_CODE,
    TOOL_READ_FILE,
    TOOL_SEARCH_CODE,
    TOOL_WEB_RESEARCH,
)

ARITHMETIC_RE = re.compile(r"\d+\s*[+\-*/]\s*\d+")
TOOL_MARKER_RE = re.compile(r"\[TOOL:([^\s\]]+)")

# (tool, keywords); rules are independent and several may fire
KEYWORD_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (TOOL_SEARCH_CODE, ("search", "find", "is there")),
    (TOOL_READ_FILE, ("read", "show", "cat ")),
    (TOOL_MODIFY_CODE, ("modify", "change", "edit", "save")),
    (TOOL_CALCULATOR, ("calculate", "math")),
    (TOOL_WEB_RESEARCH, ("web", "search online", "look up")),
    (TOOL_SEARCH_CODE, ("world model", "architecture", "how does")),
)


def detect_expected_tools(user_input: str | None) -> frozenset[str]:
    """Tools the user's request most likely calls for.

    Args:
        user_input: Raw user text.

    Returns:
        Set of canonical tool names; empty when nothing matches.
    """
    if not user_input:
        return frozenset()

    text = user_input.lower()
    expected = {
        tool for tool, keywords in KEYWORD_RULES if any(kw in text for kw in keywords)
    }
    if ARITHMETIC_RE.search(text):
        expected.add(TOOL_CALCULATOR)
    return frozenset(expected)


def extract_tool_calls(response: str | None) -> list[str]:
    """Tool names following each ``[TOOL:`` marker, in order of appearance.

    The name runs up to the next whitespace or ``]``. Duplicates are kept.
    """
    if not response:
        return []
    return TOOL_MARKER_RE.findall(response)
