"""Shared test helpers for promptbandit tests."""

from promptbandit.learning.outcomes import Outcome


def make_outcome(
    user_input: str = "search for the WorldModel class",
    response: str = "",
    expected: tuple[str, ...] = ("search_my_code",),
    actual: tuple[str, ...] = (),
) -> Outcome:
    """Build an Outcome with explicit expected and actual tools."""
    return Outcome(
        user_input=user_input,
        response=response,
        expected_tools=frozenset(expected),
        actual_tool_calls=frozenset(actual),
    )
