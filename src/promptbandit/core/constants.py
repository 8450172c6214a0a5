"""Global constants for promptbandit.

Centralizes magic numbers and vocabularies used throughout the codebase,
making them discoverable, consistent, and easy to modify.
"""

# =============================================================================
# Tool vocabulary
# =============================================================================

TOOL_SEARCH_CODE = "search_my_code"
TOOL_READ_FILE = "read_my_file"
TOOL_MODIFY_CODE = "modify_my_code"
TOOL_CALCULATOR = "calculator"
TOOL_WEB_RESEARCH = "web_research"

KNOWN_TOOLS = frozenset({
    TOOL_SEARCH_CODE,
    TOOL_READ_FILE,
    TOOL_MODIFY_CODE,
    TOOL_CALCULATOR,
    TOOL_WEB_RESEARCH,
})
"""Canonical identifiers of the downstream tool registry."""

# =============================================================================
# Pattern categories
# =============================================================================

CATEGORY_SYNTAX = "syntax"
CATEGORY_MANDATORY = "mandatory"
CATEGORY_TRIGGER = "trigger"

INSTRUCTION_CATEGORIES = (CATEGORY_SYNTAX, CATEGORY_MANDATORY, CATEGORY_TRIGGER)
"""Categories selected, in order, for every composed instruction."""

# =============================================================================
# Learning defaults
# =============================================================================

DEFAULT_EXPLORATION_RATE = 0.15
"""Probability of a uniform random pick instead of Thompson sampling."""

DEFAULT_OUTCOME_HISTORY = 100
"""Capacity of the recent-outcome buffer."""

DEFAULT_ATTRIBUTION_WINDOW_SECONDS = 300
"""Patterns used within this window are credited under window attribution."""

DEFAULT_FAILED_VARIANT_LIMIT = 100
"""Maximum failure descriptions retained per pattern."""

DEFAULT_LEARNING_RATE = 0.1

INITIAL_WEIGHT = 1.0

TOOL_SYNTAX_EMPHASIS_CAP = 2.0
EXAMPLE_DENSITY_CAP = 2.0
WARNING_EMPHASIS_CAP = 3.0

# =============================================================================
# Instruction composition
# =============================================================================

WARNING_BANNER_THRESHOLD = 1.5
"""warning_emphasis must strictly exceed this for the banner to appear."""

EXAMPLE_DENSITY_THRESHOLD = 1.3
"""example_density must strictly exceed this for the example block to appear."""

MAX_EXAMPLE_TOOLS = 5
MAX_RECENT_FAILURES = 3
FAILURE_PREVIEW_CHARS = 50
