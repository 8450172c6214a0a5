"""promptbandit - adaptive tool-usage instructions for conversational agents.

Learns which instruction templates make a downstream language model actually
emit ``[TOOL:name args]`` directives, using Thompson sampling over a fixed
catalogue of templates plus a handful of monotone emphasis weights.
"""

__version__ = "0.1.0"

from promptbandit.optimizer import (
    OptimizerRegistry,
    PromptOptimizer,
    get_default_optimizer,
)

__all__ = [
    "OptimizerRegistry",
    "PromptOptimizer",
    "__version__",
    "get_default_optimizer",
]
