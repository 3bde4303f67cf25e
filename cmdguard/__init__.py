"""Safety policy engine for shell commands and file edits proposed by autonomous agents."""

from .core.policy import DEFAULT_ENGINE, format_notice, pre_edit_hook, pre_execution_hook
from .core.policy_engine import PolicyEngine
from .policies import Decision, PolicyDecision, RuleCategory

__version__ = "0.1.0"


def evaluate(command) -> Decision:
    """Classify a shell command as Allow, Warn or Block."""
    return DEFAULT_ENGINE.assess_command(command)


def evaluate_path(path) -> Decision:
    """Classify a proposed file edit as Allow or Block."""
    return DEFAULT_ENGINE.assess_path(path)


__all__ = [
    "evaluate",
    "evaluate_path",
    "pre_execution_hook",
    "pre_edit_hook",
    "format_notice",
    "PolicyEngine",
    "Decision",
    "PolicyDecision",
    "RuleCategory",
    "__version__",
]
