"""
Host boundary for the policy engine.

DESIGN:
    An agent runtime calls ``pre_execution_hook`` before running a shell
    command and ``pre_edit_hook`` before writing a file. Both return a
    Decision: Block means refuse and show the reason, Warn means proceed and
    show the reason as a notice, Allow means proceed silently.

    Hooks that communicate through exit codes use ``exit_code_for``:
    0 for Allow and Warn, 2 for Block (the reason goes to stderr).
"""

from typing import Optional

from ..policies import Decision, PolicyDecision
from .policy_engine import PolicyEngine

# Rule tables are immutable, so one engine serves every caller and thread
DEFAULT_ENGINE = PolicyEngine()

HOOK_EXIT_CODES = {
    PolicyDecision.ALLOW: 0,
    PolicyDecision.WARN: 0,
    PolicyDecision.BLOCK: 2,
}


def pre_execution_hook(command, engine: Optional[PolicyEngine] = None) -> Decision:
    """Evaluate a shell command before the host executes it."""
    return (engine or DEFAULT_ENGINE).assess_command(command)


def pre_edit_hook(path, engine: Optional[PolicyEngine] = None) -> Decision:
    """Evaluate a file path before the host writes to it."""
    return (engine or DEFAULT_ENGINE).assess_path(path)


def format_notice(decision: Decision) -> str:
    """
    Render the text a host should surface for a decision.

    Returns:
        "Blocked: <reason>", "Warning: <reason>", or "" for Allow
    """
    if decision.is_blocked:
        return f"Blocked: {decision.reason}"
    if decision.is_warning:
        return f"Warning: {decision.reason}"
    return ""


def exit_code_for(decision: Decision) -> int:
    return HOOK_EXIT_CODES[decision.action]
