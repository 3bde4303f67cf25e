"""
Destructive operation policy.
Recursive deletes and world-writable permissions run, with a warning.
"""

import re

from .base_policy import BasePolicy, PolicyDecision, Rule, RuleCategory

_WORLD_WRITABLE = re.compile(r"^(?:0?777|[augo]*\+rwx)$")


def is_recursive_rm(sub) -> bool:
    if sub.executable != "rm":
        return False
    for arg in sub.arguments:
        if arg == "--":
            return False
        if arg == "--recursive":
            return True
        if arg.startswith("-") and not arg.startswith("--") and ("r" in arg or "R" in arg):
            return True
    return False


def is_world_writable_chmod(sub) -> bool:
    return sub.executable == "chmod" and any(_WORLD_WRITABLE.match(arg) for arg in sub.arguments)


class DestructiveOperationPolicy(BasePolicy):
    """Warns about irreversible or overly permissive file operations."""

    category = RuleCategory.DESTRUCTIVE_OPERATION
    rules = (
        Rule(
            id="recursive-delete",
            category=RuleCategory.DESTRUCTIVE_OPERATION,
            matcher=is_recursive_rm,
            severity=PolicyDecision.WARN,
            message="`rm {args}` deletes recursively and cannot be undone. Double-check the target paths.",
        ),
        Rule(
            id="world-writable",
            category=RuleCategory.DESTRUCTIVE_OPERATION,
            matcher=is_world_writable_chmod,
            severity=PolicyDecision.WARN,
            message="`chmod {args}` makes files world-writable. Prefer the narrowest mode that works (e.g. 755 or 644).",
        ),
    )

    def get_description(self) -> str:
        """Get policy description."""
        return "Warns on recursive rm and world-writable chmod"
