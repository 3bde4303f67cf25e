"""
Privilege escalation policy.
Evaluated first: a privilege escalation tool is blocked wherever it appears.
"""

from .base_policy import BasePolicy, Rule, RuleCategory

PRIVILEGE_COMMANDS = frozenset({"sudo", "su", "doas", "pkexec"})


class PrivilegeEscalationPolicy(BasePolicy):
    """Highest priority - privilege escalation, no exceptions."""

    category = RuleCategory.PRIVILEGE_ESCALATION
    rules = (
        Rule(
            id="privilege-escalation",
            category=RuleCategory.PRIVILEGE_ESCALATION,
            matcher=lambda sub: sub.executable in PRIVILEGE_COMMANDS,
            message=(
                "`{name}` is blocked to prevent privilege escalation. "
                "Ask the system administrator to perform this action on your behalf."
            ),
        ),
    )

    def get_description(self) -> str:
        """Get policy description."""
        return "Blocks sudo, su, doas and pkexec"
