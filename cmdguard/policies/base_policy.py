"""
Base policy interface for command safety evaluation.
Decisions, rule records and the category base class shared by every policy.
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.decomposer import SubCommand


class PolicyDecision(Enum):
    """Policy decision for command execution."""
    ALLOW = "allow"   # Execute silently
    WARN = "warn"     # Execute, surface the reason as a notice
    BLOCK = "block"   # Refuse execution

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    PolicyDecision.ALLOW: 0,
    PolicyDecision.WARN: 1,
    PolicyDecision.BLOCK: 2,
}


class RuleCategory(Enum):
    """Rule categories, declared in evaluation priority order."""
    PRIVILEGE_ESCALATION = "privilege-escalation"
    SECRET_FILE_ACCESS = "secret-file-access"
    INTERACTIVE_PROGRAM = "interactive-program"
    PACKAGE_MANAGER = "package-manager"
    VERSION_CONTROL_WRITE = "version-control-write"
    UNSAFE_REFERENCE = "unsafe-reference"
    DESTRUCTIVE_OPERATION = "destructive-operation"
    GENERATED_FILE = "generated-file"
    UNVERIFIABLE = "unverifiable"


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating a command or a path."""
    action: PolicyDecision
    reason: str = ""
    rule_id: Optional[str] = None
    category: Optional[RuleCategory] = None
    command: Optional[str] = None

    @classmethod
    def allow(cls, reason: str = "", **details) -> "Decision":
        return cls(PolicyDecision.ALLOW, reason, **details)

    @classmethod
    def warn(cls, reason: str, **details) -> "Decision":
        return cls(PolicyDecision.WARN, reason, **details)

    @classmethod
    def block(cls, reason: str, **details) -> "Decision":
        return cls(PolicyDecision.BLOCK, reason, **details)

    @property
    def is_allowed(self) -> bool:
        return self.action is PolicyDecision.ALLOW

    @property
    def is_warning(self) -> bool:
        return self.action is PolicyDecision.WARN

    @property
    def is_blocked(self) -> bool:
        return self.action is PolicyDecision.BLOCK


def most_severe(decisions) -> Decision:
    """
    Aggregate decisions: the most severe action wins.

    Among decisions of equal severity the first one keeps its place, so the
    reported reason is the first rule found at that severity.
    """
    result = Decision.allow()
    for decision in decisions:
        if decision.action.severity > result.action.severity:
            result = decision
    return result


@dataclass(frozen=True)
class Rule:
    """
    A named policy check over a single sub-command.

    ``message`` is a format string; it receives ``name`` (the executable
    basename), ``path`` (the executable as written) and ``args``.
    """
    id: str
    category: RuleCategory
    matcher: Callable[["SubCommand"], bool]
    message: str
    severity: PolicyDecision = PolicyDecision.BLOCK
    exceptions: Optional[Callable[["SubCommand"], bool]] = None

    def applies_to(self, sub: "SubCommand") -> bool:
        if not self.matcher(sub):
            return False
        if self.exceptions is not None and self.exceptions(sub):
            return False
        return True

    def decide(self, sub: "SubCommand") -> Decision:
        reason = self.message.format(
            name=sub.executable,
            path=sub.path,
            args=" ".join(sub.arguments),
        )
        return Decision(
            action=self.severity,
            reason=reason,
            rule_id=self.id,
            category=self.category,
            command=sub.display(),
        )


class BasePolicy(ABC):
    """Base class for a rule category: an ordered, immutable rule table."""

    category: RuleCategory
    rules: Tuple[Rule, ...] = ()

    def assess(self, sub: "SubCommand") -> Optional[Decision]:
        """
        Evaluate one sub-command against this category.

        Args:
            sub: The sub-command to evaluate

        Returns:
            The decision of the first matching, non-excepted rule, or None
            when nothing in this category matches
        """
        for rule in self.rules:
            if rule.applies_to(sub):
                return rule.decide(sub)
        return None

    def get_rules(self) -> Tuple[Rule, ...]:
        """Get the rule table for this policy."""
        return self.rules

    def get_policy_name(self) -> str:
        """Get the name of this policy."""
        return self.category.value

    def get_description(self) -> str:
        """Get a description of this policy."""
        return "Base policy class"
