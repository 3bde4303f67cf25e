"""
Policy Engine for classifying shell commands proposed by an agent.

A command is decomposed into sub-commands, each sub-command is matched
against the rule categories in priority order, and the most severe verdict
wins. Anything the engine cannot verify is blocked.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..policies import DEFAULT_POLICIES, BasePolicy, Decision, PathPolicy, RuleCategory, most_severe
from .decomposer import MAX_DEPTH, SubCommand, decompose

logger = logging.getLogger(__name__)

UNVERIFIABLE_REASON = (
    "Could not verify command safety: {detail}. "
    "Rewrite the command with balanced quoting and a literal program name."
)
TOO_DEEP_REASON = (
    "Command too deeply nested to verify (more than {max_depth} levels of "
    "substitution or wrapping). Split it into separate, flatter commands."
)

Verdict = Tuple[Optional[SubCommand], Decision]


class PolicyEngine:
    """Evaluates command safety against an immutable, ordered rule table."""

    def __init__(
        self,
        policies: Optional[Sequence[BasePolicy]] = None,
        max_depth: int = MAX_DEPTH,
        path_policy: Optional[PathPolicy] = None,
    ):
        """
        Initialize the engine.

        Args:
            policies: Rule categories in priority order (default: DEFAULT_POLICIES)
            max_depth: Deepest substitution/wrapping level that is still verified
            path_policy: Policy for file edits (default: lock-file table)

        Raises:
            ValueError: If max_depth is smaller than 1
        """
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.policies: Tuple[BasePolicy, ...] = tuple(DEFAULT_POLICIES if policies is None else policies)
        self.max_depth = max_depth
        self.path_policy = path_policy or PathPolicy()

    def assess_command(self, command) -> Decision:
        """
        Evaluate a raw command string.

        Args:
            command: Command to evaluate; non-strings are coerced with str()

        Returns:
            The most severe Decision across all sub-commands
        """
        decision = most_severe(decision for _, decision in self.explain(command))
        if not decision.is_allowed:
            logger.info("%s: %s", decision.action.value, decision.reason)
        return decision

    evaluate = assess_command

    def explain(self, command) -> List[Verdict]:
        """
        Evaluate a command and return the verdict of every sub-command.

        Engine-level verdicts (nesting cap, unverifiable syntax) carry no
        sub-command. The nesting verdict comes first so its reason is the
        one reported; a syntax verdict comes last.
        """
        if command is None:
            return []
        if not isinstance(command, str):
            command = str(command)
        if not command.strip():
            return []
        try:
            return self._verdicts(command)
        except Exception:
            logger.exception("Unexpected error while evaluating command")
            return [(None, self._unverifiable("the command could not be analysed"))]

    def _verdicts(self, command: str) -> List[Verdict]:
        decomposition = decompose(command, self.max_depth)
        verdicts: List[Verdict] = []
        if decomposition.too_deep:
            verdicts.append((None, Decision.block(
                TOO_DEEP_REASON.format(max_depth=self.max_depth),
                rule_id="nesting-depth",
                category=RuleCategory.UNVERIFIABLE,
            )))
        for sub in decomposition.subcommands:
            verdicts.append((sub, self.assess_subcommand(sub)))
        if decomposition.malformed:
            verdicts.append((None, self._unverifiable(decomposition.problems[0])))
        return verdicts

    def assess_subcommand(self, sub: SubCommand) -> Decision:
        """
        Evaluate one sub-command.

        Categories are consulted in priority order; the first one with a
        matching rule decides. No match means Allow.
        """
        if sub.dynamic:
            return self._unverifiable(f"the program `{sub.path}` is only known at runtime", sub)
        for policy in self.policies:
            decision = policy.assess(sub)
            if decision is not None:
                return decision
        return Decision.allow(command=sub.display())

    def assess_path(self, path) -> Decision:
        """
        Evaluate a proposed file modification.

        Args:
            path: Target file path

        Returns:
            Block for generated lock files, Allow otherwise
        """
        try:
            decision = self.path_policy.assess(path)
        except Exception:
            logger.exception("Unexpected error while evaluating path")
            return self._unverifiable("the path could not be analysed")
        if decision.is_blocked:
            logger.info("block: %s", decision.reason)
        return decision

    evaluate_path = assess_path

    @staticmethod
    def _unverifiable(detail: str, sub: Optional[SubCommand] = None) -> Decision:
        return Decision.block(
            UNVERIFIABLE_REASON.format(detail=detail),
            rule_id="unverifiable",
            category=RuleCategory.UNVERIFIABLE,
            command=sub.display() if sub is not None else None,
        )

    def get_policy_names(self) -> List[str]:
        """
        List rule categories in evaluation order.

        Returns:
            List of category names
        """
        return [policy.get_policy_name() for policy in self.policies]

    def get_policy_info(self) -> List[Dict]:
        """
        Get a description of every category and its rules.

        Returns:
            One dictionary per category, in evaluation order
        """
        info = []
        for policy in self.policies:
            info.append({
                "name": policy.get_policy_name(),
                "description": policy.get_description(),
                "rules": [(rule.id, rule.severity.value) for rule in policy.get_rules()],
            })
        info.append({
            "name": self.path_policy.get_policy_name(),
            "description": self.path_policy.get_description(),
            "rules": [(rule.id, "block") for rule in self.path_policy.rules],
        })
        return info
