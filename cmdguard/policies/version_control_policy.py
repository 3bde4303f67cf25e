"""
Version control policy.
Only read-only git subcommands run; anything that could write is blocked.
"""

from typing import Optional, Tuple

from .base_policy import BasePolicy, PolicyDecision, Rule, RuleCategory

GIT_READ_ONLY = frozenset({"status", "diff", "show", "log", "rev-parse", "ls-files"})
# Read-only only when listing (no further arguments)
GIT_LIST_ONLY = frozenset({"branch", "remote"})
# Global options that consume the following word
GIT_VALUE_OPTIONS = frozenset({"-C", "--git-dir", "--work-tree", "--namespace", "--super-prefix", "--exec-path"})
GIT_CONFIG_OPTIONS = frozenset({"-c", "--config-env"})


def parse_git(sub) -> Tuple[Optional[str], Tuple[str, ...], bool]:
    """
    Split a git invocation into its subcommand and the subcommand's arguments.

    Returns:
        (subcommand or None, remaining arguments, whether a config override was given)
    """
    args = sub.arguments
    override = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in GIT_CONFIG_OPTIONS:
            override = True
            i += 2
            continue
        if arg.startswith("--config-env=") or (arg.startswith("-c") and len(arg) > 2 and not arg.startswith("--")):
            override = True
        elif arg in GIT_VALUE_OPTIONS:
            i += 2
            continue
        elif not arg.startswith("-"):
            return arg, args[i + 1:], override
        i += 1
    return None, (), override


def has_config_override(sub) -> bool:
    return sub.executable == "git" and parse_git(sub)[2]


def is_read_only(sub) -> bool:
    if sub.executable != "git":
        return False
    subcommand, rest, _ = parse_git(sub)
    if subcommand is None:
        # bare git and flag-only forms such as --version only print
        return True
    if subcommand in GIT_READ_ONLY:
        return True
    return subcommand in GIT_LIST_ONLY and not rest


class VersionControlPolicy(BasePolicy):
    """Blocks git operations outside the read-only allowlist."""

    category = RuleCategory.VERSION_CONTROL_WRITE
    rules = (
        Rule(
            id="git-config-override",
            category=RuleCategory.VERSION_CONTROL_WRITE,
            matcher=has_config_override,
            message=(
                "`git {args}` is blocked: configuration overrides can turn any git command "
                "into arbitrary execution. Drop the `-c` option."
            ),
        ),
        Rule(
            id="git-read-only",
            category=RuleCategory.VERSION_CONTROL_WRITE,
            matcher=is_read_only,
            severity=PolicyDecision.ALLOW,
            message="`git {args}` is read-only.",
        ),
        Rule(
            id="git-write",
            category=RuleCategory.VERSION_CONTROL_WRITE,
            matcher=lambda sub: sub.executable == "git",
            message=(
                "`git {args}` is blocked: only read-only git commands are allowed "
                "(status, diff, show, log, rev-parse, ls-files, and branch/remote without arguments). "
                "Ask the user to make commits, checkouts and other changes."
            ),
        ),
    )

    def get_description(self) -> str:
        """Get policy description."""
        return "Allows read-only git commands and blocks everything else"
