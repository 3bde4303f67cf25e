"""
Path policy for file edits.
Generated lock files must be changed through their package manager.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .base_policy import Decision, RuleCategory


@dataclass(frozen=True)
class PathRule:
    """A protected file basename and the commands that regenerate it."""
    basename: str
    advice: str

    @property
    def id(self) -> str:
        return f"lock-file:{self.basename}"


LOCK_FILES: Tuple[PathRule, ...] = (
    PathRule("package-lock.json", "Use `bun install` or `bun update` (npm is not used in this project)."),
    PathRule("bun.lockb", "Use `bun install` or `bun update`."),
    PathRule("yarn.lock", "Use `yarn install` or `yarn upgrade`."),
    PathRule("pnpm-lock.yaml", "Use `pnpm install` or `pnpm update`."),
    PathRule("poetry.lock", "Use `poetry install` or `poetry update`."),
    PathRule("uv.lock", "Use `uv sync` or `uv lock`."),
    PathRule("Cargo.lock", "Use `cargo update`."),
    PathRule("Gemfile.lock", "Use `bundle install` or `bundle update`."),
    PathRule("flake.lock", "Use `nix flake update`."),
)

_SEPARATORS = re.compile(r"[\\/]")


def path_basename(path: str) -> str:
    """Final component of a path, splitting on both / and \\."""
    return _SEPARATORS.split(path)[-1]


class PathPolicy:
    """Blocks direct edits to generated lock files."""

    category = RuleCategory.GENERATED_FILE

    def __init__(self, rules: Tuple[PathRule, ...] = LOCK_FILES):
        self.rules = tuple(rules)
        self._by_name: Dict[str, PathRule] = {rule.basename: rule for rule in self.rules}

    def match(self, path: str) -> Optional[PathRule]:
        """Exact, case-sensitive basename lookup."""
        if not path:
            return None
        return self._by_name.get(path_basename(path))

    def assess(self, path) -> Decision:
        """
        Evaluate a proposed file modification.

        Args:
            path: Target file path; None or empty allows

        Returns:
            Block for a protected lock file, Allow otherwise
        """
        if path is None:
            return Decision.allow()
        rule = self.match(str(path))
        if rule is None:
            return Decision.allow()
        return Decision.block(
            f"`{rule.basename}` is a generated lock file and must not be edited directly. {rule.advice}",
            rule_id=rule.id,
            category=self.category,
            command=str(path),
        )

    def get_policy_name(self) -> str:
        return self.category.value

    def get_description(self) -> str:
        return "Blocks direct edits to generated lock files"
