"""
Package manager policy.
Steers package management to the project's preferred toolchain (bun, uv).
"""

import re

from .base_policy import BasePolicy, PolicyDecision, Rule, RuleCategory
from .interactive_policy import is_node, is_python

# An interpreter inside a virtual environment directory is trusted
VENV_PYTHON = re.compile(r"(?:^|/)(?:\.venv|venv|env)/bin/python(?:[23](?:\.\d+)?)?$")
_PIP = re.compile(r"^pip(?:[23](?:\.\d+)?)?$")
PIP_MODULES = frozenset({"pip", "ensurepip"})


def is_venv_python(sub) -> bool:
    return is_python(sub.executable) and bool(VENV_PYTHON.search(sub.path))


def runs_pip(sub) -> bool:
    """``pip <subcommand>`` with any subcommand."""
    if not _PIP.match(sub.executable):
        return False
    return any(not arg.startswith("-") for arg in sub.arguments)


def runs_pip_module(sub) -> bool:
    """``python -m pip ...`` or ``python -m ensurepip``."""
    if not is_python(sub.executable):
        return False
    args = sub.arguments
    for i, arg in enumerate(args):
        if arg == "-m":
            return i + 1 < len(args) and args[i + 1] in PIP_MODULES
        if arg.startswith("-m") and len(arg) > 2:
            return arg[2:] in PIP_MODULES
        if not arg.startswith("-") or arg == "-c":
            # a script or inline code comes first; later words are its arguments
            return False
    return False


class PackageManagerPolicy(BasePolicy):
    """Blocks node/npm/npx and pip in favour of bun and uv."""

    category = RuleCategory.PACKAGE_MANAGER
    rules = (
        Rule(
            id="venv-python",
            category=RuleCategory.PACKAGE_MANAGER,
            matcher=is_venv_python,
            severity=PolicyDecision.ALLOW,
            message="`{path}` runs inside a virtual environment.",
        ),
        Rule(
            id="node",
            category=RuleCategory.PACKAGE_MANAGER,
            matcher=lambda sub: is_node(sub.executable),
            message="`{name}` is blocked. Use `bun` to run JavaScript (`bun run script.js`, `bun -e \"code\"`).",
        ),
        Rule(
            id="npm",
            category=RuleCategory.PACKAGE_MANAGER,
            matcher=lambda sub: sub.executable == "npm",
            message="`npm` is blocked. Use `bun` instead (`bun install`, `bun add <pkg>`, `bun run <script>`).",
        ),
        Rule(
            id="npx",
            category=RuleCategory.PACKAGE_MANAGER,
            matcher=lambda sub: sub.executable == "npx",
            message="`npx` is blocked. Use `bunx` instead.",
        ),
        Rule(
            id="pip",
            category=RuleCategory.PACKAGE_MANAGER,
            matcher=runs_pip,
            message=(
                "`{name}` is blocked. Manage Python packages with uv "
                "(`uv add <pkg>`, `uv sync`, `uv pip install <pkg>` inside a project venv)."
            ),
        ),
        Rule(
            id="python-pip",
            category=RuleCategory.PACKAGE_MANAGER,
            matcher=runs_pip_module,
            message=(
                "`{name} {args}` is blocked. Manage Python packages with uv "
                "(`uv add <pkg>`, `uv sync`), or run pip from the project's `.venv/bin/python`."
            ),
        ),
    )

    def get_description(self) -> str:
        """Get policy description."""
        return "Blocks node, npm, npx and pip; allows virtual-environment interpreters"
