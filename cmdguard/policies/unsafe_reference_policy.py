"""
Unsafe reference policy.
Nix commands must name flakes with an explicit scheme, never a bare path.
"""

import re
from typing import List

from .base_policy import BasePolicy, Rule, RuleCategory

NIX_INSTALLABLE_COMMANDS = frozenset({"run", "build", "shell", "develop"})
SAFE_PREFIXES = ("path:", "github:", "git+https://", "git+ssh://")
_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")

# Option -> number of following words it consumes
NIX_VALUE_OPTIONS = {
    "--override-input": 2,
    "--arg": 2,
    "--argstr": 2,
    "--option": 2,
    "-f": 1,
    "--file": 1,
    "--expr": 1,
    "-I": 1,
    "--include": 1,
    "-o": 1,
    "--out-link": 1,
    "--profile": 1,
    "--inputs-from": 1,
    "--reference-lock-file": 1,
    "--output-lock-file": 1,
    "--update-input": 1,
    "--store": 1,
    "--eval-store": 1,
    "--extra-experimental-features": 1,
    "--experimental-features": 1,
    "-j": 1,
    "--max-jobs": 1,
    "--cores": 1,
    "--log-format": 1,
    "-k": 1,
    "--keep": 1,
    "-u": 1,
    "--unset": 1,
    "--phase": 1,
}
# Everything after these belongs to the program being run
END_OF_INSTALLABLES = frozenset({"--", "-c", "--command"})


def installables(sub) -> List[str]:
    """Return the flake references of a nix run/build/shell/develop invocation."""
    if sub.executable != "nix":
        return []
    args = sub.arguments
    subcommand = None
    refs: List[str] = []
    i = 0
    while i < len(args):
        arg = args[i]
        if subcommand is not None and arg in END_OF_INSTALLABLES:
            break
        if arg in NIX_VALUE_OPTIONS:
            i += 1 + NIX_VALUE_OPTIONS[arg]
            continue
        if arg.startswith("-"):
            i += 1
            continue
        if subcommand is None:
            if arg not in NIX_INSTALLABLE_COMMANDS:
                return []
            subcommand = arg
        else:
            refs.append(arg)
        i += 1
    return refs


def is_bare_path(ref: str) -> bool:
    """A reference is a bare path when it has no scheme and looks like a path."""
    if ref.startswith(SAFE_PREFIXES) or _SCHEME.match(ref):
        return False
    return "/" in ref or ref.startswith(".")


class UnsafeReferencePolicy(BasePolicy):
    """Blocks nix invocations that name a flake by bare filesystem path."""

    category = RuleCategory.UNSAFE_REFERENCE
    rules = (
        Rule(
            id="nix-bare-path",
            category=RuleCategory.UNSAFE_REFERENCE,
            matcher=lambda sub: any(is_bare_path(ref) for ref in installables(sub)),
            message=(
                "`nix {args}` uses a bare path as a flake reference, which resolves "
                "ambiguously. Prefix it with `path:` (e.g. `nix run path:./flake#app`) "
                "or use a `github:`, `git+https://` or `git+ssh://` reference."
            ),
        ),
    )

    def get_description(self) -> str:
        """Get policy description."""
        return "Blocks nix run/build/shell/develop with bare-path flake references"
