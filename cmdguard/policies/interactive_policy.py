"""
Interactive program policy.
Blocks editors, pagers, REPLs and shells that would wait for a terminal.
"""

import re
from typing import FrozenSet

from .base_policy import BasePolicy, Rule, RuleCategory

EDITORS = frozenset({"vim", "vi", "nvim", "nano", "emacs", "pico", "ed"})
PAGERS = frozenset({"less", "more", "most", "pg", "man"})
SHELLS = frozenset({"bash", "zsh", "sh", "fish", "dash", "ksh", "tcsh", "csh"})
# REPLs with no non-interactive exception
ALWAYS_INTERACTIVE_REPLS = frozenset({"irb", "ghci", "ipython"})

_PYTHON = re.compile(r"^python(?:[23](?:\.\d+)?)?$")
NODE_NAMES = frozenset({"node", "nodejs"})

# Options that supply the code to run (and so rule out a REPL)
PYTHON_CODE_OPTIONS = frozenset({"-c", "-m"})
NODE_CODE_OPTIONS = frozenset({"-e", "--eval", "-p", "--print"})
# Options that consume the following word
PYTHON_VALUE_OPTIONS = frozenset({"-W", "-X", "--check-hash-based-pycs"})
NODE_VALUE_OPTIONS = frozenset({
    "-r", "--require", "--import", "--loader", "--experimental-loader",
    "-C", "--conditions", "--inspect-port", "--title", "--input-type",
})
# Options that print and exit
PYTHON_INFO_OPTIONS = frozenset({"--version", "-V", "-VV", "--help", "-h", "-?", "--help-all", "--help-env", "--help-xoptions"})
NODE_INFO_OPTIONS = frozenset({"--version", "-v", "--help", "-h", "--v8-options"})
# Options that force a REPL even with code
PYTHON_FORCE_OPTIONS = frozenset({"-i"})
NODE_FORCE_OPTIONS = frozenset({"-i", "--interactive"})


def is_python(name: str) -> bool:
    return bool(_PYTHON.match(name))


def is_node(name: str) -> bool:
    return name in NODE_NAMES


def _starts_repl(
    sub,
    code_options: FrozenSet[str],
    value_options: FrozenSet[str],
    info_options: FrozenSet[str],
    force_options: FrozenSet[str],
) -> bool:
    """
    Decide whether an interpreter invocation ends up in an interactive REPL.

    A script path, or a code option with its value, means the interpreter
    runs non-interactively unless a force option asks for a REPL afterwards.
    Without either the interpreter reads its program from stdin, which is
    treated like a REPL even when stdin is a pipe or a file: that code never
    appears on the command line and cannot be checked.
    """
    args = sub.arguments
    forced = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in force_options:
            forced = True
        elif arg in info_options:
            return False
        elif arg in code_options:
            return forced or i + 1 >= len(args)
        elif arg.split("=", 1)[0] in code_options and "=" in arg:
            return forced
        elif len(arg) > 2 and arg[:2] in code_options:
            return forced
        elif arg == "-":
            return True
        elif arg in value_options:
            i += 1
        elif not arg.startswith("-"):
            return forced
        i += 1
    return True


def python_starts_repl(sub) -> bool:
    return _starts_repl(sub, PYTHON_CODE_OPTIONS, PYTHON_VALUE_OPTIONS, PYTHON_INFO_OPTIONS, PYTHON_FORCE_OPTIONS)


def node_starts_repl(sub) -> bool:
    return _starts_repl(sub, NODE_CODE_OPTIONS, NODE_VALUE_OPTIONS, NODE_INFO_OPTIONS, NODE_FORCE_OPTIONS)


def is_interactive_shell(sub) -> bool:
    """A shell with no script (flags only), or with -i or -s, is interactive."""
    if sub.executable not in SHELLS:
        return False
    args = sub.arguments
    for i, arg in enumerate(args):
        if arg in ("--version", "--help"):
            return False
        if arg == "--":
            return i + 1 >= len(args)
        if arg == "-":
            return True
        if arg.startswith("--"):
            continue
        if arg[:1] in ("-", "+") and len(arg) > 1:
            if "i" in arg[1:] or "s" in arg[1:]:
                return True
            continue
        return False
    return True


class InteractiveProgramPolicy(BasePolicy):
    """Blocks programs that wait for a terminal and would hang the agent."""

    category = RuleCategory.INTERACTIVE_PROGRAM
    rules = (
        Rule(
            id="interactive-editor",
            category=RuleCategory.INTERACTIVE_PROGRAM,
            matcher=lambda sub: sub.executable in EDITORS,
            message=(
                "`{name}` is blocked because it opens an interactive editor that would hang. "
                "Use the read, write and edit tools to change files instead."
            ),
        ),
        Rule(
            id="interactive-pager",
            category=RuleCategory.INTERACTIVE_PROGRAM,
            matcher=lambda sub: sub.executable in PAGERS,
            message=(
                "`{name}` is blocked because it opens an interactive pager that would hang. "
                "Use the read tool or `cat` to view files, and `<command> --help` for documentation."
            ),
        ),
        Rule(
            id="interactive-shell",
            category=RuleCategory.INTERACTIVE_PROGRAM,
            matcher=is_interactive_shell,
            message=(
                "`{name}` without a script starts an interactive shell or reads "
                "unverifiable commands from stdin. Run the specific commands directly, "
                "or use `{name} -c \"...\"` or `{name} script.sh`."
            ),
        ),
        Rule(
            id="python-repl",
            category=RuleCategory.INTERACTIVE_PROGRAM,
            matcher=lambda sub: is_python(sub.executable),
            exceptions=lambda sub: not python_starts_repl(sub),
            message=(
                "`{name}` without a script starts an interactive REPL that would hang, "
                "or runs code from stdin that cannot be checked. "
                "Use `{name} -c \"code\"` for one-liners or `{name} script.py` for scripts."
            ),
        ),
        Rule(
            id="node-repl",
            category=RuleCategory.INTERACTIVE_PROGRAM,
            matcher=lambda sub: is_node(sub.executable),
            exceptions=lambda sub: not node_starts_repl(sub),
            message=(
                "`{name}` without a script starts an interactive REPL that would hang, "
                "or runs code from stdin that cannot be checked. "
                "Use `bun -e \"code\"` for one-liners or `bun run script.js` for scripts."
            ),
        ),
        Rule(
            id="interactive-repl",
            category=RuleCategory.INTERACTIVE_PROGRAM,
            matcher=lambda sub: sub.executable in ALWAYS_INTERACTIVE_REPLS,
            message=(
                "`{name}` is blocked because it launches an interactive REPL. "
                "Run a script file or a one-liner with the language's non-interactive interpreter instead."
            ),
        ),
    )

    def get_description(self) -> str:
        """Get policy description."""
        return "Blocks editors, pagers, bare shells and REPLs that would hang"
