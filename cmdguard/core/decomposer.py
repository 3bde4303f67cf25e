"""
Decomposition of a raw command string into sub-commands.

Every construct that can hide a command is unwrapped: control operators and
pipes, command and process substitution, ``eval``/``exec``, ``sh -c``
payloads, ``trap`` handlers, heredocs fed to a shell, ``find -exec`` and a
handful of transparent prefix wrappers (``env``, ``nohup``, ``timeout`` ...).

Unwrapping runs over an explicit worklist of ``(text, depth)`` items rather
than recursive calls. Each nested payload is pushed one level deeper, and a
payload beyond ``max_depth`` is not scanned: the decomposition is flagged
``too_deep`` instead.
"""

import logging
import re
import shlex
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .parser import Redirect, Segment, Word, scan

logger = logging.getLogger(__name__)

MAX_DEPTH = 8

_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\+?=")
# {a,b} and {1..3} expand into several words at runtime
_BRACE_EXPANSION = re.compile(r"\{[^{}\s]*(?:,|\.\.)[^{}\s]*\}")

# Keywords that may precede a command in the same segment
PREFIX_KEYWORDS = frozenset({"if", "then", "else", "elif", "do", "while", "until", "!", "{", "coproc"})
# Keywords that close a construct and never start a command
CLOSING_KEYWORDS = frozenset({"fi", "done", "esac", "}"})
# Heads whose segment holds no command (their body follows a separator)
NON_COMMAND_KEYWORDS = frozenset({"for", "select", "case"})

PAYLOAD_SHELLS = frozenset({"bash", "sh", "zsh", "dash", "ksh", "fish"})
# Shell options that consume the following word
_SHELL_VALUE_OPTIONS = frozenset({"-o", "+o", "-O", "+O", "--rcfile", "--init-file"})

FIND_EXEC_ACTIONS = frozenset({"-exec", "-execdir", "-ok", "-okdir"})

# Wrapper -> options that take a separate value
WRAPPER_VALUE_OPTIONS: Dict[str, frozenset] = {
    "command": frozenset(),
    "builtin": frozenset(),
    "nohup": frozenset(),
    "time": frozenset({"-f", "--format", "-o", "--output"}),
    "nice": frozenset({"-n", "--adjustment"}),
    "timeout": frozenset({"-s", "--signal", "-k", "--kill-after"}),
    "stdbuf": frozenset({"-i", "-o", "-e"}),
    "xargs": frozenset({"-a", "-d", "-E", "-e", "-I", "-i", "-L", "-l", "-n", "-P", "-s",
                        "--arg-file", "--delimiter", "--max-args", "--max-procs",
                        "--max-lines", "--max-chars", "--process-slot-var"}),
    "exec": frozenset({"-a"}),
    "env": frozenset({"-u", "--unset", "-C", "--chdir"}),
    "watch": frozenset({"-n", "--interval"}),
}
# Wrappers that run their arguments as a command, in the same process image
TRANSPARENT_WRAPPERS = frozenset(WRAPPER_VALUE_OPTIONS) - {"watch"}
# Wrappers with a leading positional that is not the command
_WRAPPER_POSITIONALS = {"timeout": 1}


@dataclass(frozen=True)
class SubCommand:
    """One executable invocation extracted from a larger command."""
    executable: str
    arguments: Tuple[str, ...] = ()
    env_prefix: Dict[str, str] = field(default_factory=dict)
    has_substitution: bool = False
    path: str = ""
    redirects: Tuple[Redirect, ...] = ()
    stdin_redirected: bool = False
    dynamic: bool = False

    def display(self) -> str:
        """Render the sub-command as a re-parseable shell string."""
        return shlex.join((self.path or self.executable,) + self.arguments)


@dataclass
class Decomposition:
    """Result of decomposing one command string."""
    subcommands: List[SubCommand] = field(default_factory=list)
    problems: List[str] = field(default_factory=list)
    too_deep: bool = False
    depth: int = 0

    @property
    def malformed(self) -> bool:
        return bool(self.problems)


def _basename(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1] if path.rstrip("/") else path


def _is_dynamic(word: Word) -> bool:
    """True when the final path segment of a word is only known at runtime."""
    if _BRACE_EXPANSION.search(word.raw):
        return True
    if not word.dynamic:
        return False
    tail = word.text.rsplit("/", 1)[-1]
    return any(c in tail for c in "$`)}")


def _skip_options(name: str, words: List[Word], payloads: List[str], env: Dict[str, str]) -> List[Word]:
    """Drop a transparent wrapper's own options and return the wrapped command."""
    value_options = WRAPPER_VALUE_OPTIONS[name]
    positionals = _WRAPPER_POSITIONALS.get(name, 0)
    i = 0
    while i < len(words):
        text = words[i].text
        if text == "--":
            i += 1
            break
        if name == "env" and _ASSIGNMENT.match(words[i].raw):
            key, _, value = text.partition("=")
            env[key.rstrip("+")] = value
            i += 1
            continue
        if name == "env" and text in ("-S", "--split-string") and i + 1 < len(words):
            payloads.append(words[i + 1].text)
            return []
        if name == "env" and text.startswith("--split-string="):
            payloads.append(text.split("=", 1)[1])
            return []
        if name == "command" and text in ("-v", "-V"):
            # lookup only, nothing is executed
            return []
        if text.startswith("-") and len(text) > 1:
            if text in value_options:
                i += 2
            else:
                i += 1
            continue
        if positionals:
            positionals -= 1
            i += 1
            continue
        break
    return words[i:]


def _shell_payload(words: List[Word]) -> Optional[str]:
    """
    Return the ``-c`` payload of a shell invocation, if any.

    ``-c`` only marks the first operand as the command string, so any options
    that follow it (``bash -c -e 'cmd'``) and a ``--`` terminator are skipped.
    """
    seen_c = False
    i = 0
    while i < len(words):
        text = words[i].text
        if text == "--":
            i += 1
            break
        if not text or text[0] not in "-+" or len(text) == 1:
            break
        if text in _SHELL_VALUE_OPTIONS:
            i += 2
            continue
        if not text.startswith("--") and "c" in text[1:]:
            seen_c = True
        i += 1
    if seen_c and i < len(words):
        return words[i].text
    return None


def _trap_action(words: List[Word]) -> Optional[str]:
    """Return the command string ``trap`` installs as a signal handler, if any."""
    i = 0
    while i < len(words) and words[i].text in ("-l", "-p", "-lp", "-pl"):
        i += 1
    if i < len(words) and words[i].text == "--":
        i += 1
    operands = [w.text for w in words[i:]]
    # a lone operand resets that signal; "-" resets too
    if len(operands) < 2 or operands[0] in ("", "-"):
        return None
    return operands[0]


def _find_exec_payloads(words: List[Word]) -> List[str]:
    payloads = []
    i = 0
    while i < len(words):
        if words[i].text in FIND_EXEC_ACTIONS:
            j = i + 1
            while j < len(words) and words[j].text not in (";", "+"):
                j += 1
            body = [w.text for w in words[i + 1:j]]
            if body:
                payloads.append(shlex.join(body))
            i = j
        i += 1
    return payloads


def _build(segment: Segment) -> Tuple[Optional[SubCommand], List[str]]:
    """
    Turn one scanned segment into a sub-command.

    Returns:
        (sub-command or None, nested payloads to decompose one level deeper)
    """
    words = list(segment.words)
    env: Dict[str, str] = {}
    payloads: List[str] = []
    substituted = any(w.substitution for w in words)

    while words:
        head = words[0]
        if _ASSIGNMENT.match(head.raw):
            key, _, value = head.text.partition("=")
            env[key.rstrip("+")] = value
            words.pop(0)
            continue
        if not head.quoted:
            if head.text in PREFIX_KEYWORDS or head.text in CLOSING_KEYWORDS:
                words.pop(0)
                continue
            if head.text == "function":
                del words[:2]
                continue
            if head.text in NON_COMMAND_KEYWORDS:
                return None, payloads
        name = _basename(head.text)
        if name in TRANSPARENT_WRAPPERS and not head.dynamic:
            rest = _skip_options(name, words[1:], payloads, env)
            if rest or payloads:
                words = rest
                continue
            if name in ("exec", "command", "builtin") and len(words) == 1:
                return None, payloads
        if name in ("eval", "watch") and not head.dynamic:
            rest = words[1:]
            if name == "watch":
                rest = _skip_options("watch", rest, payloads, env)
            if rest:
                payloads.append(" ".join(w.text for w in rest))
            return None, payloads
        if name == "trap" and not head.dynamic:
            action = _trap_action(words[1:])
            if action:
                payloads.append(action)
            return None, payloads
        if name in PAYLOAD_SHELLS and not head.dynamic:
            payload = _shell_payload(words[1:])
            if payload is not None:
                payloads.append(payload)
                return None, payloads
            if segment.heredocs and all(w.text[:1] in ("-", "+") for w in words[1:]):
                payloads.extend(body for body in segment.heredocs if body.strip())
                return None, payloads
        break

    if not words:
        return None, payloads

    head = words[0]
    if head.quoted and not head.dynamic and len(head.text.split()) > 1:
        # exec "node --version": a quoted command line in executable position
        payloads.append(" ".join(w.text for w in words))
        return None, payloads
    name = _basename(head.text)
    if name == "find":
        payloads.extend(_find_exec_payloads(words[1:]))
    sub = SubCommand(
        executable=name,
        arguments=tuple(w.text for w in words[1:]),
        env_prefix=env,
        has_substitution=substituted,
        path=head.text,
        redirects=tuple(segment.redirects),
        stdin_redirected=segment.stdin_redirected,
        dynamic=_is_dynamic(head),
    )
    return sub, payloads


def decompose(command: str, max_depth: int = MAX_DEPTH) -> Decomposition:
    """
    Decompose a raw command string into its sub-commands.

    Args:
        command: Raw command text (may be empty, multi-line or malformed)
        max_depth: Deepest nesting level that is still scanned

    Returns:
        Decomposition with sub-commands in breadth-first order, any syntax
        problems, and whether the nesting cap was exceeded
    """
    result = Decomposition()
    worklist = deque([(command, 0)])
    while worklist:
        text, depth = worklist.popleft()
        if depth > max_depth:
            result.too_deep = True
            continue
        result.depth = max(result.depth, depth)
        scanned = scan(text)
        result.problems.extend(scanned.problems)
        for body in scanned.substitutions:
            worklist.append((body, depth + 1))
        for segment in scanned.segments:
            sub, payloads = _build(segment)
            if sub is not None:
                result.subcommands.append(sub)
            for payload in payloads:
                worklist.append((payload, depth + 1))

    logger.debug(
        "Decomposed %d sub-command(s), depth %d%s",
        len(result.subcommands),
        result.depth,
        " (too deep)" if result.too_deep else "",
    )
    return result
