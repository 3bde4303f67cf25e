"""Quote-aware shell scanner.

Splits a raw command string into segments, one per simple command, without
a shell grammar. Control operators and redirections are only recognized
outside quotes. The contents of command substitutions are not scanned here:
they are collected as raw strings for the decomposer to scan at the next
nesting level, so every call does a single linear pass over its input.

Malformed input never raises. An unterminated quote or substitution swallows
the rest of the string as one span and the result is flagged ``malformed``.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

# Longest first so "&&" wins over "&"
CONTROL_OPERATORS = ("&&", "||", ";;", ";&", "|&", "|", ";", "&", "\n", "(", ")")
REDIRECT_OPERATORS = (
    "&>>", "&>", "<<<", "<<-", "<<", "<>", ">>", ">|", ">&", "<&", ">", "<",
)
HEREDOC_OPERATORS = ("<<", "<<-")
STDIN_OPERATORS = ("<", "<<", "<<-", "<<<", "<>")
# Keywords that may come before "case" in the same segment
_CASE_LEADERS = frozenset({"if", "then", "else", "elif", "do", "while", "until", "!", "{"})

_DUP_TARGET = re.compile(r"[ \t]*([0-9]+-?|-)(?=[\s;&|()<>]|$)")
_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_BACKTICK_ESCAPE = re.compile(r"\\([\\`$])")


@dataclass
class Word:
    """One shell word: quotes removed, expansions kept as written."""
    text: str
    raw: str
    quoted: bool = False
    dynamic: bool = False
    substitution: bool = False


@dataclass
class Redirect:
    fd: str
    operator: str
    target: str

    @property
    def reads_stdin(self) -> bool:
        return self.fd in ("", "0") and self.operator in STDIN_OPERATORS


@dataclass
class Segment:
    """The words and redirections of one simple command."""
    words: List[Word] = field(default_factory=list)
    redirects: List[Redirect] = field(default_factory=list)
    heredocs: List[str] = field(default_factory=list)
    piped_stdin: bool = False

    def is_empty(self) -> bool:
        return not self.words and not self.redirects

    @property
    def stdin_redirected(self) -> bool:
        return self.piped_stdin or any(r.reads_stdin for r in self.redirects)


@dataclass
class ScanResult:
    segments: List[Segment] = field(default_factory=list)
    substitutions: List[str] = field(default_factory=list)
    problems: List[str] = field(default_factory=list)

    @property
    def malformed(self) -> bool:
        return bool(self.problems)


def matching_close(text: str, start: int, closer: str) -> int:
    """
    Find the index closing a construct opened just before ``start``.

    Args:
        text: Text to search
        start: Index of the first character inside the construct
        closer: ``)`` for ``$(``/``(``, ``"`` for double quotes, `````` for backticks

    Returns:
        Index of the closing character, or -1 if the construct never closes

    Nesting is tracked with an explicit stack, so deeply nested input costs
    no call-stack depth.
    """
    stack = [closer]
    i = start
    n = len(text)
    while i < n:
        c = text[i]
        top = stack[-1]
        if c == "\\":
            i += 2
            continue
        if top == "`":
            if c == "`":
                stack.pop()
                if not stack:
                    return i
            i += 1
            continue
        if top == '"':
            if c == '"':
                stack.pop()
                if not stack:
                    return i
            elif c == "$" and text.startswith("(", i + 1):
                stack.append(")")
                i += 1
            elif c == "`":
                stack.append("`")
            i += 1
            continue
        # inside parentheses
        if c == "'":
            end = text.find("'", i + 1)
            if end < 0:
                return -1
            i = end + 1
            continue
        if c == "#" and (i == start or text[i - 1] in " \t\n;|&("):
            end = text.find("\n", i)
            if end < 0:
                return -1
            i = end
            continue
        if c == '"' or c == "`":
            stack.append(c)
        elif c == "(":
            stack.append(")")
        elif c == ")":
            stack.pop()
            if not stack:
                return i
        i += 1
    return -1


class _Scanner:
    """Single-pass scanner state over one command string."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.i = 0
        self.result = ScanResult()
        self.segment = Segment()
        self._parts: List[str] = []
        self._start: Optional[int] = None
        self._quoted = False
        self._dynamic = False
        self._substitution = False
        self._pending: Optional[Tuple[str, str]] = None
        self._heredocs: List[Tuple[Segment, str, bool, bool]] = []
        self._parens = 0
        self._case_depth = 0

    # -- word building -------------------------------------------------

    def _begin(self) -> None:
        if self._start is None:
            self._start = self.i

    def _reset_word(self) -> None:
        self._parts = []
        self._start = None
        self._quoted = False
        self._dynamic = False
        self._substitution = False

    def _end_word(self) -> None:
        if self._start is None:
            return
        word = Word(
            text="".join(self._parts),
            raw=self.text[self._start:self.i],
            quoted=self._quoted,
            dynamic=self._dynamic,
            substitution=self._substitution,
        )
        self._reset_word()
        if self._pending is None:
            if not word.quoted and all(w.text in _CASE_LEADERS for w in self.segment.words):
                if word.text == "case":
                    self._case_depth += 1
                elif word.text == "esac" and self._case_depth:
                    self._case_depth -= 1
            self.segment.words.append(word)
            return
        fd, operator = self._pending
        self._pending = None
        self.segment.redirects.append(Redirect(fd, operator, word.text))
        if operator in HEREDOC_OPERATORS:
            self._heredocs.append((self.segment, word.text, word.quoted, operator == "<<-"))

    def _end_segment(self) -> None:
        self._end_word()
        if self.segment.is_empty():
            return
        self.result.segments.append(self.segment)
        self.segment = Segment()

    def _problem(self, message: str) -> None:
        self.result.problems.append(message)

    # -- main loop -----------------------------------------------------

    def scan(self) -> ScanResult:
        text = self.text
        n = len(text)
        while self.i < n:
            c = text[self.i]
            if c in " \t\r":
                self._end_word()
                self.i += 1
            elif c == "\\":
                self._escape()
            elif c == "'":
                self._single_quote()
            elif c == '"':
                self._begin()
                self._quoted = True
                self.i += 1
                if not self._read_expanding('"'):
                    self._problem("unterminated double quote")
            elif c == "`":
                self._backtick()
            elif c == "$":
                self._dollar()
            elif c == "#" and self._start is None:
                end = text.find("\n", self.i)
                self.i = n if end < 0 else end
            elif c in "<>" and text.startswith("(", self.i + 1):
                self._process_substitution()
            elif c in "<>" or (c == "&" and text.startswith(">", self.i + 1)):
                self._redirect()
            elif c in ";&|()\n":
                self._control()
            else:
                self._begin()
                self._parts.append(c)
                self.i += 1
        self._end_word()
        if self._pending is not None:
            self._problem("redirection without a target")
            self._pending = None
        self._end_segment()
        for segment, _, _, _ in self._heredocs:
            segment.heredocs.append("")
        if self._parens:
            self._problem("unclosed parenthesis")
        return self.result

    def _escape(self) -> None:
        nxt = self.text[self.i + 1:self.i + 2]
        if nxt == "\n":
            self.i += 2
            return
        if not nxt:
            self._problem("trailing escape character")
            self.i += 1
            return
        self._begin()
        self._quoted = True
        self._parts.append(nxt)
        self.i += 2

    def _single_quote(self) -> None:
        self._begin()
        self._quoted = True
        end = self.text.find("'", self.i + 1)
        if end < 0:
            self._parts.append(self.text[self.i + 1:])
            self.i = len(self.text)
            self._problem("unterminated single quote")
            return
        self._parts.append(self.text[self.i + 1:end])
        self.i = end + 1

    def _read_expanding(self, terminator: Optional[str]) -> bool:
        """Read double-quote style text up to ``terminator`` (None: to the end)."""
        text = self.text
        n = len(text)
        while self.i < n:
            c = text[self.i]
            if terminator is not None and c == terminator:
                self.i += 1
                return True
            if c == "\\":
                nxt = text[self.i + 1:self.i + 2]
                if nxt == "\n":
                    self.i += 2
                elif nxt in ('"', "\\", "$", "`"):
                    self._parts.append(nxt)
                    self.i += 2
                else:
                    self._parts.append(c)
                    self.i += 1
            elif c == "$":
                self._dollar(in_quotes=True)
            elif c == "`":
                self._backtick()
            else:
                self._parts.append(c)
                self.i += 1
        return terminator is None

    def _substitute(self, open_len: int, closer: str) -> None:
        """Collect the body of ``$(...)``/``<(...)``/backticks as a nested command."""
        text = self.text
        start = self.i
        end = matching_close(text, start + open_len, closer)
        if end < 0:
            body = text[start + open_len:]
            self.i = len(text)
            self._problem("unterminated command substitution")
        else:
            body = text[start + open_len:end]
            self.i = end + 1
        if closer == "`":
            body = _BACKTICK_ESCAPE.sub(r"\1", body)
        self.result.substitutions.append(body)
        self._begin_at(start)
        self._parts.append(text[start:self.i])
        self._dynamic = True
        self._substitution = True

    def _begin_at(self, index: int) -> None:
        if self._start is None:
            self._start = index

    def _backtick(self) -> None:
        self._substitute(1, "`")

    def _process_substitution(self) -> None:
        self._substitute(2, ")")

    def _dollar(self, in_quotes: bool = False) -> None:
        text = self.text
        start = self.i
        nxt = text[start + 1:start + 2]
        self._begin()
        if in_quotes and nxt in ("'", '"'):
            self._parts.append("$")
            self.i += 1
        elif text.startswith("((", start + 1):
            # arithmetic expansion, opaque
            end = matching_close(text, start + 2, ")")
            if end < 0:
                self._parts.append(text[start:])
                self.i = len(text)
                self._problem("unterminated arithmetic expansion")
            else:
                self._parts.append(text[start:end + 1])
                self.i = end + 1
            self._dynamic = True
        elif nxt == "(":
            self._substitute(2, ")")
        elif nxt == "{":
            self._parts.append("${")
            self._dynamic = True
            self.i += 2
        elif nxt == "'":
            self._ansi_c_quote()
        elif nxt == '"':
            self._quoted = True
            self.i += 2
            if not self._read_expanding('"'):
                self._problem("unterminated double quote")
        else:
            match = _NAME.match(text, start + 1)
            if match:
                self._parts.append(text[start:match.end()])
                self._dynamic = True
                self.i = match.end()
            elif nxt and (nxt.isdigit() or nxt in "@*#?$!-"):
                self._parts.append(text[start:start + 2])
                self._dynamic = True
                self.i += 2
            else:
                self._parts.append("$")
                self.i += 1

    def _ansi_c_quote(self) -> None:
        text = self.text
        i = self.i + 2
        n = len(text)
        while i < n and text[i] != "'":
            i += 2 if text[i] == "\\" else 1
        self._quoted = True
        if i >= n:
            body = text[self.i + 2:]
            self.i = n
            self._problem("unterminated ANSI-C quote")
        else:
            body = text[self.i + 2:i]
            self.i = i + 1
        try:
            decoded = body.encode("latin-1", "backslashreplace").decode("unicode_escape")
        except UnicodeDecodeError:
            self._problem("undecodable ANSI-C quote")
            decoded = body
        self._parts.append(decoded)

    def _redirect(self) -> None:
        text = self.text
        fd = ""
        if self._start is not None and not self._quoted and self._parts and "".join(self._parts).isdigit():
            fd = "".join(self._parts)
            self._reset_word()
        else:
            self._end_word()
        if self._pending is not None:
            self._problem("redirection without a target")
            self._pending = None
        operator = next(op for op in REDIRECT_OPERATORS if text.startswith(op, self.i))
        self.i += len(operator)
        if operator in (">&", "<&"):
            match = _DUP_TARGET.match(text, self.i)
            if match:
                self.segment.redirects.append(Redirect(fd, operator, match.group(1)))
                self.i = match.end()
                return
        self._pending = (fd, operator)

    def _control(self) -> None:
        self._end_word()
        if self._pending is not None:
            self._problem("redirection without a target")
            self._pending = None
        text = self.text
        operator = next(op for op in CONTROL_OPERATORS if text.startswith(op, self.i))
        self._end_segment()
        self.i += len(operator)
        if operator in ("|", "|&"):
            self.segment.piped_stdin = True
        elif operator == "(":
            self._parens += 1
        elif operator == ")":
            if self._parens:
                self._parens -= 1
            elif not self._case_depth:
                # case patterns close with a lone ")"
                self._problem("unmatched closing parenthesis")
        elif operator == "\n" and self._heredocs:
            self._read_heredoc_bodies()

    def _read_heredoc_bodies(self) -> None:
        text = self.text
        n = len(text)
        pending, self._heredocs = self._heredocs, []
        for segment, delimiter, quoted, strip_tabs in pending:
            lines = []
            while self.i < n:
                end = text.find("\n", self.i)
                if end < 0:
                    end = n
                line = text[self.i:end]
                self.i = min(end + 1, n)
                if (line.lstrip("\t") if strip_tabs else line) == delimiter:
                    break
                lines.append(line)
            body = "\n".join(lines)
            if not quoted:
                inner = _Scanner(body)
                inner._read_expanding(None)
                self.result.substitutions.extend(inner.result.substitutions)
                self.result.problems.extend(inner.result.problems)
            segment.heredocs.append(body)


def scan(command: str) -> ScanResult:
    """
    Scan a command string into segments.

    Args:
        command: Raw shell command text

    Returns:
        ScanResult with the segments, the raw bodies of every command
        substitution found at this level, and any syntax problems
    """
    return _Scanner(command).scan()
