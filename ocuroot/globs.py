"""Shell-style glob patterns with separator-aware wildcards.

Supported syntax:

* ``*``    any run of characters that are not separators
* ``**``   any run of characters, separators included
* ``?``    a single character that is not a separator
* ``[abc]``, ``[a-z]``, ``[!abc]``  character classes
* ``{a,b}`` alternatives, which may nest
* ``\\x``  the character ``x`` taken literally
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

__all__ = ["Glob", "GlobError", "compile_glob"]


class GlobError(ValueError):
    """Raised when a glob pattern cannot be compiled."""


class _Translator:
    """Turns a glob pattern into an equivalent regular expression."""

    def __init__(self, pattern: str, separators: str) -> None:
        self.pattern = pattern
        self.pos = 0
        self.single = f"[^{re.escape(separators)}]" if separators else "."

    def translate(self) -> str:
        return self._sequence(nested=False)

    def _peek(self) -> str | None:
        if self.pos < len(self.pattern):
            return self.pattern[self.pos]
        return None

    def _escaped(self) -> str:
        ch = self._peek()
        if ch is None:
            raise GlobError(f"unexpected end of pattern after escape in {self.pattern!r}")
        self.pos += 1
        return ch

    def _sequence(self, nested: bool) -> str:
        parts: list[str] = []
        while (ch := self._peek()) is not None:
            if nested and ch in ",}":
                return "".join(parts)
            self.pos += 1
            if ch == "\\":
                parts.append(re.escape(self._escaped()))
            elif ch == "*":
                if self._peek() == "*":
                    self.pos += 1
                    parts.append(".*")
                else:
                    parts.append(self.single + "*")
            elif ch == "?":
                parts.append(self.single)
            elif ch == "[":
                parts.append(self._char_class())
            elif ch == "{":
                parts.append(self._alternatives())
            else:
                parts.append(re.escape(ch))
        if nested:
            raise GlobError(f"unclosed '{{' in pattern {self.pattern!r}")
        return "".join(parts)

    def _alternatives(self) -> str:
        options = [self._sequence(nested=True)]
        while self._peek() == ",":
            self.pos += 1
            options.append(self._sequence(nested=True))
        # _sequence only returns at ',' or '}', so a '}' is next.
        self.pos += 1
        return "(?:" + "|".join(options) + ")"

    def _char_class(self) -> str:
        negate = self._peek() == "!"
        if negate:
            self.pos += 1
        items: list[str] = []
        while True:
            ch = self._peek()
            if ch is None:
                raise GlobError(f"unclosed '[' in pattern {self.pattern!r}")
            self.pos += 1
            if ch == "]":
                break
            if ch == "\\":
                ch = self._escaped()
            is_range = (
                self._peek() == "-"
                and self.pos + 1 < len(self.pattern)
                and self.pattern[self.pos + 1] != "]"
            )
            if is_range:
                self.pos += 1
                high = self._escaped()
                if high == "\\":
                    high = self._escaped()
                if high < ch:
                    raise GlobError(f"invalid range {ch}-{high} in pattern {self.pattern!r}")
                items.append(f"{re.escape(ch)}-{re.escape(high)}")
            else:
                items.append(re.escape(ch))
        if not items:
            raise GlobError(f"empty character class in pattern {self.pattern!r}")
        return "[" + ("^" if negate else "") + "".join(items) + "]"


@dataclass(frozen=True)
class Glob:
    """A compiled glob pattern."""

    pattern: str
    separators: str = ""
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        expression = _Translator(self.pattern, self.separators).translate()
        object.__setattr__(self, "_regex", re.compile(expression, re.DOTALL))

    def match(self, text: str) -> bool:
        """Return True if the whole of ``text`` matches the pattern."""
        return self._regex.fullmatch(text) is not None


def compile_glob(pattern: str, separator: str | None = None) -> Glob:
    """Compile ``pattern``; each character of ``separator`` stops ``*`` and ``?``."""
    return Glob(pattern, separator or "")