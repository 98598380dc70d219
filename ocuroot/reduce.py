"""Shortening a ref until it matches a glob."""

from __future__ import annotations

import posixpath
from typing import Protocol

from ocuroot.refs import parse

__all__ = ["NoMatchError", "reduce"]


class NoMatchError(LookupError):
    """Raised when no prefix of a ref matches the glob."""


class _Matcher(Protocol):
    def match(self, text: str) -> bool: ...


def _parent(path: str) -> str:
    if "/" not in path:
        return "."
    head = path[: path.rindex("/") + 1]
    cleaned = posixpath.normpath(head)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def reduce(ref: str, glob: _Matcher) -> str:
    """Return the longest prefix of ``ref`` (or its normalised form) matching ``glob``."""
    while not glob.match(ref):
        if ref == ".":
            raise NoMatchError("no match")

        if "@" in ref or "+" in ref:
            parsed = parse(ref)
            normalized = str(parsed)
            if glob.match(normalized):
                return normalized
            without_version = str(parsed.with_version(""))
            if glob.match(without_version):
                return without_version

        parent = _parent(ref)
        if parent == ref:
            raise NoMatchError("no match")
        ref = parent
    return ref