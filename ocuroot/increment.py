"""Choosing the next numbered ref beneath a prefix."""

from __future__ import annotations

import re

from ocuroot.refstore import Store

__all__ = ["increment_path"]

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _as_version(text: str) -> int | None:
    if _INTEGER.fullmatch(text) is None:
        return None
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def increment_path(store: Store, path_prefix: str) -> str:
    """Return ``path_prefix`` followed by one more than the highest number stored under it."""
    matches = store.match(f"{path_prefix}*")
    if not matches:
        return f"{path_prefix}1"

    highest = 0
    for match in matches:
        version = _as_version(match.replace(path_prefix, "", 1))
        if version is not None and version > highest:
            highest = version
    return f"{path_prefix}{highest + 1}"