"""References to repositories, packages, releases and the state beneath them."""

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Callable, Optional

__all__ = [
    "Ref",
    "RefError",
    "ReleaseOrIntent",
    "ReleaseOrIntentType",
    "SubPathType",
    "parse",
    "validate_sub_path_type",
]

_HASH = "#"
_SLASH = "/"
_RELEASE_PREFIX = "@"
_INTENT_PREFIX = "+"
_REPO_SEPARATOR = "-"


class RefError(ValueError):
    """Raised for refs that cannot be parsed or are invalid."""


class SubPathType(str, Enum):
    NONE = ""
    DEPLOY = "deploy"
    CALL = "call"
    CUSTOM = "custom"
    ENVIRONMENT = "environment"


_VALID_SUB_PATH_TYPES = {
    SubPathType.DEPLOY,
    SubPathType.CALL,
    SubPathType.CUSTOM,
    SubPathType.ENVIRONMENT,
}


def validate_sub_path_type(value: str) -> SubPathType:
    """Return the sub path type named by ``value`` or raise RefError."""
    try:
        member = SubPathType(value)
    except ValueError:
        member = None
    if member not in _VALID_SUB_PATH_TYPES:
        raise RefError(f"invalid subpath type: {value}")
    return member


class ReleaseOrIntentType(IntEnum):
    UNKNOWN = 0
    RELEASE = 1
    INTENT = 2


@dataclass(frozen=True)
class ReleaseOrIntent:
    kind: ReleaseOrIntentType = ReleaseOrIntentType.UNKNOWN
    value: str = ""

    def is_current_release(self) -> bool:
        return self.kind == ReleaseOrIntentType.RELEASE and self.value == ""

    def __str__(self) -> str:
        if self.kind == ReleaseOrIntentType.INTENT:
            return _INTENT_PREFIX + self.value
        if self.kind == ReleaseOrIntentType.RELEASE:
            return _RELEASE_PREFIX + self.value
        return ""


def _clean_path(path: str) -> str:
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _join_path(*parts: str) -> str:
    present = [part for part in parts if part]
    return _clean_path("/".join(present)) if present else ""


@dataclass(frozen=True)
class Ref:
    repo: str = ""
    filename: str = ""
    is_global: bool = False
    release_or_intent: ReleaseOrIntent = field(default_factory=ReleaseOrIntent)
    sub_path_type: str = ""
    sub_path: str = ""
    fragment: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.sub_path_type, SubPathType):
            object.__setattr__(self, "sub_path_type", self.sub_path_type.value)

    def with_repo(self, repo: str) -> Ref:
        return replace(self, repo=repo)

    def with_filename(self, filename: str) -> Ref:
        return replace(self, filename=filename)

    def make_intent(self) -> Ref:
        return replace(
            self,
            release_or_intent=replace(self.release_or_intent, kind=ReleaseOrIntentType.INTENT),
        )

    def make_release(self) -> Ref:
        return replace(
            self,
            release_or_intent=replace(self.release_or_intent, kind=ReleaseOrIntentType.RELEASE),
        )

    def with_version(self, version: str) -> Ref:
        return replace(self, release_or_intent=replace(self.release_or_intent, value=version))

    def with_sub_path_type(self, sub_path_type: str) -> Ref:
        return replace(self, sub_path_type=sub_path_type)

    def with_sub_path(self, sub_path: str) -> Ref:
        return replace(self, sub_path=sub_path)

    def join_sub_path(self, *args: str) -> Ref:
        return replace(self, sub_path=_join_path(self.sub_path, *args))

    def with_fragment(self, fragment: str) -> Ref:
        return replace(self, fragment=fragment)

    def is_relative(self) -> bool:
        return self.repo == "." or self.filename == "." or self.release_or_intent.value == "."

    def validate(self) -> None:
        """Raise RefError if this ref is not valid."""
        if self.is_global and self.filename:
            raise RefError("package must be empty for global refs")
        if self.sub_path_type:
            validate_sub_path_type(self.sub_path_type)

    def is_current_release(self) -> bool:
        return self.release_or_intent.is_current_release()

    def relative_to(self, ref: Ref) -> Ref:
        """Fill the repo, package and release of this ref from ``ref`` where unset."""
        if not self.is_relative():
            return self
        if self.repo not in ("", ".") or self.is_global:
            return self

        out = self
        if self.repo in (".", ""):
            out = replace(out, repo=ref.repo)
        if self.filename in (".", ""):
            out = replace(out, filename=ref.filename)
        if (
            self.release_or_intent.kind == ReleaseOrIntentType.UNKNOWN
            or self.release_or_intent.value == "."
        ):
            out = replace(out, release_or_intent=ref.release_or_intent)
        return out

    def to_json(self) -> str:
        return json.dumps(str(self))

    @classmethod
    def from_json(cls, data: str | bytes) -> Ref:
        try:
            text = json.loads(data)
        except json.JSONDecodeError as err:
            raise RefError(f"failed to unpack ref string: {err}") from err
        if not isinstance(text, str):
            raise RefError(f"failed to unpack ref string: expected a string, got {type(text).__name__}")
        try:
            return parse(text)
        except RefError as err:
            raise RefError(f"failed to parse ref: {err}") from err

    def debug_string(self) -> str:
        return (
            f"global: {'true' if self.is_global else 'false'}, repo: {self.repo}, "
            f"package: {self.filename}, releaseOrIntent: {self.release_or_intent}, "
            f"subPathType: {self.sub_path_type}, subPath: {self.sub_path}, "
            f"fragment: {self.fragment}"
        )

    def __str__(self) -> str:
        segments: list[str] = []
        if not self.is_global:
            if self.repo:
                segments.extend([self.repo, _REPO_SEPARATOR])
            if self.filename:
                segments.append(self.filename)
        if self.release_or_intent.kind != ReleaseOrIntentType.UNKNOWN:
            segments.append(str(self.release_or_intent))
        if self.sub_path_type or self.sub_path:
            segments.extend([self.sub_path_type, self.sub_path])
        out = _SLASH.join(segments)
        if self.fragment:
            out += _HASH + self.fragment
        return out


class _Item(Enum):
    REPO = "repo"
    PACKAGE = "package"
    GLOBAL = "global"
    RELEASE = "release"
    INTENT = "intent"
    SUBPATH_TYPE = "subpath_type"
    SUBPATH = "subpath"
    FRAGMENT = "fragment"
    EOF = "eof"


_State = Optional[Callable[[], "_State"]]


class _Lexer:
    """State-machine scanner splitting a ref string into typed items."""

    def __init__(self, text: str) -> None:
        self.input = text
        self.start = 0
        self.pos = 0
        self.width = 0
        self.items: list[tuple[_Item, str]] = []

    def run(self) -> list[tuple[_Item, str]]:
        state: _State = self._lex_start
        while state is not None:
            state = state()
        return self.items

    def _at(self, prefix: str) -> bool:
        return self.input.startswith(prefix, self.pos)

    def _emit(self, kind: _Item) -> None:
        self.items.append((kind, self.input[self.start:self.pos]))
        self.start = self.pos

    def _next(self) -> str | None:
        if self.pos >= len(self.input):
            self.width = 0
            return None
        ch = self.input[self.pos]
        self.width = 1
        self.pos += 1
        return ch

    def _ignore(self) -> None:
        self.start = self.pos

    def _backup(self) -> None:
        self.pos -= self.width

    def _lex_start(self) -> _State:
        if self._at("./"):
            if self._at("./" + _INTENT_PREFIX) or self._at("./" + _RELEASE_PREFIX):
                self.pos += 1
                self._emit(_Item.PACKAGE)
                if self._at(_SLASH + _INTENT_PREFIX):
                    self.pos += 1
                    self._ignore()
                    return self._lex_intent
                if self._at(_SLASH + _RELEASE_PREFIX):
                    self.pos += 1
                    self._ignore()
                    return self._lex_release
                raise RefError("expected intent or release")
            if not self._at("./" + _REPO_SEPARATOR):
                self.pos += 1
                self._emit(_Item.PACKAGE)
                self.pos += 1
                self._ignore()
                return self._lex_subpath_type
        if self._at(_RELEASE_PREFIX):
            self._emit(_Item.GLOBAL)
            return self._lex_release
        return self._lex_path

    def _lex_path(self) -> _State:
        while True:
            if self._at(_SLASH + _REPO_SEPARATOR):
                self._emit(_Item.REPO)
                self.pos += 2
                self._ignore()
                following = self._next()
                if following is None:
                    self._emit(_Item.EOF)
                    return None
                if following == _SLASH:
                    self._ignore()
                    return self._lex_path
                raise RefError("expected slash or eof after repo")
            if self._at(_SLASH + _RELEASE_PREFIX):
                self._emit(_Item.PACKAGE)
                self._next()
                return self._lex_release
            if self._at(_SLASH + _INTENT_PREFIX):
                self._emit(_Item.PACKAGE)
                self._next()
                return self._lex_intent
            if self._at(_RELEASE_PREFIX):
                if self.pos > self.start:
                    raise RefError("unexpected release prefix in path")
                return self._lex_release
            if self._at(_INTENT_PREFIX):
                if self.pos > self.start:
                    raise RefError("unexpected intent prefix in path")
                return self._lex_intent
            if self._next() is None:
                break
        self._emit(_Item.PACKAGE)
        self._emit(_Item.EOF)
        return None

    def _lex_release(self) -> _State:
        return self._lex_version(_Item.RELEASE)

    def _lex_intent(self) -> _State:
        return self._lex_version(_Item.INTENT)

    def _lex_version(self, kind: _Item) -> _State:
        self.pos += 1
        self._ignore()
        while True:
            if self._at(_SLASH):
                self._emit(kind)
                self.pos += 1
                self._ignore()
                return self._lex_subpath_type
            if self._at(_HASH):
                self._emit(kind)
                self.pos += 1
                self._ignore()
                return self._lex_fragment
            if self._next() is None:
                self._emit(kind)
                self._emit(_Item.EOF)
                return None

    def _lex_subpath_type(self) -> _State:
        while True:
            if self._at(_SLASH):
                self._emit(_Item.SUBPATH_TYPE)
                self.pos += 1
                self._ignore()
                return self._lex_subpath
            if self._at(_HASH):
                raise RefError("unexpected fragment")
            if self._next() is None:
                self._backup()
                self._emit(_Item.SUBPATH_TYPE)
                return self._lex_path

    def _lex_subpath(self) -> _State:
        self.pos += 1
        while True:
            if self._at(_SLASH + _RELEASE_PREFIX):
                raise RefError("unexpected release prefix in subpath")
            if self._at(_HASH):
                self._emit(_Item.SUBPATH)
                self.pos += 1
                self._ignore()
                return self._lex_fragment
            ch = self._next()
            if ch == "=":
                raise RefError("unexpected '='")
            if ch is None:
                self._emit(_Item.SUBPATH)
                self._emit(_Item.EOF)
                return None

    def _lex_fragment(self) -> _State:
        while True:
            if self._at(_SLASH + _RELEASE_PREFIX):
                raise RefError("unexpected release prefix in fragment")
            if self._next() is None:
                break
        if self.pos > self.start:
            self._emit(_Item.FRAGMENT)
        self._emit(_Item.EOF)
        return None


def parse(ref: str) -> Ref:
    """Parse a ref string, raising RefError if it is malformed or invalid."""
    fields: dict[str, object] = {}
    for kind, value in _Lexer(ref).run():
        if kind is _Item.GLOBAL:
            fields["is_global"] = True
        elif kind is _Item.REPO:
            fields["repo"] = value
        elif kind is _Item.PACKAGE:
            fields["filename"] = value
        elif kind is _Item.SUBPATH_TYPE:
            fields["sub_path_type"] = value
        elif kind is _Item.SUBPATH:
            fields["sub_path"] = value.removesuffix(_SLASH)
        elif kind is _Item.RELEASE:
            fields["release_or_intent"] = ReleaseOrIntent(ReleaseOrIntentType.RELEASE, value)
        elif kind is _Item.INTENT:
            fields["release_or_intent"] = ReleaseOrIntent(ReleaseOrIntentType.INTENT, value)
        elif kind is _Item.FRAGMENT:
            fields["fragment"] = value.removesuffix(_SLASH)
    result = Ref(**fields)
    result.validate()
    return result