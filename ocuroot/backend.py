"""The services a configuration script may call on, and the data they exchange."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ocuroot.refs import Ref

__all__ = [
    "Backend",
    "DebugBinding",
    "DebugFrame",
    "FsStorage",
    "GitStorage",
    "HTTPGetRequest",
    "HTTPPostRequest",
    "HTTPResponse",
    "HostShellRequest",
    "HostShellResponse",
    "ParentRefsBackend",
    "RefsBackend",
    "StorageBackend",
    "StoreConfig",
    "new_ref_backend",
]


class RefsBackend(ABC):
    """Turns relative refs into absolute ones."""

    @abstractmethod
    def absolute(self, ref: Ref) -> Ref:
        """Return ``ref`` made absolute."""


@dataclass
class ParentRefsBackend(RefsBackend):
    """Resolves refs relative to a fixed parent ref."""

    parent_ref: Ref = field(default_factory=Ref)

    def absolute(self, ref: Ref) -> Ref:
        return ref.relative_to(self.parent_ref)


def new_ref_backend(parent_ref: Ref) -> RefsBackend:
    """Return a refs backend resolving against ``parent_ref``."""
    return ParentRefsBackend(parent_ref)


@dataclass
class DebugBinding:
    name: str = ""
    pos: str = ""
    type: str = ""
    val: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "pos": self.pos, "type": self.type, "val": self.val}


@dataclass
class DebugFrame:
    pos: str = ""
    locals: list[DebugBinding] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"pos": self.pos, "locals": [binding.to_dict() for binding in self.locals]}


@dataclass
class HostShellRequest:
    cmd: str = ""
    env: dict[str, str] = field(default_factory=dict)
    dir: str = ""
    shell: str = ""
    continue_on_error: bool = False
    mute: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HostShellRequest:
        data = data or {}
        return cls(
            cmd=data.get("cmd", ""),
            env=dict(data.get("env") or {}),
            dir=data.get("dir", ""),
            shell=data.get("shell", ""),
            continue_on_error=bool(data.get("continue_on_error", False)),
            mute=bool(data.get("mute", False)),
        )


@dataclass
class HostShellResponse:
    combined_output: str = ""
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "combined_output": self.combined_output,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
        }


@dataclass
class HTTPResponse:
    body: str = ""
    headers: dict[str, list[str]] = field(default_factory=dict)
    status_code: int = 0
    status_text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "body": self.body,
            "headers": {name: list(values) for name, values in self.headers.items()},
            "status_code": self.status_code,
            "status_text": self.status_text,
        }


@dataclass
class HTTPGetRequest:
    url: str = ""
    headers: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HTTPGetRequest:
        data = data or {}
        return cls(url=data.get("url", ""), headers=dict(data.get("headers") or {}))


@dataclass
class HTTPPostRequest:
    url: str = ""
    body: str = ""
    headers: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HTTPPostRequest:
        data = data or {}
        return cls(
            url=data.get("url", ""),
            body=data.get("body", ""),
            headers=dict(data.get("headers") or {}),
        )


@dataclass
class GitStorage:
    remote_url: str = ""
    branch: str = ""


@dataclass
class FsStorage:
    path: str = ""


@dataclass
class StorageBackend:
    git: Optional[GitStorage] = None
    fs: Optional[FsStorage] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.git is not None:
            out["git"] = {"remote_url": self.git.remote_url, "branch": self.git.branch}
        if self.fs is not None:
            out["fs"] = {"path": self.fs.path}
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> StorageBackend:
        data = data or {}
        git = data.get("git")
        fs = data.get("fs")
        return cls(
            git=GitStorage(git.get("remote_url", ""), git.get("branch", ""))
            if git is not None
            else None,
            fs=FsStorage(fs.get("path", "")) if fs is not None else None,
        )


@dataclass
class StoreConfig:
    """Where state, and optionally intent, is kept."""

    state: StorageBackend = field(default_factory=StorageBackend)
    intent: Optional[StorageBackend] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"state": self.state.to_dict()}
        if self.intent is not None:
            out["intent"] = self.intent.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> StoreConfig:
        data = data or {}
        intent = data.get("intent")
        return cls(
            state=StorageBackend.from_dict(data.get("state")),
            intent=StorageBackend.from_dict(intent) if intent is not None else None,
        )


PrintFunc = Callable[[str], Any]


@dataclass
class Backend:
    """The services available to scripts; a service left as None is unavailable.

    ``print_backend``, when set, has a ``print(msg, next_print)`` method that
    sees each printed message before it is handed on.
    """

    repo: Any = None
    refs: Optional[RefsBackend] = None
    environments: Any = None
    allow_package_registration: bool = False
    http: Any = None
    secrets: Any = None
    host: Any = None
    store: Any = None
    debug: Any = None
    print_backend: Any = None

    def wrap_print(self, next_print: PrintFunc) -> PrintFunc:
        """Return a print function routed through the print backend, if any."""
        backend = self.print_backend
        if backend is None:
            return next_print

        def wrapped(msg: str) -> None:
            backend.print(msg, next_print)

        return wrapped