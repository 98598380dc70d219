"""Records kept in the state store for intents, work, functions and logs."""

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ocuroot.refs import Ref, parse
from ocuroot.sdkdata import FunctionDef, InputDescriptor, Log

__all__ = [
    "EnvironmentState",
    "FunctionState",
    "Intent",
    "Link",
    "LogEntry",
    "Status",
    "WorkItem",
    "WorkType",
    "new_id",
]

_CROCKFORD = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_RANDOM_BITS = 80


class _UlidGenerator:
    """Produces ULIDs that sort in creation order within this process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_random = 0

    def generate(self) -> str:
        with self._lock:
            now_ms = time.time_ns() // 1_000_000
            if now_ms <= self._last_ms:
                now_ms = self._last_ms
                randomness = self._last_random + 1
                if randomness >= 1 << _RANDOM_BITS:
                    raise OverflowError("ULID randomness exhausted for this millisecond")
            else:
                randomness = secrets.randbits(_RANDOM_BITS)
            self._last_ms = now_ms
            self._last_random = randomness
        value = (now_ms << _RANDOM_BITS) | randomness
        return "".join(_CROCKFORD[(value >> shift) & 31] for shift in range(125, -1, -5))


_generator = _UlidGenerator()


def new_id() -> str:
    """Return a new lexicographically sortable unique identifier (a ULID)."""
    return _generator.generate()


class Status(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WorkType(str, Enum):
    UP = "up"
    DOWN = "down"
    CALL = "call"


def _inputs_to_dict(inputs: dict[str, InputDescriptor]) -> dict[str, Any]:
    return {name: descriptor.to_dict() for name, descriptor in inputs.items()}


def _inputs_from_dict(data: dict[str, Any] | None) -> dict[str, InputDescriptor]:
    return {name: InputDescriptor.from_dict(value) for name, value in (data or {}).items()}


@dataclass
class LogEntry:
    """A log line attributed to the function that wrote it."""

    id: str = ""
    function_ref: Ref = field(default_factory=Ref)
    log: Log = field(default_factory=Log)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "function_ref": str(self.function_ref), **self.log.to_dict()}


@dataclass
class Link:
    text: str = ""
    url: str = ""


@dataclass
class Intent:
    type: WorkType = WorkType.CALL
    release: Ref = field(default_factory=Ref)
    inputs: dict[str, InputDescriptor] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": WorkType(self.type).value,
            "release": str(self.release),
            "input": _inputs_to_dict(self.inputs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Intent:
        return cls(
            type=WorkType(data.get("type", "")),
            release=parse(data.get("release", "")),
            inputs=_inputs_from_dict(data.get("input")),
        )


@dataclass
class WorkItem:
    """A call or deploy; ``entrypoint`` is the ref of the first function in its chain."""

    type: WorkType = WorkType.CALL
    release: Ref = field(default_factory=Ref)
    entrypoint: Ref = field(default_factory=Ref)
    outputs: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": WorkType(self.type).value,
            "release": str(self.release),
            "entrypoint": str(self.entrypoint),
            "output": dict(self.outputs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkItem:
        return cls(
            type=WorkType(data.get("type", "")),
            release=parse(data.get("release", "")),
            entrypoint=parse(data.get("entrypoint", "")),
            outputs=dict(data.get("output") or {}),
        )


@dataclass
class FunctionState:
    id: str = ""
    fn: FunctionDef = field(default_factory=FunctionDef)
    status: Status = Status.PENDING
    dependencies: list[Ref] = field(default_factory=list)
    inputs: dict[str, InputDescriptor] = field(default_factory=dict)
    outputs: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "fn": self.fn.to_dict(),
            "status": Status(self.status).value,
        }
        if self.dependencies:
            out["dependencies"] = [str(dep) for dep in self.dependencies]
        out["inputs"] = _inputs_to_dict(self.inputs)
        if self.outputs:
            out["outputs"] = dict(self.outputs)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FunctionState:
        return cls(
            id=data.get("id", ""),
            fn=FunctionDef.from_dict(data.get("fn")),
            status=Status(data.get("status", "")),
            dependencies=[parse(dep) for dep in data.get("dependencies") or []],
            inputs=_inputs_from_dict(data.get("inputs")),
            outputs=dict(data.get("outputs") or {}),
        )


@dataclass
class EnvironmentState:
    name: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)