"""Data describing packages, their phases, work and results."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from ocuroot.refs import Ref, parse

__all__ = [
    "Deployment",
    "Environment",
    "Function",
    "FunctionDef",
    "HandoffEdge",
    "InputDescriptor",
    "Log",
    "Package",
    "Phase",
    "ValidationError",
    "Work",
    "WorkCall",
    "WorkDone",
    "WorkNext",
    "WorkResult",
]


class ValidationError(Exception):
    """A problem found while validating a package."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


@dataclass
class Environment:
    name: str = ""
    attributes: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "attributes": dict(self.attributes)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Environment:
        data = data or {}
        return cls(name=data.get("name", ""), attributes=dict(data.get("attributes") or {}))


@dataclass(frozen=True)
class FunctionDef:
    name: str = ""
    pos: str = ""

    def __str__(self) -> str:
        return f"{self.name}/{self.pos}"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "pos": self.pos}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FunctionDef:
        data = data or {}
        return cls(name=data.get("name", ""), pos=data.get("pos", ""))


@dataclass
class InputDescriptor:
    ref: Optional[Ref] = None
    default: Any = None
    value: Any = None
    doc: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.ref is not None:
            out["ref"] = str(self.ref)
        if self.default is not None:
            out["default"] = self.default
        if self.value is not None:
            out["value"] = self.value
        if self.doc is not None:
            out["doc"] = self.doc
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> InputDescriptor:
        data = data or {}
        ref = data.get("ref")
        return cls(
            ref=parse(ref) if ref is not None else None,
            default=data.get("default"),
            value=data.get("value"),
            doc=data.get("doc"),
        )


def _inputs_to_dict(inputs: dict[str, InputDescriptor]) -> dict[str, Any]:
    return {name: descriptor.to_dict() for name, descriptor in inputs.items()}


def _inputs_from_dict(data: dict[str, Any] | None) -> dict[str, InputDescriptor]:
    return {name: InputDescriptor.from_dict(value) for name, value in (data or {}).items()}


@dataclass(frozen=True)
class HandoffEdge:
    source: str = ""
    target: str = ""
    annotation: str = ""
    delay: str = ""
    needs_approval: bool = False

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "from": self.source,
            "to": self.target,
            "annotation": self.annotation,
            "delay": self.delay,
        }
        if self.needs_approval:
            out["needs_approval"] = True
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HandoffEdge:
        data = data or {}
        return cls(
            source=data.get("from", ""),
            target=data.get("to", ""),
            annotation=data.get("annotation", ""),
            delay=data.get("delay", ""),
            needs_approval=bool(data.get("needs_approval", False)),
        )


@dataclass
class Function:
    function: FunctionDef = field(default_factory=FunctionDef)
    graph: list[HandoffEdge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "function": self.function.to_dict(),
            "graph": [edge.to_dict() for edge in self.graph],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Function:
        data = data or {}
        return cls(
            function=FunctionDef.from_dict(data.get("function")),
            graph=[HandoffEdge.from_dict(edge) for edge in data.get("graph") or []],
        )


@dataclass
class Deployment:
    environment: str = ""
    up: FunctionDef = field(default_factory=FunctionDef)
    down: FunctionDef = field(default_factory=FunctionDef)
    inputs: dict[str, InputDescriptor] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "environment": self.environment,
            "up": self.up.to_dict(),
            "down": self.down.to_dict(),
            "inputs": _inputs_to_dict(self.inputs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Deployment:
        data = data or {}
        return cls(
            environment=data.get("environment", ""),
            up=FunctionDef.from_dict(data.get("up")),
            down=FunctionDef.from_dict(data.get("down")),
            inputs=_inputs_from_dict(data.get("inputs")),
        )


@dataclass
class WorkCall:
    name: str = ""
    inputs: dict[str, InputDescriptor] = field(default_factory=dict)
    fn: FunctionDef = field(default_factory=FunctionDef)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "inputs": _inputs_to_dict(self.inputs),
            "fn": self.fn.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorkCall:
        data = data or {}
        return cls(
            name=data.get("name", ""),
            inputs=_inputs_from_dict(data.get("inputs")),
            fn=FunctionDef.from_dict(data.get("fn")),
        )


@dataclass
class Work:
    deployment: Optional[Deployment] = None
    call: Optional[WorkCall] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.deployment is not None:
            out["deploy"] = self.deployment.to_dict()
        if self.call is not None:
            out["call"] = self.call.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Work:
        data = data or {}
        deploy = data.get("deploy")
        call = data.get("call")
        return cls(
            deployment=Deployment.from_dict(deploy) if deploy is not None else None,
            call=WorkCall.from_dict(call) if call is not None else None,
        )


@dataclass
class Phase:
    name: str = ""
    work: list[Work] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "work": [item.to_dict() for item in self.work]}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Phase:
        data = data or {}
        return cls(
            name=data.get("name", ""),
            work=[Work.from_dict(item) for item in data.get("work") or []],
        )


@dataclass
class Package:
    functions: dict[str, Function] = field(default_factory=dict)
    phases: list[Phase] = field(default_factory=list)
    deployments: dict[str, Deployment] = field(default_factory=dict)

    def validate(self) -> list[ValidationError]:
        """Return the problems found: environments or call names used more than once."""
        env_usage = Counter(
            work.deployment.environment
            for phase in self.phases
            for work in phase.work
            if work.deployment is not None
        )
        errors = [
            ValidationError(
                f"Environment '{env}' is used in {count} phases, should be used in exactly one"
            )
            for env, count in env_usage.items()
            if count > 1
        ]

        work_names = Counter(
            work.call.name for phase in self.phases for work in phase.work if work.call is not None
        )
        errors.extend(
            ValidationError(
                f"Work item '{name}' is used in {count} phases, should be used in exactly one"
            )
            for name, count in work_names.items()
            if count > 1
        )
        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "functions": {name: fn.to_dict() for name, fn in self.functions.items()},
            "phases": [phase.to_dict() for phase in self.phases],
            "deployments": {env: dep.to_dict() for env, dep in self.deployments.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Package:
        data = data or {}
        return cls(
            functions={
                name: Function.from_dict(fn) for name, fn in (data.get("functions") or {}).items()
            },
            phases=[Phase.from_dict(phase) for phase in data.get("phases") or []],
            deployments={
                env: Deployment.from_dict(dep)
                for env, dep in (data.get("deployments") or {}).items()
            },
        )


@dataclass
class WorkNext:
    fn: FunctionDef = field(default_factory=FunctionDef)
    inputs: dict[str, InputDescriptor] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"fn": self.fn.to_dict()}
        if self.inputs:
            out["inputs"] = _inputs_to_dict(self.inputs)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorkNext:
        data = data or {}
        return cls(
            fn=FunctionDef.from_dict(data.get("fn")),
            inputs=_inputs_from_dict(data.get("inputs")),
        )


@dataclass
class WorkDone:
    outputs: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"outputs": dict(self.outputs), "tags": list(self.tags)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorkDone:
        data = data or {}
        return cls(outputs=dict(data.get("outputs") or {}), tags=list(data.get("tags") or []))


@dataclass
class WorkResult:
    next: Optional[WorkNext] = None
    done: Optional[WorkDone] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.next is not None:
            out["next"] = self.next.to_dict()
        if self.done is not None:
            out["done"] = self.done.to_dict()
        if self.error is not None:
            out["error"] = self.error
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorkResult:
        data = data or {}
        next_data = data.get("next")
        done_data = data.get("done")
        error = data.get("error")
        return cls(
            next=WorkNext.from_dict(next_data) if next_data is not None else None,
            done=WorkDone.from_dict(done_data) if done_data is not None else None,
            error=str(error) if error is not None else None,
        )


def _format_timestamp(moment: datetime) -> str:
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


@dataclass
class Log:
    """A line of output; ``stream`` is 1 for stdout and 2 for stderr."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    message: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    stream: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": _format_timestamp(self.timestamp),
            "message": self.message,
            "attributes": dict(self.attributes),
            "stream": self.stream,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Log:
        data = data or {}
        stamp = data.get("timestamp")
        timestamp = (
            datetime.fromisoformat(stamp.replace("Z", "+00:00"))
            if stamp
            else datetime.now(timezone.utc)
        )
        return cls(
            timestamp=timestamp,
            message=data.get("message", ""),
            attributes=dict(data.get("attributes") or {}),
            stream=int(data.get("stream", 0)),
        )