from datetime import datetime, timezone

import pytest

from ocuroot.refs import parse
from ocuroot.sdkdata import (
    Deployment,
    Function,
    FunctionDef,
    HandoffEdge,
    InputDescriptor,
    Log,
    Package,
    Phase,
    ValidationError,
    Work,
    WorkCall,
    WorkDone,
    WorkNext,
    WorkResult,
)


def _dep(env):
    return Work(deployment=Deployment(environment=env))


def _call(name, fn):
    return Work(call=WorkCall(name=name, fn=FunctionDef(name=fn)))


def _pkg(*phases):
    return Package(phases=[Phase(name=name, work=list(work)) for name, work in phases])


VALIDATE_CASES = [
    (
        "Valid package - all environments in exactly one phase",
        _pkg(
            ("development", [_dep("dev")]),
            ("staging", [_dep("staging")]),
            ("production", [_dep("prod")]),
        ),
        0,
    ),
    (
        "Valid package - multiple work items in same phase with different names",
        _pkg(
            (
                "development",
                [
                    _dep("dev"),
                    _call("qa-approval", "approve_function"),
                    _call("stability-period", "delay_function"),
                    _call("notify-deployment", "handoff_function"),
                ],
            ),
        ),
        0,
    ),
    (
        "Valid package - different work items across multiple phases",
        _pkg(
            (
                "development",
                [
                    _dep("dev"),
                    _call("dev-approval", "dev_approve_function"),
                    _call("dev-notification", "dev_handoff_function"),
                ],
            ),
            (
                "staging",
                [
                    _dep("staging"),
                    _call("staging-delay", "staging_delay_function"),
                    _call("staging-approval", "staging_approve_function"),
                ],
            ),
            (
                "production",
                [
                    _dep("prod"),
                    _call("prod-approval", "prod_approve_function"),
                    _call("prod-notification", "prod_handoff_function"),
                ],
            ),
        ),
        0,
    ),
    (
        "Invalid package - environment in multiple phases",
        _pkg(
            ("development", [_dep("dev")]),
            ("staging", [_dep("staging"), _dep("prod")]),
            ("production", [_dep("prod")]),
        ),
        1,
    ),
    (
        "Invalid package - duplicate approval work names",
        _pkg(
            ("phase-one", [_dep("dev"), _call("approve-deploy", "approve_function")]),
            ("phase-two", [_call("approve-deploy", "another_approve_function")]),
        ),
        1,
    ),
    (
        "Invalid package - duplicate delay work names",
        _pkg(
            ("phase-one", [_dep("dev"), _call("wait-period", "delay_function")]),
            ("phase-two", [_call("wait-period", "another_delay_function")]),
        ),
        1,
    ),
    (
        "Invalid package - duplicate handoff work names",
        _pkg(
            ("phase-one", [_dep("dev"), _call("notify-team", "handoff_function")]),
            ("phase-two", [_call("notify-team", "another_handoff_function")]),
        ),
        1,
    ),
    (
        "Invalid package - duplicate names across different work types",
        _pkg(
            ("phase-one", [_dep("dev"), _call("shared-name", "approval_function")]),
            ("phase-two", [_call("shared-name", "delay_function")]),
            ("phase-three", [_call("shared-name", "handoff_function")]),
        ),
        1,
    ),
    (
        "Invalid package - multiple duplicate work names",
        _pkg(
            (
                "phase-one",
                [
                    _dep("dev"),
                    _call("duplicate-one", "approval_function"),
                    _call("duplicate-two", "delay_function"),
                ],
            ),
            (
                "phase-two",
                [
                    _call("duplicate-one", "another_approval_function"),
                    _call("duplicate-two", "handoff_function"),
                ],
            ),
        ),
        2,
    ),
]


@pytest.mark.parametrize(
    "pkg,expected", [(pkg, n) for _, pkg, n in VALIDATE_CASES], ids=[c[0] for c in VALIDATE_CASES]
)
def test_package_validate(pkg, expected):
    errors = Package.validate(pkg)
    assert len(errors) == expected
    assert all(isinstance(err, ValidationError) for err in errors)


def test_validate_messages():
    pkg = _pkg(("a", [_dep("prod")]), ("b", [_dep("prod")]))
    errors = pkg.validate()
    assert [str(e) for e in errors] == [
        "Environment 'prod' is used in 2 phases, should be used in exactly one"
    ]


def test_function_def_str():
    assert str(FunctionDef(name="build", pos="file.star:1:1")) == "build/file.star:1:1"


def test_input_descriptor_omits_unset_fields():
    assert InputDescriptor().to_dict() == {}
    descriptor = InputDescriptor(ref=parse("@/environment/production"), doc="the env")
    assert descriptor.to_dict() == {"ref": "@/environment/production", "doc": "the env"}
    assert InputDescriptor.from_dict(descriptor.to_dict()) == descriptor


def test_handoff_edge_dict():
    edge = HandoffEdge(source="build", target="deploy")
    assert "needs_approval" not in edge.to_dict()
    approval = HandoffEdge(source="build", target="deploy", needs_approval=True)
    assert approval.to_dict()["needs_approval"] is True
    assert HandoffEdge.from_dict(approval.to_dict()) == approval


def test_package_round_trip():
    up = FunctionDef(name="up", pos="pkg.star:3:1")
    pkg = Package(
        functions={
            "build": Function(
                function=FunctionDef(name="build", pos="pkg.star:1:1"),
                graph=[HandoffEdge(target="build"), HandoffEdge(source="build", annotation="ok")],
            )
        },
        phases=[
            Phase(
                name="prod",
                work=[
                    Work(deployment=Deployment(environment="prod", up=up)),
                    Work(call=WorkCall(name="check", fn=up)),
                ],
            )
        ],
        deployments={
            "prod": Deployment(
                environment="prod",
                up=up,
                inputs={
                    "host": InputDescriptor(
                        ref=parse("github.com/org/repo/-/path/to/package/@v1/deploy/prod#output/host"),
                        default="localhost",
                    )
                },
            )
        },
    )
    assert Package.from_dict(pkg.to_dict()) == pkg
    assert "deploy" in pkg.to_dict()["phases"][0]["work"][0]


def test_work_result_round_trip():
    result = WorkResult(
        next=WorkNext(fn=FunctionDef(name="next", pos="p:1:1")),
        done=WorkDone(outputs={"count": 2}, tags=["v1"]),
        error="boom",
    )
    assert WorkResult.from_dict(result.to_dict()) == result
    assert WorkResult().to_dict() == {}
    assert WorkResult.from_dict({}) == WorkResult()


def test_log_to_dict():
    entry = Log(
        timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        message="hello",
        attributes={"thread": "main"},
        stream=1,
    )
    data = entry.to_dict()
    assert data["timestamp"] == "2024-01-02T03:04:05Z"
    assert data["message"] == "hello"
    assert Log.from_dict(data) == entry