import pytest

from ocuroot.refs import (
    Ref,
    RefError,
    ReleaseOrIntent,
    ReleaseOrIntentType,
    SubPathType,
    parse,
    validate_sub_path_type,
)

CURRENT_RELEASE = ReleaseOrIntent(ReleaseOrIntentType.RELEASE, "")


@pytest.mark.parametrize(
    "ref",
    [
        "",
        "github.com/org/repo/-/path/to/package/@/deploy/prod#output/host",
        "github.com/org/repo/-/path/to/package/@v1/deploy/prod#output/host",
        "github.com/org/repo/-/path/to/package",
        "./-/path/to/package",
        "./-/path/to/package/@/deploy/prod#output/host",
        "./@/call/build#output/output1",
        "github.com/ocu-project/ocu/-/package.ocu.star/+/deploy/staging",
        "github.com/ocu-project/ocu/-/package.ocu.star/@ABC123/deploy/staging/ABC123/logs",
        "github.com/ocu-project/ocu/-/package.ocu.star/@ABC123/deploy/staging/ABC123/outputs",
        "github.com/org/repo/-/package.ocu.star/@v1/deploy/prod#output/host",
        "@/environment/production",
        "+/environment/production",
        "@/environment/staging#attributes/type",
    ],
)
def test_valid_normalized_refs(ref):
    assert str(parse(ref)) == ref


@pytest.mark.parametrize(
    "ref, relative_to, expected",
    [
        (
            "./call/build#output/output1",
            "github.com/org/repo/-/path/to/package/@abc123",
            "github.com/org/repo/-/path/to/package/@abc123/call/build#output/output1",
        ),
        (
            "./@/call/build#output/output1",
            "github.com/org/repo/-/path/to/package/@abc123",
            "github.com/org/repo/-/path/to/package/@/call/build#output/output1",
        ),
        (
            "./-/path/to/package/@/call/build#output/output1",
            "github.com/org/repo/-/path/to/package/@abc123",
            "github.com/org/repo/-/path/to/package/@/call/build#output/output1",
        ),
        (
            "github.com/org/repo2/-/path/to/package2/@/deploy/prod#output/host",
            "github.com/org/repo/-/path/to/package/@abc123",
            "github.com/org/repo2/-/path/to/package2/@/deploy/prod#output/host",
        ),
        (
            "+/environment/production",
            "github.com/org/repo/-/path/to/package/@abc123",
            "+/environment/production",
        ),
        (
            "@/environment/production",
            "github.com/org/repo/-/path/to/package/@abc123",
            "@/environment/production",
        ),
        ("./@v3", "minimal/repo.git/-/", "minimal/repo.git/-/@v3"),
    ],
)
def test_relative_to(ref, relative_to, expected):
    result = parse(ref).relative_to(parse(relative_to))
    assert str(result) == expected


STRUCTURE_CASES = [
    ("", Ref()),
    (
        "github.com/org/repo/-/path/to/package/@/deploy/prod#output/host",
        Ref(
            repo="github.com/org/repo",
            filename="path/to/package",
            sub_path_type="deploy",
            sub_path="prod",
            fragment="output/host",
            release_or_intent=CURRENT_RELEASE,
        ),
    ),
    (
        "github.com/org/repo/-/path/to/package/@/deploy/prod/ABCDEF/logs",
        Ref(
            repo="github.com/org/repo",
            filename="path/to/package",
            release_or_intent=CURRENT_RELEASE,
            sub_path_type="deploy",
            sub_path="prod/ABCDEF/logs",
        ),
    ),
    ("path/to/package", Ref(filename="path/to/package")),
    (
        "github.com/org/repo/-/path/to/package",
        Ref(repo="github.com/org/repo", filename="path/to/package"),
    ),
    (
        "./-/path/to/package/@/deploy/prod#output/host",
        Ref(
            repo=".",
            filename="path/to/package",
            sub_path_type="deploy",
            sub_path="prod",
            fragment="output/host",
            release_or_intent=CURRENT_RELEASE,
        ),
    ),
    (
        "./-/path/to/package/@/call/build#output/output1",
        Ref(
            repo=".",
            filename="path/to/package",
            sub_path_type="call",
            sub_path="build",
            fragment="output/output1",
            release_or_intent=CURRENT_RELEASE,
        ),
    ),
    (
        "github.com/org/repo/-/path/to/package/@v1/deploy/prod#output/host",
        Ref(
            repo="github.com/org/repo",
            filename="path/to/package",
            release_or_intent=ReleaseOrIntent(ReleaseOrIntentType.RELEASE, "v1"),
            sub_path_type="deploy",
            sub_path="prod",
            fragment="output/host",
        ),
    ),
    (
        "github.com/org/repo/-/path/to/package/@v1",
        Ref(
            repo="github.com/org/repo",
            filename="path/to/package",
            release_or_intent=ReleaseOrIntent(ReleaseOrIntentType.RELEASE, "v1"),
        ),
    ),
    (
        "github.com/org/repo/-/@v1",
        Ref(
            repo="github.com/org/repo",
            filename="",
            release_or_intent=ReleaseOrIntent(ReleaseOrIntentType.RELEASE, "v1"),
        ),
    ),
    ("github.com/org/repo/-/", Ref(repo="github.com/org/repo", filename="")),
    (
        "github.com/org/repo/-/@abc",
        Ref(
            repo="github.com/org/repo",
            release_or_intent=ReleaseOrIntent(ReleaseOrIntentType.RELEASE, "abc"),
        ),
    ),
    ("frontend/@", Ref(filename="frontend", release_or_intent=CURRENT_RELEASE)),
    (
        "github.com/ocu-project/ocu/-/+/deploy/staging",
        Ref(
            repo="github.com/ocu-project/ocu",
            filename="",
            sub_path_type="deploy",
            sub_path="staging",
            release_or_intent=ReleaseOrIntent(ReleaseOrIntentType.INTENT, ""),
        ),
    ),
    (
        "./@/call/build#output/output1",
        Ref(
            repo="",
            filename=".",
            sub_path_type="call",
            sub_path="build",
            fragment="output/output1",
            release_or_intent=CURRENT_RELEASE,
        ),
    ),
    (
        "@/environment/production",
        Ref(
            is_global=True,
            release_or_intent=CURRENT_RELEASE,
            sub_path_type=SubPathType.ENVIRONMENT,
            sub_path="production",
        ),
    ),
    (
        "@/environment/staging#attributes/type",
        Ref(
            is_global=True,
            release_or_intent=CURRENT_RELEASE,
            sub_path_type=SubPathType.ENVIRONMENT,
            sub_path="staging",
            fragment="attributes/type",
        ),
    ),
    ("./-/path/to/package", Ref(repo=".", filename="path/to/package")),
    (
        "./call/build#output/output1",
        Ref(
            repo="",
            filename=".",
            sub_path_type="call",
            sub_path="build",
            fragment="output/output1",
            release_or_intent=ReleaseOrIntent(ReleaseOrIntentType.UNKNOWN, ""),
        ),
    ),
    (
        "minimal/repo/-/package.ocu.star/+commitid.01JY1YT9R0EDV5EKQH5FVZF64B/custom/approval",
        Ref(
            repo="minimal/repo",
            filename="package.ocu.star",
            release_or_intent=ReleaseOrIntent(
                ReleaseOrIntentType.INTENT, "commitid.01JY1YT9R0EDV5EKQH5FVZF64B"
            ),
            sub_path_type="custom",
            sub_path="approval",
        ),
    ),
]


@pytest.mark.parametrize("ref, expected", STRUCTURE_CASES)
def test_ref_structure(ref, expected):
    assert parse(ref) == expected


@pytest.mark.parametrize(
    "ref",
    [
        "repo.git/package/@/invalid/sub/path",
        "repo.git/package@/deploy/hello",
    ],
)
def test_invalid_refs(ref):
    with pytest.raises(RefError):
        parse(ref)


@pytest.mark.parametrize(
    "ref, expected",
    [
        ("./call/build/", "./call/build"),
        (
            "github.com/example/example/-/path/to/package/@/call/build#output/output1/",
            "github.com/example/example/-/path/to/package/@/call/build#output/output1",
        ),
        (
            "github.com/example/example/-/path/to/package/@/call/build/",
            "github.com/example/example/-/path/to/package/@/call/build",
        ),
    ],
)
def test_ref_normalization(ref, expected):
    assert str(parse(ref)) == expected


def test_parse_error_messages():
    with pytest.raises(RefError, match="unexpected release prefix in path"):
        parse("repo.git/package@/deploy/hello")
    with pytest.raises(RefError, match="invalid subpath type: invalid"):
        parse("repo.git/package/@/invalid/sub/path")
    with pytest.raises(RefError, match="unexpected '='"):
        parse("repo.git/package/@/custom/a=b")


def test_with_methods_do_not_modify_original():
    original = parse("github.com/org/repo/-/path/to/package/@v1/deploy/prod")
    changed = original.with_repo("other/repo").with_version("v2").with_fragment("out")
    assert str(original) == "github.com/org/repo/-/path/to/package/@v1/deploy/prod"
    assert str(changed) == "other/repo/-/path/to/package/@v2/deploy/prod#out"


def test_make_intent_and_release():
    ref = parse("github.com/org/repo/-/path/to/package/@v1")
    intent = ref.make_intent()
    assert str(intent) == "github.com/org/repo/-/path/to/package/+v1"
    assert intent.make_release() == ref


def test_sub_path_setters_and_join():
    ref = Ref(filename="pkg").with_sub_path_type(SubPathType.DEPLOY).with_sub_path("prod")
    assert ref.sub_path_type == "deploy"
    assert ref.join_sub_path("abc", "logs").sub_path == "prod/abc/logs"
    assert Ref().join_sub_path("", "").sub_path == ""


def test_is_relative_and_current_release():
    assert parse("./-/path/to/package").is_relative()
    assert not parse("github.com/org/repo/-/path").is_relative()
    assert parse("frontend/@").is_current_release()
    assert not parse("frontend/@v1").is_current_release()


def test_validate_global_with_package():
    ref = Ref(is_global=True, filename="pkg")
    with pytest.raises(RefError, match="package must be empty for global refs"):
        ref.validate()


def test_validate_sub_path_type():
    assert validate_sub_path_type("call") is SubPathType.CALL
    with pytest.raises(RefError):
        validate_sub_path_type("")
    with pytest.raises(RefError):
        validate_sub_path_type("bogus")


def test_json_round_trip():
    ref = parse("github.com/org/repo/-/path/to/package/@v1/deploy/prod#output/host")
    encoded = ref.to_json()
    assert encoded == '"github.com/org/repo/-/path/to/package/@v1/deploy/prod#output/host"'
    assert Ref.from_json(encoded) == ref


def test_from_json_errors():
    with pytest.raises(RefError, match="failed to unpack ref string"):
        Ref.from_json("not json")
    with pytest.raises(RefError, match="failed to parse ref"):
        Ref.from_json('"repo.git/package@/deploy/hello"')


def test_release_or_intent_str():
    assert str(ReleaseOrIntent(ReleaseOrIntentType.INTENT, "x")) == "+x"
    assert str(ReleaseOrIntent(ReleaseOrIntentType.RELEASE, "x")) == "@x"
    assert str(ReleaseOrIntent()) == ""


def test_debug_string():
    ref = parse("github.com/org/repo/-/path/to/package/@v1/deploy/prod#output/host")
    assert ref.debug_string() == (
        "global: false, repo: github.com/org/repo, package: path/to/package, "
        "releaseOrIntent: @v1, subPathType: deploy, subPath: prod, fragment: output/host"
    )