# ocuroot

Building blocks for release and deployment pipelines, using only the
Python standard library:

- `ocuroot.refs`: a small addressing language for packages, releases,
  intents, deployments and the values stored under them, e.g.
  `github.com/org/repo/-/path/to/package/@v1/deploy/prod#output/host`
- `ocuroot.globs` and `ocuroot.reduce`: glob patterns, and shortening a
  ref until it matches one
- `ocuroot.refstore`, `ocuroot.fsrefstore`, `ocuroot.listen`,
  `ocuroot.readonly`, `ocuroot.increment`: a store interface, a
  file-system store keyed by refs, and wrappers around stores
- `ocuroot.sdkdata` and `ocuroot.models`: package, phase, work and state
  records with dictionary conversion, and package validation
- `ocuroot.backend`: the data exchanged with script services and a
  `Backend` holding those services
- `ocuroot.stacktrees` and `ocuroot.handoff`: static call trees and
  handoff graphs worked out from the source of a configuration script

## Installing

```
pip install .
```

Running the tests:

```
pip install ".[test]"
pytest
```

## Refs

A ref is made of an optional repo (ended by `/-/`), a package file, a
release (`@`) or intent (`+`), a sub-path type (`deploy`, `call`,
`custom` or `environment`) with a sub-path, and a `#fragment`. A ref
starting with `@` or `+` alone is global.

```python
from ocuroot.refs import parse, RefError

ref = parse("github.com/org/repo/-/path/to/package/@v1/deploy/prod#output/host")
print(str(ref))                      # printed back unchanged
print(str(ref.with_version("v2")))   # .../@v2/deploy/prod#output/host
print(ref.debug_string())

relative = parse("./call/build#output/output1")
base = parse("github.com/org/repo/-/path/to/package/@abc123")
print(str(relative.relative_to(base)))
# github.com/org/repo/-/path/to/package/@abc123/call/build#output/output1

try:
    parse("repo.git/package/@/invalid/sub/path")
except RefError as err:
    print(err)                       # invalid subpath type: invalid
```

`Ref` is a frozen dataclass: `with_repo`, `with_filename`,
`make_intent`, `make_release`, `with_version`, `with_sub_path_type`,
`with_sub_path`, `join_sub_path` and `with_fragment` all return a new
ref. `to_json` and `Ref.from_json` convert a ref to and from its JSON
string form. `validate_sub_path_type` checks a sub-path type name.

### Globs and reducing a ref

`compile_glob(pattern, separator)` supports `*`, `**`, `?`, `[...]`,
`{a,b}` and `\` escapes; `*` and `?` do not cross the separator
characters. A bad pattern raises `GlobError`.

```python
from ocuroot.globs import compile_glob
from ocuroot.reduce import reduce

glob = compile_glob("**/{@,+}*", "/")
print(reduce("github.com/example/myrepo/-/path/to/release.ocu.star/@commitid/call/build", glob))
# github.com/example/myrepo/-/path/to/release.ocu.star/@commitid
```

`reduce` raises `NoMatchError` when no prefix of the ref matches.

## Ref stores

`Store` is the abstract interface; stores are context managers that
close on leaving the `with` block. `FSRefStore` keeps each value as JSON
in `refs/<ref>/@object.json` under its base directory.

```python
from ocuroot.fsrefstore import FSRefStore
from ocuroot.refstore import RefNotFoundError

with FSRefStore("/tmp/state") as store:
    store.set("repo.git/package/@v1/deploy/staging", {"host": "staging.example.com"})
    store.link("repo.git/package/@/deploy/staging", "repo.git/package/@v1/deploy/staging")

    print(store.get("repo.git/package/@/deploy/staging#host"))   # staging.example.com
    print(store.resolve_link("repo.git/package/@/deploy/staging"))
    print(store.get_links("repo.git/package/@v1/deploy/staging"))
    print(store.match("repo.git/package/@*/**"))

    store.add_dependency("repo.git/package/@v1/deploy/staging", "other.git/lib/@v3/deploy/staging")
    print(store.get_dependencies("repo.git/package/@v1/deploy/staging"))
    print(store.get_dependants("other.git/lib/@v3/deploy/staging"))

    try:
        store.get("repo.git/package/@v9/deploy/staging")
    except RefNotFoundError:
        print("not there")
```

A fragment walks into the stored JSON object; setting or deleting by
fragment raises `ValueError`. On the file system, transactions do
nothing: every write lands at once.

Wrapping a store:

```python
from ocuroot.listen import listen_to_state_changes
from ocuroot.readonly import ReadOnlyStore
from ocuroot.increment import increment_path

watched = listen_to_state_changes(lambda ref: print("changed", ref), store, "**/deploy/**")
read_only = ReadOnlyStore(store)     # writes raise ReadOnlyError

print(increment_path(store, "repo.git/package/@v1/custom/run-"))
```

A `StateListener` reports each `set` and `delete` whose ref matches one
of its globs (every one, if it has none); inside a transaction the
reports wait until `commit_transaction`. `increment_path` returns the
prefix followed by one more than the highest number found after it
among the matching refs, or `1` if none match.

## Package data

```python
from ocuroot.sdkdata import Package

package = Package.from_dict({
    "phases": [
        {"name": "staging", "work": [{"deploy": {"environment": "staging"}}]},
        {"name": "production", "work": [{"deploy": {"environment": "staging"}}]},
    ],
})
for error in package.validate():
    print(error)
# Environment 'staging' is used in 2 phases, should be used in exactly one
```

`validate` also reports call names used by more than one work item.
`ocuroot.models` holds the state records `Intent`, `WorkItem`,
`FunctionState`, `LogEntry`, `Link` and `EnvironmentState`, the `Status`
and `WorkType` enums, and `new_id()`, which returns a new ULID.

## Handoff graphs

```python
from ocuroot.stacktrees import build_stack_trees
from ocuroot.handoff import build_handoff_graph, identify_sdk_version

source = open("release.ocu.star").read()
print(identify_sdk_version("release.ocu.star", source))   # "" when there is no ocuroot(...) call
trees = build_stack_trees(source, "release.ocu.star")
for edge in build_handoff_graph(trees, "build"):
    print(edge.to_dict())
```

Scripts are read with Python's own parser, so they must be valid Python.
`handoff`, `approval` and `delay` calls become edges to the function they
name, and `done` calls become exit edges. `render_function(name,
position, require_top_level)` describes a function by name and position.

## What this package does not do

It does not run configuration scripts: there is no interpreter for them,
no built-in functions for scripts to call, and `Backend` only holds the
services you give it. There is no command-line tool, and the only store
is the local file-system one; nothing is synchronised with a remote
repository.