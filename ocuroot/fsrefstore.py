"""A ref store kept as JSON files in a directory tree."""

from __future__ import annotations

import json
import os
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ocuroot.globs import GlobError, compile_glob
from ocuroot.refs import Ref, parse
from ocuroot.refstore import RefNotFoundError, Store

__all__ = ["FSRefStore", "StorageKind", "StorageObject"]

STATE_VERSION = 1
_STORE_INFO_FILE = ".ocuroot-store"
# Files are prefixed with @ so they cannot clash with valid refs.
_CONTENT_FILE = "@object.json"
_REF_MARKER_FILE = "@ref.txt"
_DEPENDENCIES_DIR = "dependencies"
_REFS_DIR = "refs"


class StorageKind(str, Enum):
    REF = "ref"
    LINK = "link"


@dataclass
class StorageObject:
    """The envelope written to disk for each stored ref or link."""

    kind: StorageKind
    body: Any = None
    body_type: str = ""
    links: list[str] = field(default_factory=list)

    def to_json(self) -> str:
        data: dict[str, Any] = {"kind": StorageKind(self.kind).value}
        if self.body_type:
            data["body_type"] = self.body_type
        if self.links:
            data["links"] = list(self.links)
        data["body"] = self.body
        return json.dumps(data, indent=2)

    @classmethod
    def from_json(cls, text: str | bytes) -> StorageObject:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("storage object must be a JSON object")
        return cls(
            kind=StorageKind(data.get("kind", "")),
            body=data.get("body"),
            body_type=data.get("body_type") or "",
            links=list(data.get("links") or []),
        )


def _join(*parts: str) -> str:
    return os.path.normpath(os.path.join(*parts))


def _dirname(path: str) -> str:
    if "/" not in path:
        return "."
    cleaned = posixpath.normpath(path[: path.rindex("/") + 1])
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _read_object(path: str) -> StorageObject | None:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    try:
        return StorageObject.from_json(text)
    except ValueError as err:
        raise ValueError(f"failed to unmarshal storage object: {err}") from err


def _write_object(path: str, obj: StorageObject) -> None:
    Path(path).write_text(obj.to_json(), encoding="utf-8")


class FSRefStore(Store):
    """Stores each ref as ``refs/<ref>/@object.json`` under a base directory."""

    def __init__(self, base_path: str | os.PathLike) -> None:
        self.base_path = os.fspath(base_path)
        info_file = Path(self.base_path, _STORE_INFO_FILE)
        try:
            text = info_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            info_file.parent.mkdir(parents=True, exist_ok=True)
            info_file.write_text(
                json.dumps({"version": STATE_VERSION}, separators=(",", ":")),
                encoding="utf-8",
            )
            version = STATE_VERSION
        else:
            try:
                info = json.loads(text)
            except json.JSONDecodeError as err:
                raise ValueError(f"failed to unmarshal store info: {err}") from err
            if not isinstance(info, dict):
                raise ValueError("failed to unmarshal store info: expected an object")
            version = info.get("version", 0)
        if version != STATE_VERSION:
            raise ValueError(
                f"incompatible store version: expected {STATE_VERSION}, got {version}"
            )

    def start_transaction(self) -> None:
        """Transactions are not needed on the filesystem; writes land immediately."""

    def commit_transaction(self, message: str) -> None:
        """Transactions are not needed on the filesystem; writes land immediately."""

    def close(self) -> None:
        """Nothing is held open between calls."""

    def get(self, ref: str) -> Any:
        parsed = parse(ref)
        target = self._resolve_link(str(parsed.with_fragment("")))
        obj = _read_object(self._path_to_ref(target))
        if obj is None:
            raise RefNotFoundError()
        if obj.kind != StorageKind.REF:
            raise ValueError(f"expected ref, got {obj.kind.value}")
        if not parsed.fragment:
            return obj.body

        content = obj.body
        for part in parsed.fragment.split("/"):
            if not isinstance(content, dict) or content.get(part) is None:
                raise RefNotFoundError()
            content = content[part]
        return content

    def set(self, ref: str, value: Any) -> None:
        target = self._resolve_link(ref)
        if target.fragment:
            raise ValueError("setting by fragment not supported")
        body = json.loads(json.dumps(value))
        path = self._path_to_ref(target)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        obj = StorageObject(
            kind=StorageKind.REF,
            body=body,
            body_type=type(value).__name__,
            links=self._links_at_path(path),
        )
        _write_object(path, obj)

    def delete(self, ref: str) -> None:
        target = parse(str(self._resolve_link(ref)))
        if target.fragment:
            raise ValueError("delete by fragment not supported")
        os.remove(self._path_to_ref(target))

    def link(self, ref: str, target: str) -> None:
        link_ref = parse(ref)
        target_ref = parse(target)
        path = self._path_to_ref(link_ref)

        existing = _read_object(path)
        if existing is not None:
            if existing.kind != StorageKind.LINK:
                raise ValueError("existing ref is not a link, cannot overwrite")
            old_target = existing.body
            if old_target == target:
                return
            self._modify_ref_list(parse(old_target), ref, add=False)

        os.makedirs(os.path.dirname(path), exist_ok=True)
        _write_object(path, StorageObject(kind=StorageKind.LINK, body=str(target_ref)))
        self._modify_ref_list(target_ref, str(link_ref), add=True)

    def unlink(self, ref: str) -> None:
        path = self._path_to_ref(parse(ref))
        if os.path.exists(path):
            os.remove(path)

    def get_links(self, ref: str) -> list[str]:
        return self._links_at_path(self._path_to_ref(parse(ref)))

    def resolve_link(self, ref: str) -> str:
        return str(self._resolve_link(ref))

    def match(self, *args: str) -> list[str]:
        return sorted(set(self._match_refs(args, _REFS_DIR)))

    def add_dependency(self, ref: str, dependency: str) -> None:
        dependency_marker = _join(self._dependencies_root(), ref, dependency, _REF_MARKER_FILE)
        dependant_marker = _join(self._dependants_root(), dependency, ref, _REF_MARKER_FILE)
        os.makedirs(os.path.dirname(dependency_marker), exist_ok=True)
        os.makedirs(os.path.dirname(dependant_marker), exist_ok=True)
        Path(dependency_marker).write_text(ref, encoding="utf-8")
        Path(dependant_marker).write_text(dependency, encoding="utf-8")

    def remove_dependency(self, ref: str, dependency: str) -> None:
        os.remove(_join(self._dependencies_root(), ref, dependency, _REF_MARKER_FILE))
        os.remove(_join(self._dependants_root(), dependency, ref, _REF_MARKER_FILE))

    def get_dependencies(self, ref: str) -> list[str]:
        return self._marked_refs_under(_join(self._dependencies_root(), ref))

    def get_dependants(self, ref: str) -> list[str]:
        return self._marked_refs_under(_join(self._dependants_root(), ref))

    def _path_to_ref(self, ref: Ref) -> str:
        return _join(self.base_path, _REFS_DIR, str(ref), _CONTENT_FILE)

    def _dependencies_root(self) -> str:
        return _join(self.base_path, _DEPENDENCIES_DIR, "dependencies")

    def _dependants_root(self) -> str:
        return _join(self.base_path, _DEPENDENCIES_DIR, "dependants")

    def _links_at_path(self, path: str) -> list[str]:
        obj = _read_object(path)
        return list(obj.links) if obj is not None else []

    def _modify_ref_list(self, ref: Ref, link: str, add: bool) -> None:
        path = self._path_to_ref(ref)
        obj = _read_object(path)
        if obj is None:
            return
        links = set(obj.links)
        if add:
            links.add(link)
        else:
            links.discard(link)
        obj.links = sorted(links)
        _write_object(path, obj)

    def _match_refs(self, patterns: tuple[str, ...], base_dir: str) -> list[str]:
        globs = []
        for pattern in patterns:
            try:
                globs.append(compile_glob(pattern, "/"))
            except GlobError as err:
                raise GlobError(f"failed to compile glob {pattern}: {err}") from err

        directory = _join(self.base_path, base_dir)
        if not os.path.exists(directory):
            return []

        matches = []
        for current, dirnames, filenames in os.walk(directory):
            dirnames.sort()
            if _CONTENT_FILE not in filenames:
                continue
            candidate = Path(os.path.relpath(current, directory)).as_posix()
            if any(glob.match(candidate) for glob in globs):
                matches.append(candidate)
        return matches

    @staticmethod
    def _marked_refs_under(root: str) -> list[str]:
        if not os.path.exists(root):
            return []
        if not os.path.isdir(root):
            if os.path.basename(root) == _REF_MARKER_FILE:
                return [Path(os.path.relpath(os.path.dirname(root), root)).as_posix()]
            return []

        found: list[str] = []

        def visit(directory: str) -> None:
            with os.scandir(directory) as listing:
                entries = sorted(listing, key=lambda entry: entry.name)
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    visit(entry.path)
                elif entry.name == _REF_MARKER_FILE:
                    found.append(Path(os.path.relpath(directory, root)).as_posix())

        visit(root)
        return found

    def _check_link(self, ref: str) -> str | None:
        obj = _read_object(self._path_to_ref(parse(ref)))
        if obj is None or obj.kind != StorageKind.LINK:
            return None
        if not isinstance(obj.body, str):
            raise ValueError("link body must be a string")
        return obj.body

    def _resolve_link(self, ref: str) -> Ref:
        parsed = parse(ref)
        found_link = ""
        resolved = ""
        candidate = str(parsed.with_fragment(""))
        while "/" in candidate:
            target = self._check_link(candidate)
            if target is not None:
                found_link = candidate
                resolved = target
                break
            parent = _dirname(candidate)
            if parent == candidate:
                break
            candidate = parent

        if not resolved:
            return parsed
        resolved_ref = ref.replace(found_link, resolved, 1)
        try:
            return parse(resolved_ref)
        except ValueError as err:
            raise type(err)(f"{resolved_ref}: {err}") from err