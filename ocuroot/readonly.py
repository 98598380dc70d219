"""A store wrapper that refuses every write."""

from __future__ import annotations

from typing import Any

from ocuroot.refstore import ReadOnlyError, Store

__all__ = ["ReadOnlyStore"]


class ReadOnlyStore(Store):
    """Allows reads from ``store`` and raises ReadOnlyError on writes."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def start_transaction(self) -> None:
        raise ReadOnlyError()

    def commit_transaction(self, message: str) -> None:
        raise ReadOnlyError()

    def get(self, ref: str) -> Any:
        return self.store.get(ref)

    def set(self, ref: str, value: Any) -> None:
        raise ReadOnlyError()

    def delete(self, ref: str) -> None:
        raise ReadOnlyError()

    def match(self, *args: str) -> list[str]:
        return self.store.match(*args)

    def link(self, ref: str, target: str) -> None:
        raise ReadOnlyError()

    def unlink(self, ref: str) -> None:
        raise ReadOnlyError()

    def get_links(self, ref: str) -> list[str]:
        return self.store.get_links(ref)

    def resolve_link(self, ref: str) -> str:
        return self.store.resolve_link(ref)

    def add_dependency(self, ref: str, dependency: str) -> None:
        raise ReadOnlyError()

    def remove_dependency(self, ref: str, dependency: str) -> None:
        raise ReadOnlyError()

    def get_dependencies(self, ref: str) -> list[str]:
        return self.store.get_dependencies(ref)

    def get_dependants(self, ref: str) -> list[str]:
        return self.store.get_dependants(ref)

    def close(self) -> None:
        self.store.close()