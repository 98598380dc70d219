"""A store wrapper that reports writes to a callback."""

from __future__ import annotations

from typing import Any, Callable, Sequence

from ocuroot.globs import Glob, compile_glob
from ocuroot.refstore import Store

__all__ = ["StateListener", "listen_to_state_changes"]


class StateListener(Store):
    """Forwards every call to ``store`` and reports sets and deletes of matching refs.

    Inside a transaction the reports are held back until the commit.
    """

    def __init__(
        self,
        store: Store,
        filters: Sequence[Glob],
        callback: Callable[[str], Any],
    ) -> None:
        self.store = store
        self.filters = list(filters)
        self.callback = callback
        self._in_transaction = False
        self._transaction_refs: list[str] = []

    def _notify(self, ref: str, in_transaction: bool) -> None:
        if in_transaction:
            self._transaction_refs.append(ref)
            return
        if not self.filters or any(f.match(ref) for f in self.filters):
            self.callback(ref)

    def start_transaction(self) -> None:
        self._in_transaction = True
        self.store.start_transaction()

    def commit_transaction(self, message: str) -> None:
        for ref in self._transaction_refs:
            self._notify(ref, False)
        self._in_transaction = False
        self._transaction_refs = []
        self.store.commit_transaction(message)

    def get(self, ref: str) -> Any:
        return self.store.get(ref)

    def set(self, ref: str, value: Any) -> None:
        self._notify(ref, self._in_transaction)
        self.store.set(ref, value)

    def delete(self, ref: str) -> None:
        self._notify(ref, self._in_transaction)
        self.store.delete(ref)

    def match(self, *args: str) -> list[str]:
        return self.store.match(*args)

    def link(self, ref: str, target: str) -> None:
        self.store.link(ref, target)

    def unlink(self, ref: str) -> None:
        self.store.unlink(ref)

    def get_links(self, ref: str) -> list[str]:
        return self.store.get_links(ref)

    def resolve_link(self, ref: str) -> str:
        return self.store.resolve_link(ref)

    def add_dependency(self, ref: str, dependency: str) -> None:
        self.store.add_dependency(ref, dependency)

    def remove_dependency(self, ref: str, dependency: str) -> None:
        self.store.remove_dependency(ref, dependency)

    def get_dependencies(self, ref: str) -> list[str]:
        return self.store.get_dependencies(ref)

    def get_dependants(self, ref: str) -> list[str]:
        return self.store.get_dependants(ref)

    def close(self) -> None:
        self.store.close()


def listen_to_state_changes(
    callback: Callable[[str], Any], store: Store, *args: str
) -> StateListener:
    """Wrap ``store`` so ``callback`` hears of writes to refs matching any of the globs.

    With no globs every write is reported.
    """
    return StateListener(store, [compile_glob(pattern) for pattern in args], callback)