"""The interface shared by all ref stores and the errors they raise."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

__all__ = ["ReadOnlyError", "RefNotFoundError", "Store"]


class RefNotFoundError(LookupError):
    """Raised when a ref, or a fragment within it, holds no value."""

    def __init__(self, message: str = "ref not found") -> None:
        super().__init__(message)


class ReadOnlyError(PermissionError):
    """Raised when a write is attempted on a read-only store."""

    def __init__(self, message: str = "read-only store") -> None:
        super().__init__(message)


class Store(ABC):
    """A keyed store of JSON values addressed by ref strings.

    Stores are context managers: leaving the ``with`` block closes them.
    """

    @abstractmethod
    def start_transaction(self) -> None:
        """Begin grouping subsequent writes into one transaction."""

    @abstractmethod
    def commit_transaction(self, message: str) -> None:
        """Commit the writes made since the transaction started."""

    @abstractmethod
    def get(self, ref: str) -> Any:
        """Return the value stored at ``ref``; raise RefNotFoundError if absent."""

    @abstractmethod
    def set(self, ref: str, value: Any) -> None:
        """Store ``value`` at ``ref``."""

    @abstractmethod
    def delete(self, ref: str) -> None:
        """Remove the value stored at ``ref``."""

    @abstractmethod
    def match(self, *args: str) -> list[str]:
        """Return, sorted, every stored ref matching any of the glob patterns."""

    @abstractmethod
    def link(self, ref: str, target: str) -> None:
        """Make ``ref`` point to ``target``."""

    @abstractmethod
    def unlink(self, ref: str) -> None:
        """Remove the link stored at ``ref``."""

    @abstractmethod
    def get_links(self, ref: str) -> list[str]:
        """Return the refs that link to ``ref``."""

    @abstractmethod
    def resolve_link(self, ref: str) -> str:
        """Return ``ref`` with any link along its path followed."""

    @abstractmethod
    def add_dependency(self, ref: str, dependency: str) -> None:
        """Record that ``ref`` depends on ``dependency``."""

    @abstractmethod
    def remove_dependency(self, ref: str, dependency: str) -> None:
        """Forget that ``ref`` depends on ``dependency``."""

    @abstractmethod
    def get_dependencies(self, ref: str) -> list[str]:
        """Return the refs that ``ref`` depends on."""

    @abstractmethod
    def get_dependants(self, ref: str) -> list[str]:
        """Return the refs that depend on ``ref``."""

    @abstractmethod
    def close(self) -> None:
        """Release any resources held by the store."""

    def __enter__(self) -> Store:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()