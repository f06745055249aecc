"""Exception hierarchy for storage, ledger, and sweep failures."""

from __future__ import annotations

from os import PathLike


class FileManagerError(RuntimeError):
    """Base exception for every failure surfaced by the file manager."""

    def __init__(
        self,
        message: str,
        *,
        path: str | PathLike | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None
        self.operation = operation

    def __str__(self) -> str:
        parts = []
        if self.operation:
            parts.append(f"{self.operation}:")
        parts.append(self.message)
        if self.path:
            parts.append(f"({self.path})")
        return " ".join(parts)


class StorageIOError(FileManagerError):
    """Raised when opening, reading, writing, creating or removing a path fails."""


class HashError(StorageIOError):
    """Raised when a file cannot be fully read for digesting."""


class WriteError(StorageIOError):
    """Raised when a blob cannot be created in the storage root."""


class PersistenceError(FileManagerError):
    """Raised when the version ledger or action log cannot be read or written."""


class SweepAborted(FileManagerError):
    """Raised when a duplicate sweep stops on its first error.

    The original error is chained as ``__cause__``. Files removed before the
    abort stay removed.
    """
