"""Exception types raised by the undoubling engine."""
from __future__ import annotations


class UndoubleError(Exception):
    """Base class for all undoubler errors."""


class QueryError(UndoubleError):
    """A database query could not be built or executed."""


class StorageError(UndoubleError):
    """The storage layer failed to open or delete a file."""

    def __init__(self, identifier: str, message: str) -> None:
        super().__init__(f"{identifier}: {message}")
        self.identifier = identifier


class StoragePermissionError(StorageError):
    """The storage layer refused access; no further deletions will succeed."""


class ConfigurationError(UndoubleError):
    """A destructive operation was requested without the required options."""
