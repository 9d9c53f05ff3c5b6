# src/storage/errors.py - v1
"""Errors raised by the persisted stores."""

from __future__ import annotations


class StorageError(Exception):
    """Base class for state-directory persistence errors."""


class StorageWriteError(StorageError):
    """Both the atomic and the direct write of a state file failed."""


class NotFoundError(StorageError, LookupError):
    """A requested ledger entry does not exist."""


class CeremonyNotFoundError(NotFoundError):
    def __init__(self, ceremony: str) -> None:
        self.ceremony = ceremony
        super().__init__(f"Ceremony '{ceremony}' not found in history")


class ExecutionNotFoundError(NotFoundError):
    def __init__(self, ceremony: str, execution_id: str) -> None:
        self.ceremony = ceremony
        self.execution_id = execution_id
        super().__init__(
            f"Execution '{execution_id}' not found for ceremony '{ceremony}'"
        )
