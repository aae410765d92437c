"""Typed failures raised by the migration engine."""

from __future__ import annotations


class MigrationError(Exception):
    """Base class for every failure the engine surfaces to its caller."""


class LoadError(MigrationError):
    """Raised when the migrations directory cannot be turned into a MigrationSet."""


class LedgerConflict(MigrationError):
    """Raised when an on-disk script no longer matches its ledger checksum."""

    def __init__(self, name: str, expected_checksum: str, actual_checksum: str) -> None:
        super().__init__(
            f"Migration {name} checksum mismatch: "
            f"ledger={expected_checksum}, current={actual_checksum}. "
            "Previously applied migrations must not be modified."
        )
        self.name = name
        self.expected_checksum = expected_checksum
        self.actual_checksum = actual_checksum


class MigrationMissingError(MigrationError):
    """Raised when the ledger references a script that is not on disk."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Migration {name} is recorded in the ledger but has no script on disk")
        self.name = name


class ExecutionError(MigrationError):
    """Raised when the database rejects a script's statements."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Migration {name} failed to execute: {reason}")
        self.name = name


class LedgerWriteError(MigrationError):
    """Raised when a ledger row cannot be inserted.

    If this surfaces after a non-transactional script ran, the script's
    effects are in the database without a ledger row, and the next run
    will execute it again.
    """

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Could not record migration {name} in the ledger: {reason}")
        self.name = name


__all__ = [
    "ExecutionError",
    "LedgerConflict",
    "LedgerWriteError",
    "LoadError",
    "MigrationError",
    "MigrationMissingError",
]
