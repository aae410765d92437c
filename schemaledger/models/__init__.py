"""Domain models for migration scripts and the ledger."""

from schemaledger.models.migrations import (
    LedgerEntry,
    MigrationScript,
    MigrationSet,
    MigrationState,
    MigrationStatus,
)

__all__ = [
    "LedgerEntry",
    "MigrationScript",
    "MigrationSet",
    "MigrationState",
    "MigrationStatus",
]
