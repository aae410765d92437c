"""Schema migration engine: load, verify against the ledger, apply, recover."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from pathlib import Path

from schemaledger.core.logging import correlation_scope
from schemaledger.errors import (
    ExecutionError,
    LedgerConflict,
    LedgerWriteError,
    LoadError,
    MigrationError,
    MigrationMissingError,
)
from schemaledger.migrations.applier import apply_migrations, migration_status, pending_migrations
from schemaledger.migrations.checksum import checksum
from schemaledger.migrations.loader import load_migrations
from schemaledger.migrations.recovery import LEGACY_RENAMES, apply_with_legacy_recovery
from schemaledger.models.migrations import MigrationStatus
from schemaledger.persistence.ledger_store import DEFAULT_LEDGER_TABLE, SQLiteLedgerStore

logger = logging.getLogger(__name__)


async def run_migrations(
    db_path: str,
    migrations_dir: str | Path,
    *,
    table: str = DEFAULT_LEDGER_TABLE,
    legacy_renames: Mapping[str, str] = LEGACY_RENAMES,
) -> int:
    """Apply all pending migrations in order and return how many were applied.

    Callers must not run this concurrently against the same database; it is
    meant to run once at startup before the service accepts traffic.
    """

    with correlation_scope(run_id=uuid.uuid4().hex[:12]):
        logger.info("Applying migrations from %s", migrations_dir)
        migration_set = load_migrations(migrations_dir)
        async with SQLiteLedgerStore(db_path, table=table) as store:
            applied = await apply_with_legacy_recovery(
                migrations_dir,
                store,
                legacy_renames=legacy_renames,
                migration_set=migration_set,
            )
        logger.info("Finished applying migrations (%d applied)", applied)
        return applied


async def get_migration_status(
    db_path: str,
    migrations_dir: str | Path,
    *,
    table: str = DEFAULT_LEDGER_TABLE,
) -> list[MigrationStatus]:
    migration_set = load_migrations(migrations_dir)
    async with SQLiteLedgerStore(db_path, table=table) as store:
        entries = await store.list_entries()
    return migration_status(migration_set, entries)


__all__ = [
    "ExecutionError",
    "LEGACY_RENAMES",
    "LedgerConflict",
    "LedgerWriteError",
    "LoadError",
    "MigrationError",
    "MigrationMissingError",
    "apply_migrations",
    "apply_with_legacy_recovery",
    "checksum",
    "get_migration_status",
    "load_migrations",
    "pending_migrations",
    "run_migrations",
]
