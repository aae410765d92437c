"""Apply pending migrations exactly once, guarded by the ledger's checksums."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from datetime import UTC, datetime

from schemaledger.core.logging import correlation_scope
from schemaledger.errors import (
    ExecutionError,
    LedgerConflict,
    LedgerWriteError,
    MigrationMissingError,
)
from schemaledger.models.migrations import (
    LedgerEntry,
    MigrationScript,
    MigrationSet,
    MigrationState,
    MigrationStatus,
)
from schemaledger.persistence.ledger_store import SQLiteLedgerStore

logger = logging.getLogger(__name__)


def verify_ledger(migration_set: MigrationSet, entries: Iterable[LedgerEntry]) -> None:
    """Check the ledger against the scripts on disk before anything runs.

    A script recorded under its own name must still hash to the recorded
    checksum, and every recorded name must still have a script.
    """

    ledger = {entry.name: entry for entry in entries}
    for script in migration_set:
        entry = ledger.get(script.name)
        if entry is not None and entry.checksum != script.checksum:
            raise LedgerConflict(script.name, entry.checksum, script.checksum)

    on_disk = set(migration_set.names)
    for name in sorted(ledger):
        if name not in on_disk:
            raise MigrationMissingError(name)


def pending_migrations(
    migration_set: MigrationSet,
    entries: Iterable[LedgerEntry],
) -> list[MigrationScript]:
    applied = {entry.name for entry in entries}
    return [script for script in migration_set if script.name not in applied]


def migration_status(
    migration_set: MigrationSet,
    entries: Iterable[LedgerEntry],
) -> list[MigrationStatus]:
    """Describe every script and ledger row without executing anything."""
    ledger = {entry.name: entry for entry in entries}
    rows: list[MigrationStatus] = []
    for script in migration_set:
        entry = ledger.pop(script.name, None)
        if entry is None:
            state = MigrationState.pending
        elif entry.checksum == script.checksum:
            state = MigrationState.applied
        else:
            state = MigrationState.conflict
        rows.append(
            MigrationStatus(
                name=script.name,
                state=state,
                sequence=script.sequence,
                checksum=script.checksum,
                applied_at=entry.applied_at if entry is not None else None,
            )
        )
    for entry in sorted(ledger.values(), key=lambda item: item.name):
        rows.append(
            MigrationStatus(
                name=entry.name,
                state=MigrationState.missing,
                checksum=entry.checksum,
                applied_at=entry.applied_at,
            )
        )
    return rows


async def _apply_one(script: MigrationScript, store: SQLiteLedgerStore) -> None:
    if script.transactional:
        try:
            async with store.transaction():
                await store.execute_script(script.content)
                await store.record(_entry_for(script))
        except sqlite3.Error as exc:
            raise ExecutionError(script.name, str(exc)) from exc
        return

    try:
        await store.execute_script(script.content)
    except sqlite3.Error as exc:
        raise ExecutionError(script.name, str(exc)) from exc
    async with store.transaction():
        await store.record(_entry_for(script))


def _entry_for(script: MigrationScript) -> LedgerEntry:
    return LedgerEntry(name=script.name, checksum=script.checksum, applied_at=datetime.now(UTC))


async def apply_migrations(migration_set: MigrationSet, store: SQLiteLedgerStore) -> int:
    """Apply every pending script in sequence order and return how many ran.

    The ledger is read once. Any conflict or missing script aborts before a
    single statement executes; an execution or ledger failure aborts the
    remaining sequence while earlier scripts stay committed.
    """

    entries = await store.list_entries()
    verify_ledger(migration_set, entries)

    pending = pending_migrations(migration_set, entries)
    skipped = len(migration_set) - len(pending)
    if skipped:
        logger.debug("Skipping %d already applied migrations", skipped)
    if not pending:
        logger.info("Schema is up to date (%d migrations applied)", skipped)
        return 0

    logger.info("Found %d pending migrations out of %d", len(pending), len(migration_set))
    applied = 0
    for script in pending:
        with correlation_scope(migration=script.name):
            logger.info("Applying migration %s", script.name)
            try:
                await _apply_one(script, store)
            except (ExecutionError, LedgerWriteError):
                logger.error("Migration %s failed; stopping after %d applied", script.name, applied)
                raise
            applied += 1
            logger.info("Applied migration %s", script.name)
    return applied


__all__ = ["apply_migrations", "migration_status", "pending_migrations", "verify_ledger"]
