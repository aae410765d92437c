"""Compensating workflow for migrations whose ledger name predates a file rename.

An earlier release recorded ``00002_custom-user-fields`` in the ledger while
the script now ships as ``00002_custom_user_fields.sql``. A plain run against
such a ledger reports the hyphenated name as missing. Recovery renames the
file to the recorded name for the duration of one retry, so the ledger entry
matches and the script is skipped, then restores the shipped name.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path

from schemaledger.errors import LedgerConflict, MigrationMissingError
from schemaledger.migrations.applier import apply_migrations
from schemaledger.migrations.loader import load_migrations
from schemaledger.models.migrations import MigrationSet
from schemaledger.persistence.ledger_store import SQLiteLedgerStore

logger = logging.getLogger(__name__)

# Ledger name recorded by an older release -> name the script ships under now.
LEGACY_RENAMES: Mapping[str, str] = {
    "00002_custom-user-fields": "00002_custom_user_fields",
}


@contextmanager
def legacy_filename(script_path: Path, legacy_name: str) -> Iterator[Path]:
    """Rename ``script_path`` to ``legacy_name`` for the body, then rename it back.

    The directory may be a bind-mounted volume shared with operators, so the
    original name is restored on every exit path.
    """

    legacy_path = script_path.with_name(f"{legacy_name}{script_path.suffix}")
    if legacy_path.exists():
        raise FileExistsError(f"cannot rename {script_path.name}: {legacy_path.name} already exists")

    script_path.rename(legacy_path)
    logger.debug("Renamed %s to %s", script_path.name, legacy_path.name)
    try:
        yield legacy_path
    finally:
        legacy_path.rename(script_path)
        logger.debug("Restored %s", script_path.name)


async def apply_with_legacy_recovery(
    directory: str | Path,
    store: SQLiteLedgerStore,
    *,
    legacy_renames: Mapping[str, str] = LEGACY_RENAMES,
    migration_set: MigrationSet | None = None,
) -> int:
    """Apply pending migrations, retrying once under a known legacy filename.

    Only a conflict or missing-script failure naming one of
    ``legacy_renames`` triggers the retry. If the retry fails, its error is
    raised after the filename is restored; every other failure propagates
    untouched.
    """

    directory = Path(directory)
    if migration_set is None:
        migration_set = load_migrations(directory)

    try:
        return await apply_migrations(migration_set, store)
    except (LedgerConflict, MigrationMissingError) as exc:
        canonical_name = legacy_renames.get(exc.name)
        if canonical_name is None:
            raise
        script = migration_set.get(canonical_name)
        if script is None:
            raise

        logger.info("Correcting legacy migration name %s -> %s", exc.name, canonical_name)
        with legacy_filename(script.path, exc.name):
            return await apply_migrations(load_migrations(directory), store)


__all__ = ["LEGACY_RENAMES", "apply_with_legacy_recovery", "legacy_filename"]
