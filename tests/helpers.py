"""Shared test helpers."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from schemaledger.migrations.checksum import checksum
from schemaledger.models.migrations import LedgerEntry


def write_migration(directory: Path, filename: str, sql: str) -> Path:
    path = directory / filename
    path.write_text(sql, encoding="utf-8")
    return path


def entry_for(name: str, sql: str) -> LedgerEntry:
    """Ledger row as a previous run would have recorded it for ``sql``."""
    return LedgerEntry(name=name, checksum=checksum(sql), applied_at=datetime.now(UTC))


async def table_names(db_path: Path) -> set[str]:
    async with aiosqlite.connect(str(db_path)) as db:
        cursor = await db.execute("SELECT name FROM sqlite_master WHERE type='table'")
        return {row[0] for row in await cursor.fetchall()}
