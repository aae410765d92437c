"""SQLite-backed migration ledger: which scripts ran, with which checksum, and when."""

from __future__ import annotations

import logging
import re
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from types import TracebackType

import aiosqlite

from schemaledger.errors import LedgerWriteError
from schemaledger.models.migrations import LedgerEntry

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_TABLE = "auth_migrations"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteLedgerStore:
    """Holds one connection for a whole migration run.

    The connection runs in autocommit mode; ``transaction()`` opens an
    explicit transaction so a script and its ledger row commit together.
    """

    def __init__(self, db_path: str, table: str = DEFAULT_LEDGER_TABLE) -> None:
        if not _IDENTIFIER.match(table):
            raise ValueError(f"ledger table name must be a plain identifier, got {table!r}")
        self.db_path = db_path
        self.table = table
        self._conn: aiosqlite.Connection | None = None
        self._begin_pending = False

    async def __aenter__(self) -> SQLiteLedgerStore:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def open(self) -> aiosqlite.Connection:
        if self._conn is not None:
            raise RuntimeError("ledger store is already open")
        conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        try:
            await conn.execute(
                f"CREATE TABLE IF NOT EXISTS {self.table} ("
                "  name TEXT PRIMARY KEY,"
                "  checksum TEXT NOT NULL,"
                "  applied_at TEXT NOT NULL"
                ")"
            )
        except BaseException:
            await conn.close()
            raise
        self._conn = conn
        logger.debug("Opened migration ledger %s in %s", self.table, self.db_path)
        return conn

    async def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        if conn.in_transaction:
            await conn.execute("ROLLBACK")
        await conn.close()
        logger.debug("Closed migration ledger %s", self.table)

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("ledger store is not open")
        return self._conn

    async def list_entries(self) -> list[LedgerEntry]:
        conn = self._connection()
        cursor = await conn.execute(
            f"SELECT name, checksum, applied_at FROM {self.table} ORDER BY applied_at, name"
        )
        rows = await cursor.fetchall()
        return [
            LedgerEntry(name=row[0], checksum=row[1], applied_at=_parse_dt(row[2]))
            for row in rows
        ]

    async def record(self, entry: LedgerEntry) -> None:
        conn = self._connection()
        await self._begin_if_pending(conn)
        try:
            await conn.execute(
                f"INSERT INTO {self.table} (name, checksum, applied_at) VALUES (?, ?, ?)",
                (entry.name, entry.checksum, entry.applied_at.astimezone(timezone.utc).isoformat()),
            )
        except sqlite3.IntegrityError as exc:
            raise LedgerWriteError(entry.name, f"an entry named {entry.name} already exists") from exc
        except sqlite3.Error as exc:
            raise LedgerWriteError(entry.name, str(exc)) from exc

    async def execute_script(self, sql: str) -> None:
        """Run every statement in ``sql``, inside the open transaction if any.

        ``executescript`` commits whatever transaction is pending before it
        starts, so a transaction that has not issued BEGIN yet gets it
        prepended to the script instead.
        """

        conn = self._connection()
        if conn.in_transaction:
            raise RuntimeError("a script must be the first statement of its transaction")
        if self._begin_pending:
            self._begin_pending = False
            sql = f"BEGIN;\n{sql}"
        await conn.executescript(sql)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        conn = self._connection()
        if conn.in_transaction or self._begin_pending:
            raise RuntimeError("nested ledger transactions are not supported")
        self._begin_pending = True
        try:
            yield
        except BaseException:
            if conn.in_transaction:
                await conn.execute("ROLLBACK")
            raise
        else:
            if conn.in_transaction:
                await conn.execute("COMMIT")
        finally:
            self._begin_pending = False

    async def _begin_if_pending(self, conn: aiosqlite.Connection) -> None:
        if self._begin_pending:
            self._begin_pending = False
            await conn.execute("BEGIN")


def _parse_dt(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


__all__ = ["DEFAULT_LEDGER_TABLE", "SQLiteLedgerStore"]
