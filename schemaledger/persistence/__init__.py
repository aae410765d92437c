"""Persistence: the SQLite migration ledger."""

from schemaledger.persistence.ledger_store import DEFAULT_LEDGER_TABLE, SQLiteLedgerStore

__all__ = ["DEFAULT_LEDGER_TABLE", "SQLiteLedgerStore"]
