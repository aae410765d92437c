"""schemaledger: apply versioned SQL change-scripts exactly once, tracked by checksum."""

from schemaledger.migrations import get_migration_status, run_migrations

__all__ = ["get_migration_status", "run_migrations"]
