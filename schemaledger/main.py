"""schemaledger CLI entry point."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path

import click

from schemaledger.config import SchemaLedgerSettings, load_config
from schemaledger.core.logging import setup_logging
from schemaledger.errors import MigrationError
from schemaledger.migrations import get_migration_status, run_migrations
from schemaledger.providers import ProviderConfigError, enabled_providers

_DEFAULT_CONFIG = "config/schemaledger.yaml"


def _resolve_settings(config_path: str, db: Path | None, directory: Path | None) -> SchemaLedgerSettings:
    path = Path(config_path)
    # A missing default config is fine; an explicitly named one is not.
    if config_path == _DEFAULT_CONFIG and not path.exists():
        settings = load_config(None)
    else:
        try:
            settings = load_config(path)
        except (FileNotFoundError, ValueError) as exc:
            raise click.ClickException(str(exc)) from exc

    if db is not None:
        settings.database.path = db
    if directory is not None:
        settings.migrations.directory = directory
    setup_logging(settings.logging.level, json_output=settings.logging.json_output)
    return settings


_config_option = click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
_db_option = click.option(
    "--db",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="SQLite database path (overrides database.path).",
)
_dir_option = click.option(
    "--dir",
    "directory",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Migrations directory (overrides migrations.directory).",
)


@click.group()
def cli() -> None:
    """Apply versioned SQL migrations exactly once."""
    setup_logging()


@cli.command("migrate")
@_config_option
@_db_option
@_dir_option
def migrate_command(config_path: str, db: Path | None, directory: Path | None) -> None:
    """Apply all pending migrations."""
    settings = _resolve_settings(config_path, db, directory)
    settings.database.path.parent.mkdir(parents=True, exist_ok=True)
    try:
        applied = asyncio.run(
            run_migrations(
                str(settings.database.path),
                settings.migrations.directory,
                table=settings.database.ledger_table,
                legacy_renames=settings.migrations.legacy_renames,
            )
        )
    except (MigrationError, sqlite3.Error) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Applied {applied} migration(s).")


@cli.command("status")
@_config_option
@_db_option
@_dir_option
def status_command(config_path: str, db: Path | None, directory: Path | None) -> None:
    """Show applied, pending, conflicting and missing migrations."""
    settings = _resolve_settings(config_path, db, directory)
    try:
        rows = asyncio.run(
            get_migration_status(
                str(settings.database.path),
                settings.migrations.directory,
                table=settings.database.ledger_table,
            )
        )
    except (MigrationError, sqlite3.Error) as exc:
        raise click.ClickException(str(exc)) from exc

    if not rows:
        click.echo("No migrations found.")
        return
    for row in rows:
        applied_at = row.applied_at.isoformat() if row.applied_at else "-"
        click.echo(f"{row.state.value:<9} {row.name:<48} {applied_at}")


@cli.command("providers")
def providers_command() -> None:
    """List the sign-in providers enabled by AUTH_PROVIDER_* variables."""
    try:
        providers = enabled_providers()
    except ProviderConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if not providers:
        click.echo("No providers enabled.")
        return
    for provider in providers:
        scope = ",".join(provider.scope) or "-"
        click.echo(f"{provider.name:<12} scope={scope}")


__all__ = ["cli"]


if __name__ == "__main__":
    cli()
