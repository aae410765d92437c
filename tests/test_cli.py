"""Tests for the schemaledger CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner
from schemaledger.main import cli

from tests.helpers import write_migration


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    for name in ("AUTH_PROVIDER_GITHUB_ENABLED", "AUTH_PROVIDER_GOOGLE_ENABLED"):
        monkeypatch.delenv(name, raising=False)


def test_migrate_applies_and_reports_count(db_path: Path, migrations_dir: Path) -> None:
    write_migration(migrations_dir, "00001_init.sql", "CREATE TABLE users (id INTEGER);\n")
    runner = CliRunner()

    first = runner.invoke(cli, ["migrate", "--db", str(db_path), "--dir", str(migrations_dir)])
    second = runner.invoke(cli, ["migrate", "--db", str(db_path), "--dir", str(migrations_dir)])

    assert first.exit_code == 0, first.output
    assert "Applied 1 migration(s)." in first.output
    assert second.exit_code == 0
    assert "Applied 0 migration(s)." in second.output


def test_migrate_creates_database_directory(tmp_path: Path, migrations_dir: Path) -> None:
    write_migration(migrations_dir, "00001_init.sql", "CREATE TABLE users (id INTEGER);\n")
    db_path = tmp_path / "nested" / "data" / "app.db"

    result = CliRunner().invoke(cli, ["migrate", "--db", str(db_path), "--dir", str(migrations_dir)])

    assert result.exit_code == 0, result.output
    assert db_path.exists()


def test_migrate_failure_exits_non_zero(db_path: Path, migrations_dir: Path) -> None:
    write_migration(migrations_dir, "00001_broken.sql", "INSERT INTO nowhere VALUES (1);\n")

    result = CliRunner().invoke(cli, ["migrate", "--db", str(db_path), "--dir", str(migrations_dir)])

    assert result.exit_code == 1
    assert "00001_broken" in result.output


def test_migrate_reads_config_file(tmp_path: Path, migrations_dir: Path) -> None:
    write_migration(migrations_dir, "00001_init.sql", "CREATE TABLE users (id INTEGER);\n")
    config_path = tmp_path / "custom.yaml"
    config_path.write_text(
        f"schemaledger:\n  database:\n    path: {tmp_path / 'from_config.db'}\n"
        f"  migrations:\n    directory: {migrations_dir}\n",
        encoding="utf-8",
    )

    result = CliRunner().invoke(cli, ["migrate", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "from_config.db").exists()


def test_explicit_missing_config_is_an_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["migrate", "--config", str(tmp_path / "absent.yaml")])

    assert result.exit_code == 1
    assert "config file not found" in result.output


def test_status_lists_states(db_path: Path, migrations_dir: Path) -> None:
    write_migration(migrations_dir, "00001_init.sql", "CREATE TABLE users (id INTEGER);\n")
    runner = CliRunner()
    runner.invoke(cli, ["migrate", "--db", str(db_path), "--dir", str(migrations_dir)])
    write_migration(migrations_dir, "00002_roles.sql", "CREATE TABLE roles (id INTEGER);\n")

    result = runner.invoke(cli, ["status", "--db", str(db_path), "--dir", str(migrations_dir)])

    assert result.exit_code == 0, result.output
    lines = [line.split()[:2] for line in result.output.splitlines() if line.strip()]
    assert ["applied", "00001_init"] in lines
    assert ["pending", "00002_roles"] in lines


def test_providers_lists_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_PROVIDER_GITHUB_ENABLED", "true")
    monkeypatch.setenv("AUTH_PROVIDER_GITHUB_CLIENT_ID", "id")
    monkeypatch.setenv("AUTH_PROVIDER_GITHUB_CLIENT_SECRET", "secret")

    result = CliRunner().invoke(cli, ["providers"])

    assert result.exit_code == 0, result.output
    assert "github" in result.output
    assert "scope=user:email" in result.output


def test_providers_misconfiguration_exits_non_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_PROVIDER_GOOGLE_ENABLED", "true")
    monkeypatch.delenv("AUTH_PROVIDER_GOOGLE_CLIENT_ID", raising=False)

    result = CliRunner().invoke(cli, ["providers"])

    assert result.exit_code == 1
    assert "AUTH_PROVIDER_GOOGLE_CLIENT_ID" in result.output
