"""Discover migration scripts on disk and order them by sequence number."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from schemaledger.migrations.checksum import checksum
from schemaledger.errors import LoadError
from schemaledger.models.migrations import MigrationScript, MigrationSet

logger = logging.getLogger(__name__)

MIGRATION_SUFFIX = ".sql"
NO_TRANSACTION_MARKER = "-- schemaledger:no-transaction"

_NAME_PATTERN = re.compile(r"^(?P<sequence>\d+)_(?P<description>[A-Za-z0-9][A-Za-z0-9_-]*)$")


def parse_name(stem: str) -> tuple[int, str]:
    """Split ``00002_custom_user_fields`` into ``(2, "custom_user_fields")``."""
    match = _NAME_PATTERN.match(stem)
    if match is None:
        raise LoadError(
            f"Invalid migration filename: {stem}{MIGRATION_SUFFIX}. "
            f"Expected <sequence>_<description>{MIGRATION_SUFFIX}"
        )
    return int(match.group("sequence")), match.group("description")


def load_script(path: Path) -> MigrationScript:
    sequence, description = parse_name(path.stem)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise LoadError(f"Cannot read migration {path.name}: {exc}") from exc
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise LoadError(f"Migration {path.name} is not valid UTF-8: {exc}") from exc

    first_line = content.lstrip("\ufeff").split("\n", 1)[0].strip()
    return MigrationScript(
        sequence=sequence,
        name=path.stem,
        description=description,
        path=path,
        content=content,
        checksum=checksum(raw),
        transactional=first_line != NO_TRANSACTION_MARKER,
    )


def _candidate_files(directory: Path) -> list[Path]:
    try:
        entries = sorted(directory.iterdir())
    except OSError as exc:
        raise LoadError(f"Cannot read migrations directory {directory}: {exc}") from exc
    return [
        entry
        for entry in entries
        if entry.suffix == MIGRATION_SUFFIX and not entry.name.startswith(".") and entry.is_file()
    ]


def load_migrations(directory: str | Path) -> MigrationSet:
    """Read every ``*.sql`` script under ``directory`` into a MigrationSet.

    Raises ``LoadError`` when the directory is unreadable, a filename does
    not parse, or two files share a sequence number.
    """

    directory = Path(directory)
    scripts: list[MigrationScript] = []
    by_sequence: dict[int, str] = {}

    for path in _candidate_files(directory):
        script = load_script(path)
        if script.sequence in by_sequence:
            raise LoadError(
                f"Duplicate migration sequence {script.sequence}: "
                f"{by_sequence[script.sequence]} and {path.name}"
            )
        by_sequence[script.sequence] = path.name
        scripts.append(script)

    migration_set = MigrationSet(directory=directory, scripts=tuple(scripts))
    logger.debug("Loaded %d migrations from %s", len(migration_set), directory)
    return migration_set


__all__ = ["MIGRATION_SUFFIX", "NO_TRANSACTION_MARKER", "load_migrations", "load_script", "parse_name"]
