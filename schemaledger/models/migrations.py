from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class MigrationScript(BaseModel):
    """One versioned change-script, read fresh from disk for a single run."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=0)
    name: str
    description: str
    path: Path
    content: str
    checksum: str
    transactional: bool = True


class LedgerEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    checksum: str
    applied_at: datetime


@dataclass(frozen=True, slots=True)
class MigrationSet:
    """Scripts of one run in ascending sequence order.

    Sequence numbers are unique within a set; construction sorts the
    scripts so callers may pass them in directory order.
    """

    directory: Path
    scripts: tuple[MigrationScript, ...] = ()

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.scripts, key=lambda script: script.sequence))
        seen: dict[int, str] = {}
        for script in ordered:
            if script.sequence in seen:
                raise ValueError(
                    f"duplicate migration sequence {script.sequence}: "
                    f"{seen[script.sequence]} and {script.name}"
                )
            seen[script.sequence] = script.name
        object.__setattr__(self, "scripts", ordered)

    def __iter__(self) -> Iterator[MigrationScript]:
        return iter(self.scripts)

    def __len__(self) -> int:
        return len(self.scripts)

    @property
    def names(self) -> list[str]:
        return [script.name for script in self.scripts]

    def get(self, name: str) -> MigrationScript | None:
        for script in self.scripts:
            if script.name == name:
                return script
        return None


class MigrationState(StrEnum):
    applied = "applied"
    pending = "pending"
    conflict = "conflict"
    missing = "missing"


class MigrationStatus(BaseModel):
    name: str
    state: MigrationState
    sequence: int | None = None
    checksum: str | None = None
    applied_at: datetime | None = None


__all__ = [
    "LedgerEntry",
    "MigrationScript",
    "MigrationSet",
    "MigrationState",
    "MigrationStatus",
]
