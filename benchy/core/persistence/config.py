from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class PersistenceMode(StrEnum):
    """Supported state storage backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"


@dataclass(slots=True)
class PersistenceConfig:
    """Where network state lives between CLI invocations."""

    mode: PersistenceMode = PersistenceMode.SQLITE
    data_dir: Path = field(default_factory=lambda: Path.home() / ".benchy")
    sqlite_filename: str = "benchy.sqlite"
    sqlite_wal: bool = True

    def sqlite_path(self) -> Path:
        return self.data_dir / self.sqlite_filename
