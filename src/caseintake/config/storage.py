"""Where caseintake keeps its case database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "caseintake"
DEFAULT_DB_FILENAME: Final[str] = "caseintake.db"
DATA_DIR_ENV: Final[str] = "CASEINTAKE_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    @property
    def database_path(self) -> Path:
        return self.data_dir.expanduser().resolve() / self.database_filename

    def database_uri(self) -> str:
        path = self.database_path
        path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{path}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_storage_config() -> StorageConfig:
    explicit = os.getenv(DATA_DIR_ENV)
    if explicit:
        return StorageConfig(data_dir=Path(explicit))
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
    return StorageConfig(data_dir=base / APP_DIR_NAME)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a SQLite file in the data directory."""

    uri = os.getenv(DATABASE_URI_ENV)
    if not uri:
        uri = (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=uri)
