"""Where larder keeps its database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_bool_env_var

APP_DIR_NAME: Final[str] = "larder"
DEFAULT_DB_FILENAME: Final[str] = "larder.db"
SQLITE_URI_PREFIX: Final[str] = "sqlite+pysqlite:///"


def platform_data_home() -> Path:
    """Per-user data directory following platform conventions."""

    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Local"
    base = os.getenv("XDG_DATA_HOME")
    return Path(base) if base else Path.home() / ".local" / "share"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_filename

    def sqlite_uri(self, *, create_dir: bool = True) -> str:
        if create_dir:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        return f"{SQLITE_URI_PREFIX}{self.database_path}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def get_storage_config() -> StorageConfig:
    override = os.getenv("LARDER_DATA_DIR")
    data_dir = Path(override) if override else platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` when set, otherwise a SQLite file inside the data directory."""

    echo = optional_bool_env_var("LARDER_SQL_ECHO")
    uri = os.getenv("DATABASE_URI", "").strip()
    if not uri:
        uri = (storage or get_storage_config()).sqlite_uri()
    return DatabaseConfig(uri=uri, echo=echo)
