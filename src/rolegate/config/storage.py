"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "rolegate"
ELIGIBLE_ADDRESSES_FILENAME: Final[str] = "eligible_addresses.txt"
CLAIMS_FILENAME: Final[str] = "claims.json"
AUDIT_LOG_FILENAME: Final[str] = "audit.jsonl"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    eligible_filename: str = ELIGIBLE_ADDRESSES_FILENAME
    claims_filename: str = CLAIMS_FILENAME
    audit_filename: str = AUDIT_LOG_FILENAME
    database_uri: str | None = None

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def eligible_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.eligible_filename

    def claims_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.claims_filename

    def audit_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.audit_filename

    @property
    def uses_database(self) -> bool:
        return self.database_uri is not None


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("ROLEGATE_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    env_uri = os.getenv("DATABASE_URI")
    return StorageConfig(data_dir=data_dir, database_uri=env_uri or None)
