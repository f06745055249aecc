"""Configuration loading for the file manager."""

from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class AppConfig:
    db_url: str
    storage_root: str
    compressed_dir: str = "compressed"
    log_level: str = "INFO"
    log_file: str | None = None
    sweep_workers: int | None = None
    db_timeout: float = 30.0


def _optional_int(value: str | None) -> int | None:
    if not value:
        return None
    return int(value)


def load_config() -> AppConfig:
    db_url = os.getenv("FILE_MANAGER_DB_URL", "sqlite:///file_manager.db")
    storage_root = os.getenv("FILE_MANAGER_STORAGE_ROOT", "storage")
    compressed_dir = os.getenv("FILE_MANAGER_COMPRESSED_DIR", "compressed")
    log_level = os.getenv("FILE_MANAGER_LOG_LEVEL", "INFO")
    log_file = os.getenv("FILE_MANAGER_LOG_FILE") or None
    sweep_workers = _optional_int(os.getenv("FILE_MANAGER_SWEEP_WORKERS"))
    db_timeout = float(os.getenv("FILE_MANAGER_DB_TIMEOUT", "30"))
    return AppConfig(
        db_url=db_url,
        storage_root=storage_root,
        compressed_dir=compressed_dir,
        log_level=log_level,
        log_file=log_file,
        sweep_workers=sweep_workers,
        db_timeout=db_timeout,
    )
