"""Main orchestration logic."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import logging

from file_manager.config import AppConfig
from file_manager.db.models import ACTION_STORE, ACTION_STORE_DUPLICATE, Action, Version
from file_manager.db.repo import Repository
from file_manager.db.session import init_db, make_engine, make_session_factory
from file_manager.pipeline.sweep import SweepStats, sweep_directory
from file_manager.storage.cas import ContentAddressedStorage
from file_manager.util.hashing import sha256_file


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreResult:
    storage_key: str
    is_new: bool
    filename: str
    sha256: str
    version: int


class FileManager:
    """Ties the blob store to the version ledger and action log.

    Holds only the storage root and a session factory. Every call opens its
    own session, so one instance can be shared between threads.
    """

    def __init__(self, storage: ContentAddressedStorage, session_factory, sweep_workers: int | None = None) -> None:
        self.storage = storage
        self.session_factory = session_factory
        self.sweep_workers = sweep_workers

    @classmethod
    def from_config(cls, config: AppConfig) -> "FileManager":
        engine = make_engine(config.db_url, timeout=config.db_timeout)
        init_db(engine)
        return cls(
            storage=ContentAddressedStorage(config.storage_root),
            session_factory=make_session_factory(engine=engine),
            sweep_workers=config.sweep_workers,
        )

    def digest(self, path: str | Path) -> str:
        return sha256_file(path)

    def store(self, source_path: str | Path) -> StoreResult:
        source = Path(source_path)
        sha256 = sha256_file(source)
        stored = self.storage.store_file(source, sha256)
        filename = source.name

        action = ACTION_STORE if stored.is_new else ACTION_STORE_DUPLICATE
        with self.session_factory() as session:
            version = Repository(session).record_store(action, filename, stored.storage_key, sha256)

        if stored.is_new:
            logger.info("File %s stored as %s (version %s)", source, stored.path, version)
        else:
            logger.info(
                "File %s already exists as %s. Skipping storage (version %s)",
                source,
                stored.path,
                version,
            )
        return StoreResult(
            storage_key=stored.storage_key,
            is_new=stored.is_new,
            filename=filename,
            sha256=sha256,
            version=version,
        )

    def sweep(self, directory: str | Path, workers: int | None = None) -> SweepStats:
        return sweep_directory(
            directory,
            self.session_factory,
            workers=workers or self.sweep_workers,
        )

    def history(self, filename: str | None = None, since: datetime | None = None) -> list[Version]:
        with self.session_factory() as session:
            return Repository(session).list_versions(filename=filename, since=since)

    def actions(self, action_type: str | None = None, limit: int | None = None) -> list[Action]:
        with self.session_factory() as session:
            return Repository(session).list_actions(action_type=action_type, limit=limit)
