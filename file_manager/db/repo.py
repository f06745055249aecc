"""Repository layer for the version ledger and action log."""

from __future__ import annotations

from datetime import datetime
import logging

from sqlalchemy import DateTime, String, Text, func, insert, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from file_manager.db.models import ACTION_TYPES, Action, Version
from file_manager.errors import PersistenceError
from file_manager.util.time import utcnow


logger = logging.getLogger(__name__)

VERSION_INSERT_ATTEMPTS = 5


class Repository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def log_action(self, action_type: str, filename: str, storage_id: str = "") -> None:
        if action_type not in ACTION_TYPES:
            raise ValueError(f"unknown action type: {action_type!r}")
        try:
            self.session.add(
                Action(
                    action_type=action_type,
                    filename=filename,
                    storage_id=storage_id,
                    created_at=utcnow(),
                )
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(str(exc), path=filename, operation="log_action") from exc

    def log_version(self, filename: str, sha256: str) -> int:
        """Append the next version of `filename` and return its number.

        The next number is computed inside the INSERT itself so two writers
        can never read the same maximum. The unique (filename, version)
        constraint catches backends that do not serialize the statement,
        and the insert is retried.
        """
        return self._append_version(filename, sha256)

    def record_store(self, action_type: str, filename: str, storage_id: str, sha256: str) -> int:
        """Append a store action and the next version of `filename` in one transaction."""
        if action_type not in ACTION_TYPES:
            raise ValueError(f"unknown action type: {action_type!r}")
        return self._append_version(filename, sha256, action_type=action_type, storage_id=storage_id)

    def _append_version(
        self,
        filename: str,
        sha256: str,
        action_type: str | None = None,
        storage_id: str = "",
    ) -> int:
        attempt = 0
        while True:
            attempt += 1
            try:
                now = utcnow()
                if action_type:
                    self.session.add(
                        Action(
                            action_type=action_type,
                            filename=filename,
                            storage_id=storage_id,
                            created_at=now,
                        )
                    )
                version = self.session.execute(_next_version_insert(filename, sha256, now)).scalar_one()
                self.session.commit()
                return version
            except IntegrityError as exc:
                self.session.rollback()
                if attempt >= VERSION_INSERT_ATTEMPTS:
                    raise PersistenceError(
                        f"version conflict after {attempt} attempts",
                        path=filename,
                        operation="log_version",
                    ) from exc
                logger.debug("Version conflict for %s, retrying (attempt %s)", filename, attempt)
            except SQLAlchemyError as exc:
                self.session.rollback()
                raise PersistenceError(str(exc), path=filename, operation="log_version") from exc

    def latest_version(self, filename: str) -> int:
        stmt = select(func.max(Version.version)).where(Version.filename == filename)
        try:
            result = self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc), path=filename, operation="latest_version") from exc
        return result or 0

    def list_versions(self, filename: str | None = None, since: datetime | None = None) -> list[Version]:
        stmt = select(Version).order_by(Version.filename, Version.version)
        if filename:
            stmt = stmt.where(Version.filename == filename)
        if since:
            stmt = stmt.where(Version.created_at >= since)
        try:
            return list(self.session.execute(stmt).scalars())
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc), path=filename, operation="list_versions") from exc

    def list_actions(self, action_type: str | None = None, limit: int | None = None) -> list[Action]:
        stmt = select(Action).order_by(Action.id)
        if action_type:
            stmt = stmt.where(Action.action_type == action_type)
        if limit:
            stmt = stmt.limit(limit)
        try:
            return list(self.session.execute(stmt).scalars())
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc), operation="list_actions") from exc


def _next_version_insert(filename: str, sha256: str, created_at: datetime):
    next_version = select(
        literal(filename, Text),
        func.coalesce(func.max(Version.version), 0) + 1,
        literal(sha256, String),
        literal(created_at, DateTime),
    ).where(Version.filename == filename)
    return (
        insert(Version)
        .from_select(["filename", "version", "sha256", "created_at"], next_version)
        .returning(Version.version)
    )
