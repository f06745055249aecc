"""Database models."""

from __future__ import annotations

from datetime import datetime
from sqlalchemy import (
    String,
    DateTime,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from file_manager.db.session import Base
from file_manager.util.time import utcnow


ACTION_STORE = "store"
ACTION_STORE_DUPLICATE = "store_duplicate"
ACTION_DEDUPLICATE = "deduplicate"
ACTION_TYPES = (ACTION_STORE, ACTION_STORE_DUPLICATE, ACTION_DEDUPLICATE)


class Action(Base):
    __tablename__ = "actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action_type: Mapped[str] = mapped_column(String(32))
    filename: Mapped[str] = mapped_column(Text)
    storage_id: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Version(Base):
    __tablename__ = "versions"
    __table_args__ = (
        UniqueConstraint(
            "filename",
            "version",
            name="uq_version_filename_version",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    filename: Mapped[str] = mapped_column(Text, index=True)
    version: Mapped[int] = mapped_column(Integer)
    sha256: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
