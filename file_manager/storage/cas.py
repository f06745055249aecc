"""Content-addressed storage for whole files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import hashlib
import logging
import os
import uuid

from file_manager.errors import StorageIOError, WriteError
from file_manager.util.hashing import CHUNK_SIZE


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    storage_key: str
    sha256: str
    path: Path
    size_bytes: int
    is_new: bool


def original_extension(path: str | Path) -> str:
    """Suffix from the last dot of the base name, e.g. ``.gz`` or ``.bashrc``."""
    name = os.path.basename(os.fspath(path))
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


class ContentAddressedStorage:
    """Flat blob directory: one file named ``<sha256><ext>`` per distinct key."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def key_for(self, sha256: str, ext: str | None) -> str:
        return f"{sha256}{ext or ''}"

    def path_for(self, storage_key: str) -> Path:
        return self.root / storage_key

    def exists(self, storage_key: str) -> bool:
        return self.path_for(storage_key).is_file()

    def ensure_root(self) -> None:
        try:
            os.makedirs(self.root, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(
                f"failed to create storage directory: {exc.strerror or exc}",
                path=self.root,
                operation="mkdir",
            ) from exc

    def store_file(self, source: str | Path, sha256: str) -> StoredFile:
        source = Path(source)
        storage_key = self.key_for(sha256, original_extension(source))
        path = self.path_for(storage_key)
        if path.is_file():
            return StoredFile(storage_key, sha256, path, path.stat().st_size, is_new=False)

        self.ensure_root()
        tmp_path = self.root / f".{uuid.uuid4().hex}.tmp"
        try:
            size = self._copy_verified(source, tmp_path, sha256)
            try:
                # link() refuses to replace an existing blob, so exactly one
                # concurrent writer publishes it.
                os.link(tmp_path, path)
                is_new = True
            except FileExistsError:
                logger.debug("Blob %s was created concurrently", storage_key)
                is_new = False
        except OSError as exc:
            raise WriteError(
                f"failed to write blob: {exc.strerror or exc}",
                path=path,
                operation="store",
            ) from exc
        finally:
            tmp_path.unlink(missing_ok=True)

        return StoredFile(storage_key, sha256, path, size, is_new=is_new)

    def _copy_verified(self, source: Path, target: Path, sha256: str) -> int:
        hasher = hashlib.sha256()
        size = 0
        with source.open("rb") as src, target.open("xb") as dst:
            for chunk in iter(lambda: src.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
                dst.write(chunk)
                size += len(chunk)
            dst.flush()
            os.fsync(dst.fileno())
        if hasher.hexdigest() != sha256:
            raise WriteError(
                "source content changed while storing",
                path=source,
                operation="store",
            )
        return size
