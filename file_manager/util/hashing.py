"""Hash helpers."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO

from file_manager.errors import HashError


CHUNK_SIZE = 1024 * 1024


def sha256_stream(handle: BinaryIO) -> str:
    """Digest a binary stream to EOF in fixed-size chunks."""
    hasher = hashlib.sha256()
    for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def sha256_file(path: str | Path) -> str:
    path = Path(path)
    try:
        with path.open("rb") as handle:
            return sha256_stream(handle)
    except OSError as exc:
        raise HashError(f"failed to hash file: {exc.strerror or exc}", path=path, operation="digest") from exc
