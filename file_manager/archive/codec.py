"""Gzip compression that keeps the original file name in the header."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO
import gzip
import logging
import os
import shutil
import struct

from file_manager.errors import StorageIOError


logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
FEXTRA = 0x04
FNAME = 0x08


def compress_file(input_file: str | Path, output_dir: str | Path) -> Path:
    source = Path(input_file)
    out_dir = Path(output_dir)
    output = out_dir / f"{source.name}.gz"
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        with source.open("rb") as src, output.open("wb") as raw:
            # GzipFile writes the basename of `filename` into the FNAME field.
            with gzip.GzipFile(filename=source.name, mode="wb", fileobj=raw) as dst:
                shutil.copyfileobj(src, dst)
    except OSError as exc:
        raise StorageIOError(
            f"failed to compress file: {exc.strerror or exc}",
            path=source,
            operation="compress",
        ) from exc
    logger.info("Compressed %s to %s", source, output)
    return output


def decompress_file(input_file: str | Path, output_dir: str | Path) -> Path:
    archive = Path(input_file)
    out_dir = Path(output_dir)
    try:
        with archive.open("rb") as raw:
            name = read_gzip_name(raw)
            if not name:
                raise StorageIOError(
                    "gzip header does not contain the original file name",
                    path=archive,
                    operation="decompress",
                )
            # Header names are untrusted; never let them leave output_dir.
            name = os.path.basename(name.replace("\\", "/"))
            if name in ("", ".", ".."):
                raise StorageIOError(f"invalid file name in gzip header: {name!r}", path=archive, operation="decompress")
            raw.seek(0)
            out_dir.mkdir(parents=True, exist_ok=True)
            output = out_dir / name
            with gzip.GzipFile(fileobj=raw, mode="rb") as src, output.open("wb") as dst:
                shutil.copyfileobj(src, dst)
    except (OSError, EOFError) as exc:
        raise StorageIOError(
            f"failed to decompress file: {exc}",
            path=archive,
            operation="decompress",
        ) from exc
    logger.info("Decompressed %s to %s", archive, output)
    return output


def read_gzip_name(handle: BinaryIO) -> str | None:
    """Return the FNAME field of a gzip member header, or None if unset."""
    header = handle.read(10)
    if len(header) < 10 or header[:2] != GZIP_MAGIC:
        raise gzip.BadGzipFile("not a gzipped file")
    flags = header[3]
    if flags & FEXTRA:
        (extra_len,) = struct.unpack("<H", _read_exact(handle, 2))
        _read_exact(handle, extra_len)
    if not flags & FNAME:
        return None
    name = bytearray()
    while True:
        byte = _read_exact(handle, 1)
        if byte == b"\x00":
            break
        name += byte
    return name.decode("latin-1")


def _read_exact(handle: BinaryIO, size: int) -> bytes:
    data = handle.read(size)
    if len(data) < size:
        raise EOFError("truncated gzip header")
    return data
