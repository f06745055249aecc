"""Directory backup and restore as a single gzipped tar archive."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
import logging
import os
import shutil
import tarfile
import zlib

from file_manager.errors import StorageIOError
from file_manager.util.hashing import CHUNK_SIZE


logger = logging.getLogger(__name__)


def backup(directory: str | Path, output: str | Path) -> int:
    """Write every directory and regular file under `directory` to `output`.

    Member names are relative to `directory`; modes and mtimes are kept.
    Returns the number of files archived.
    """
    root = Path(directory)
    if not root.is_dir():
        raise StorageIOError("not a directory", path=root, operation="backup")

    def _raise(exc: OSError) -> None:
        raise exc

    files = 0
    try:
        with tarfile.open(output, "w:gz") as archive:
            for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
                dirnames.sort()
                current = Path(dirpath)
                if current != root:
                    archive.add(current, arcname=current.relative_to(root).as_posix(), recursive=False)
                for name in sorted(filenames):
                    path = current / name
                    if path.is_symlink() or not path.is_file():
                        continue
                    archive.add(path, arcname=path.relative_to(root).as_posix(), recursive=False)
                    files += 1
    except (OSError, tarfile.TarError) as exc:
        raise StorageIOError(f"failed to create backup: {exc}", path=root, operation="backup") from exc

    logger.info("Backed up %s files from %s to %s", files, root, output)
    return files


def restore(archive_path: str | Path, target_dir: str | Path) -> int:
    """Extract directories and regular files from `archive_path` into `target_dir`."""
    target = Path(target_dir)
    files = 0
    try:
        target.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive_path, "r:*") as archive:
            for member in archive:
                destination = _member_path(target, member.name, archive_path)
                if member.isdir():
                    destination.mkdir(parents=True, exist_ok=True)
                    os.chmod(destination, member.mode | 0o700)
                elif member.isfile():
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    source = archive.extractfile(member)
                    with source, destination.open("wb") as handle:
                        shutil.copyfileobj(source, handle)
                    os.chmod(destination, member.mode & 0o777)
                    files += 1
                else:
                    raise StorageIOError(
                        f"unsupported member type {member.type!r} for {member.name}",
                        path=archive_path,
                        operation="restore",
                    )
            # tarfile stops at the end-of-archive blocks; the gzip CRC is
            # only verified once the stream is read to EOF.
            for _ in iter(lambda: archive.fileobj.read(CHUNK_SIZE), b""):
                pass
    except (OSError, EOFError, zlib.error, tarfile.TarError) as exc:
        raise StorageIOError(f"failed to restore backup: {exc}", path=archive_path, operation="restore") from exc

    logger.info("Restored %s files from %s to %s", files, archive_path, target)
    return files


def _member_path(target: Path, name: str, archive_path: str | Path) -> Path:
    relative = PurePosixPath(name)
    if relative.is_absolute() or ".." in relative.parts:
        raise StorageIOError(f"member escapes target directory: {name}", path=archive_path, operation="restore")
    return target.joinpath(*relative.parts)
