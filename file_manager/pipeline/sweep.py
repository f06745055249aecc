"""Concurrent duplicate sweep over a directory tree."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator
import logging
import os
import threading

from file_manager.db.models import ACTION_DEDUPLICATE
from file_manager.db.repo import Repository
from file_manager.errors import StorageIOError, SweepAborted
from file_manager.util.hashing import sha256_file


logger = logging.getLogger(__name__)

IN_FLIGHT_PER_WORKER = 2


@dataclass(frozen=True)
class SweepStats:
    scanned: int
    removed: int


class DigestIndex:
    """Digest -> first path seen, owned by a single sweep."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._first: dict[str, Path] = {}

    def claim(self, sha256: str, path: Path) -> Path | None:
        """Record `path` as the first holder of `sha256`.

        Returns None when the claim succeeds, otherwise the path that got
        there first.
        """
        with self._lock:
            original = self._first.get(sha256)
            if original is None:
                self._first[sha256] = path
            return original

    def __len__(self) -> int:
        with self._lock:
            return len(self._first)


class _SweepState:
    def __init__(self) -> None:
        self.index = DigestIndex()
        self.abort = threading.Event()
        self._lock = threading.Lock()
        self.first_error: BaseException | None = None
        self.scanned = 0
        self.removed = 0

    def fail(self, exc: BaseException) -> None:
        with self._lock:
            if self.first_error is None:
                self.first_error = exc
        self.abort.set()

    def count(self, removed: bool) -> None:
        with self._lock:
            self.scanned += 1
            if removed:
                self.removed += 1


def default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


def sweep_directory(directory: str | Path, session_factory, workers: int | None = None) -> SweepStats:
    root = Path(directory)
    if not root.is_dir():
        raise StorageIOError("not a directory", path=root, operation="sweep")

    workers = workers or default_workers()
    state = _SweepState()
    # The walk blocks once this many files are queued or hashing.
    slots = threading.BoundedSemaphore(workers * IN_FLIGHT_PER_WORKER)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sweep") as executor:
        try:
            for path in _walk_files(root):
                slots.acquire()
                if state.abort.is_set():
                    slots.release()
                    break
                future = executor.submit(_sweep_one, path, state, session_factory)
                future.add_done_callback(lambda _: slots.release())
        except OSError as exc:
            state.fail(
                StorageIOError(
                    f"failed to walk directory: {exc.strerror or exc}",
                    path=exc.filename or root,
                    operation="walk",
                )
            )

    if state.first_error is not None:
        error = state.first_error
        raise SweepAborted(
            f"sweep stopped after removing {state.removed} file(s): {error}",
            path=root,
            operation="sweep",
        ) from error

    logger.info("Sweep of %s scanned %s files, removed %s duplicates", root, state.scanned, state.removed)
    return SweepStats(scanned=state.scanned, removed=state.removed)


def _walk_files(root: Path) -> Iterator[Path]:
    def _raise(exc: OSError) -> None:
        raise exc

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_symlink() or not path.is_file():
                continue
            yield path


def _sweep_one(path: Path, state: _SweepState, session_factory) -> None:
    if state.abort.is_set():
        return
    try:
        sha256 = sha256_file(path)
        original = state.index.claim(sha256, path)
        if original is None:
            state.count(removed=False)
            return
        logger.info("Duplicate found: %s (original: %s). Deleting", path, original)
        try:
            path.unlink()
        except OSError as exc:
            raise StorageIOError(
                f"failed to remove duplicate: {exc.strerror or exc}",
                path=path,
                operation="deduplicate",
            ) from exc
        with session_factory() as session:
            Repository(session).log_action(ACTION_DEDUPLICATE, str(path), "")
        state.count(removed=True)
    except Exception as exc:
        state.fail(exc)
        raise
