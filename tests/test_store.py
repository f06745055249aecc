import hashlib
import os
import threading

import pytest
from sqlalchemy.exc import OperationalError

from file_manager.db import repo as repo_module
from file_manager.errors import HashError, PersistenceError


def _versions(manager, filename):
    return [(row.version, row.sha256) for row in manager.history(filename)]


def _actions(manager):
    return [(row.action_type, row.filename, row.storage_id) for row in manager.actions()]


def test_store_new_file(manager, workdir):
    source = workdir / "notes.txt"
    source.write_bytes(b"first draft")
    digest = hashlib.sha256(b"first draft").hexdigest()

    result = manager.store(source)

    assert result.is_new
    assert result.storage_key == f"{digest}.txt"
    assert result.filename == "notes.txt"
    assert result.version == 1
    assert manager.storage.path_for(result.storage_key).read_bytes() == b"first draft"
    assert _versions(manager, "notes.txt") == [(1, digest)]
    assert _actions(manager) == [("store", "notes.txt", f"{digest}.txt")]


def test_storing_same_file_twice_keeps_one_blob_and_two_versions(manager, workdir):
    source = workdir / "notes.txt"
    source.write_bytes(b"unchanged")
    digest = hashlib.sha256(b"unchanged").hexdigest()

    first = manager.store(source)
    second = manager.store(source)

    assert first.storage_key == second.storage_key
    assert first.is_new and not second.is_new
    assert os.listdir(manager.storage.root) == [first.storage_key]
    assert _versions(manager, "notes.txt") == [(1, digest), (2, digest)]
    assert [action for action, _, _ in _actions(manager)] == ["store", "store_duplicate"]


def test_report_scenario(manager, workdir):
    report = workdir / "report.pdf"
    report.write_bytes(b"%PDF quarterly numbers")
    d1 = hashlib.sha256(b"%PDF quarterly numbers").hexdigest()

    first = manager.store(report)
    assert first.storage_key == f"{d1}.pdf"
    assert first.version == 1

    copy = workdir / "report_v2.pdf"
    copy.write_bytes(report.read_bytes())
    second = manager.store(copy)
    assert second.storage_key == f"{d1}.pdf"
    assert not second.is_new
    assert second.version == 1
    assert _versions(manager, "report_v2.pdf") == [(1, d1)]

    report.write_bytes(b"%PDF revised quarterly numbers")
    d2 = hashlib.sha256(b"%PDF revised quarterly numbers").hexdigest()
    third = manager.store(report)
    assert third.storage_key == f"{d2}.pdf"
    assert third.is_new
    assert third.version == 2

    assert _versions(manager, "report.pdf") == [(1, d1), (2, d2)]
    assert sorted(os.listdir(manager.storage.root)) == sorted([f"{d1}.pdf", f"{d2}.pdf"])
    assert _actions(manager) == [
        ("store", "report.pdf", f"{d1}.pdf"),
        ("store_duplicate", "report_v2.pdf", f"{d1}.pdf"),
        ("store", "report.pdf", f"{d2}.pdf"),
    ]


def test_concurrent_stores_of_same_filename_get_distinct_versions(manager, tmp_path):
    sources = []
    for i in range(6):
        folder = tmp_path / f"src{i}"
        folder.mkdir()
        source = folder / "shared.txt"
        source.write_bytes(f"content {i % 3}".encode())
        sources.append(source)
    barrier = threading.Barrier(len(sources))
    errors = []

    def worker(path):
        barrier.wait()
        try:
            manager.store(path)
        except Exception as exc:  # surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(path,)) for path in sources]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert [version for version, _ in _versions(manager, "shared.txt")] == [1, 2, 3, 4, 5, 6]
    assert len(os.listdir(manager.storage.root)) == 3
    action_types = [action for action, _, _ in _actions(manager)]
    assert action_types.count("store") == 3
    assert action_types.count("store_duplicate") == 3


def test_store_missing_file_raises_hash_error(manager, workdir):
    with pytest.raises(HashError):
        manager.store(workdir / "absent.txt")
    assert manager.history() == []
    assert manager.actions() == []


def test_digest_is_exposed(manager, workdir):
    source = workdir / "a.bin"
    source.write_bytes(b"\x00\x01")
    assert manager.digest(source) == hashlib.sha256(b"\x00\x01").hexdigest()


def test_failed_version_insert_rolls_back_store_action(manager, workdir, monkeypatch):
    source = workdir / "notes.txt"
    source.write_bytes(b"draft")

    def broken_insert(filename, sha256, created_at):
        raise OperationalError("INSERT INTO versions", {}, Exception("disk I/O error"))

    monkeypatch.setattr(repo_module, "_next_version_insert", broken_insert)

    with pytest.raises(PersistenceError):
        manager.store(source)

    assert manager.actions() == []
    assert manager.history() == []
