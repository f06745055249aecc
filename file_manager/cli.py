"""CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys

from file_manager.archive.codec import compress_file, decompress_file
from file_manager.archive.tarball import backup, restore
from file_manager.config import load_config, AppConfig
from file_manager.db.models import ACTION_TYPES
from file_manager.errors import FileManagerError
from file_manager.pipeline.orchestrator import FileManager
from file_manager.util.hashing import sha256_file
from file_manager.util.json import json_dumps_safe
from file_manager.util.logging import configure_logging
from file_manager.util.time import parse_datetime


logger = logging.getLogger(__name__)


def _build_config(base: AppConfig, args: argparse.Namespace) -> AppConfig:
    return AppConfig(
        db_url=args.db_url or base.db_url,
        storage_root=args.storage_root or base.storage_root,
        compressed_dir=base.compressed_dir,
        log_level=args.log_level or base.log_level,
        log_file=base.log_file,
        sweep_workers=getattr(args, "workers", None) or base.sweep_workers,
        db_timeout=base.db_timeout,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="file-manager")
    parser.add_argument("--db-url", help="Database URL override")
    parser.add_argument("--storage-root", help="Storage root override")
    parser.add_argument("--log-level", help="Log level override")
    subparsers = parser.add_subparsers(dest="command", required=True)

    store_parser = subparsers.add_parser("store", help="Store a file by content hash")
    store_parser.add_argument("path", help="File to store")

    dedupe_parser = subparsers.add_parser("deduplicate", help="Remove duplicate files in a directory")
    dedupe_parser.add_argument("directory", help="Directory to sweep")
    dedupe_parser.add_argument("--workers", type=int, help="Number of hashing threads")

    digest_parser = subparsers.add_parser("digest", help="Print the SHA-256 of a file")
    digest_parser.add_argument("path", help="File to hash")

    compress_parser = subparsers.add_parser("compress", help="Gzip a file")
    compress_parser.add_argument("path", help="File to compress")
    compress_parser.add_argument("--output-dir", help="Output directory (default: compressed dir)")

    decompress_parser = subparsers.add_parser("decompress", help="Restore a gzipped file")
    decompress_parser.add_argument("path", help="Gzip file")
    decompress_parser.add_argument("--output-dir", required=True, help="Output directory")

    backup_parser = subparsers.add_parser("backup", help="Archive a directory into a .tar.gz")
    backup_parser.add_argument("directory", help="Directory to back up")
    backup_parser.add_argument("--output", required=True, help="Archive file to write")

    restore_parser = subparsers.add_parser("restore", help="Extract a backup archive")
    restore_parser.add_argument("archive", help="Archive file")
    restore_parser.add_argument("--output-dir", required=True, help="Target directory")

    history_parser = subparsers.add_parser("history", help="Show stored versions")
    history_parser.add_argument("filename", nargs="?", help="Only this filename")
    history_parser.add_argument("--since", help="Only versions recorded after this datetime (ISO)")
    history_parser.add_argument("--json", action="store_true", help="Emit JSON")

    actions_parser = subparsers.add_parser("actions", help="Show the action log")
    actions_parser.add_argument("--type", choices=ACTION_TYPES, help="Only this action type")
    actions_parser.add_argument("--limit", type=int, help="Max rows to show")
    actions_parser.add_argument("--json", action="store_true", help="Emit JSON")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = _build_config(load_config(), args)
    configure_logging(config.log_level, config.log_file)

    try:
        _dispatch(args, config)
    except FileManagerError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


def _dispatch(args: argparse.Namespace, config: AppConfig) -> None:
    if args.command == "compress":
        output = compress_file(args.path, args.output_dir or config.compressed_dir)
        print(output)
    elif args.command == "decompress":
        print(decompress_file(args.path, args.output_dir))
    elif args.command == "backup":
        count = backup(args.directory, args.output)
        print(f"{count} files archived to {args.output}")
    elif args.command == "restore":
        count = restore(args.archive, args.output_dir)
        print(f"{count} files restored to {args.output_dir}")
    elif args.command == "digest":
        print(sha256_file(args.path))
    elif args.command == "store":
        result = FileManager.from_config(config).store(args.path)
        status = "stored" if result.is_new else "duplicate"
        print(f"{result.storage_key} {status} {result.filename} v{result.version}")
    elif args.command == "deduplicate":
        stats = FileManager.from_config(config).sweep(args.directory)
        print(f"scanned={stats.scanned} removed={stats.removed}")
    elif args.command == "history":
        rows = FileManager.from_config(config).history(args.filename, since=parse_datetime(args.since))
        records = [
            {
                "filename": row.filename,
                "version": row.version,
                "sha256": row.sha256,
                "created_at": row.created_at,
            }
            for row in rows
        ]
        _emit(records, args.json, "{filename}\tv{version}\t{sha256}\t{created_at}")
    elif args.command == "actions":
        rows = FileManager.from_config(config).actions(action_type=args.type, limit=args.limit)
        records = [
            {
                "action_type": row.action_type,
                "filename": row.filename,
                "storage_id": row.storage_id,
                "created_at": row.created_at,
            }
            for row in rows
        ]
        _emit(records, args.json, "{created_at}\t{action_type}\t{filename}\t{storage_id}")


def _emit(records: list[dict], as_json: bool, template: str) -> None:
    if as_json:
        print(json_dumps_safe(records, indent=2))
        return
    for record in records:
        print(template.format(**record))


if __name__ == "__main__":
    sys.exit(main())
