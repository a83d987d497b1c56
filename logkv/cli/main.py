#!/usr/bin/env python3
"""
Command-line driver for a logkv store.

Usage:
    # Keep the index in memory only; every run replays the log
    logkv data.log insert apple red
    logkv data.log get apple

    # Snapshot the index into the log after each write and read through it
    logkv --persist-index data.log update apple green
    logkv --persist-index data.log get apple

Notes:
    With --persist-index, get resolves keys through the most recent index
    snapshot. A write made without --persist-index does not refresh that
    snapshot, so a later --persist-index get can return the older value.

    After a crash leaves a torn final record, writes fail until the torn
    bytes are removed; set LOGKV_TRUNCATE_TORN_TAIL=true (or
    store.truncate_torn_tail in the configuration) to cut them on load.
"""

import argparse
import sys
from typing import List, Optional

from logkv.core.errors import LogKVError
from logkv.core.index.snapshot import DEFAULT_INDEX_KEY
from logkv.core.store import KeyState, KVStore
from logkv.utils.config import get_config
from logkv.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_FAILURE = 3

WRITE_ACTIONS = ("insert", "update", "delete")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="logkv",
        description="logkv - a log-structured key-value store in a single file",
    )
    
    parser.add_argument(
        "file",
        help="Path to the log file (created if missing)",
    )
    
    parser.add_argument(
        "action",
        choices=["get", "find", "insert", "update", "delete"],
        help="Operation to perform",
    )
    
    parser.add_argument(
        "key",
        help="Key to operate on",
    )
    
    parser.add_argument(
        "value",
        nargs="?",
        help="Value for insert and update",
    )
    
    parser.add_argument(
        "--persist-index",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Snapshot the index into the log after writes and read through it",
    )
    
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML configuration file",
    )
    
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from configuration)",
    )
    
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["json", "console"],
        help="Logging format (default: from configuration)",
    )
    
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = build_parser()
    args = parser.parse_args(argv)
    
    if args.action in ("insert", "update") and args.value is None:
        parser.error(f"{args.action} requires a VALUE")
    if args.action not in ("insert", "update") and args.value is not None:
        parser.error(f"{args.action} does not take a VALUE")
    
    return args


def _write_value(value: bytes) -> None:
    sys.stdout.flush()
    sys.stdout.buffer.write(value + b"\n")
    sys.stdout.buffer.flush()


def _report_missing(key: bytes, reason: str = "not found") -> int:
    print(f"{key!r} {reason}", file=sys.stderr)
    return EXIT_NOT_FOUND


def _get_through_snapshot(store: KVStore, key: bytes, index_key: bytes) -> int:
    snapshot = store.read_index_snapshot(index_key)
    if snapshot is None:
        logger.info("No index snapshot found, using replayed index")
        return _get_through_index(store, key)
    
    offset = snapshot.get(key)
    if offset is None:
        return _report_missing(key)
    
    record = store.get_at(offset)
    if record.is_tombstone:
        return _report_missing(key, "deleted")
    _write_value(record.value)
    return EXIT_OK


def _get_through_index(store: KVStore, key: bytes) -> int:
    result = store.lookup(key)
    if result.state is KeyState.ABSENT:
        return _report_missing(key)
    if result.state is KeyState.TOMBSTONED:
        return _report_missing(key, "deleted")
    _write_value(result.value)
    return EXIT_OK


def run(args: argparse.Namespace) -> int:
    """
    Execute one store operation.
    
    Args:
        args: Parsed command-line arguments
    
    Returns:
        Process exit code
    """
    config = get_config(args.config)
    persist_index = args.persist_index
    if persist_index is None:
        persist_index = bool(config.get("store.persist_index", False))
    index_key = str(config.get("store.index_key", DEFAULT_INDEX_KEY.decode())).encode("utf-8")
    
    key = args.key.encode("utf-8")
    
    with KVStore.open(
        args.file,
        fsync_on_append=bool(config.get("store.fsync_on_append", False)),
        truncate_torn_tail=bool(config.get("store.truncate_torn_tail", False)),
    ) as store:
        store.load()
        
        if args.action == "get":
            if persist_index:
                return _get_through_snapshot(store, key, index_key)
            return _get_through_index(store, key)
        
        if args.action == "find":
            found = store.find(key)
            if found is None:
                return _report_missing(key)
            offset, value = found
            _write_value(f"{offset}\t".encode("ascii") + value)
            return EXIT_OK
        
        if args.action == "delete":
            store.delete(key)
        else:
            store.insert(key, args.value.encode("utf-8"))
        
        if persist_index:
            store.snapshot_index(index_key)
    
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    
    config = get_config(args.config)
    configure_logging(
        log_level=args.log_level or config.get("logging.level", "WARNING"),
        log_format=args.log_format or config.get("logging.format", "console"),
        log_output=config.get("logging.output", "stderr"),
    )
    
    logger.debug(
        "Running command",
        file=args.file,
        action=args.action,
        persist_index=args.persist_index,
    )
    
    try:
        return run(args)
    except (LogKVError, OSError) as e:
        logger.error("Command failed", action=args.action, error=str(e))
        print(f"logkv: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
