"""
logkv - A log-structured key-value store in a single append-only file.

This package implements:
- Checksummed binary records appended to one log file
- Crash-tolerant replay that stops cleanly at a torn final record
- An in-memory key index, optionally snapshotted into the log itself
"""

__version__ = "0.1.0"

from logkv.core import (
    CorruptionError,
    KeyState,
    KVStore,
    LogKVError,
    Lookup,
    RecordNotFoundError,
    SnapshotError,
    StaleIndexError,
    StoreClosedError,
    TornTailError,
)

__all__ = [
    "CorruptionError",
    "KVStore",
    "KeyState",
    "LogKVError",
    "Lookup",
    "RecordNotFoundError",
    "SnapshotError",
    "StaleIndexError",
    "StoreClosedError",
    "TornTailError",
]
