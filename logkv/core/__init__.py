"""Core components for log storage and indexing."""

from logkv.core import index, log
from logkv.core.errors import (
    CorruptionError,
    LogKVError,
    RecordNotFoundError,
    SnapshotError,
    StaleIndexError,
    StoreClosedError,
    TornTailError,
)
from logkv.core.store import KeyState, KVStore, Lookup

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
    "index",
    "log",
]
