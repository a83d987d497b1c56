"""
Key indexing for direct record lookups.

This package provides the in-memory key index rebuilt by log replay and the
binary snapshot format used to persist it inside the log.
"""

from logkv.core.index.key_index import KeyIndex
from logkv.core.index.snapshot import (
    DEFAULT_INDEX_KEY,
    SnapshotEntry,
    decode_snapshot,
    encode_snapshot,
)

__all__ = [
    "DEFAULT_INDEX_KEY",
    "KeyIndex",
    "SnapshotEntry",
    "decode_snapshot",
    "encode_snapshot",
]
