"""
Binary encoding of key index snapshots.

A snapshot is stored as the value of an ordinary record under a reserved key.
Its layout, all integers little-endian:
    Entry count (4 bytes)
    Repeated entries:
        Key length (4 bytes)
        Offset (8 bytes)
        Key (variable)
"""

import struct
from typing import Dict, Mapping

from logkv.core.errors import SnapshotError

DEFAULT_INDEX_KEY = b"+index"


class SnapshotEntry:
    """
    A single key to offset entry in a snapshot.
    """
    
    FORMAT = "<IQ"
    SIZE = struct.calcsize(FORMAT)
    
    def __init__(self, key: bytes, offset: int):
        """
        Create a snapshot entry.
        
        Args:
            key: Indexed key
            offset: Byte offset of the key's latest record
        
        Raises:
            ValueError: If offset is negative
        """
        if offset < 0:
            raise ValueError(f"Offset must be non-negative: {offset}")
        
        self.key = key
        self.offset = offset
    
    def serialize(self) -> bytes:
        return struct.pack(self.FORMAT, len(self.key), self.offset) + self.key
    
    def __repr__(self) -> str:
        return f"SnapshotEntry(key={self.key!r}, offset={self.offset})"


def encode_snapshot(offsets: Mapping[bytes, int]) -> bytes:
    """
    Serialize a key to offset mapping.
    
    Args:
        offsets: Index contents
    
    Returns:
        Snapshot bytes
    """
    parts = [struct.pack("<I", len(offsets))]
    for key, offset in offsets.items():
        parts.append(SnapshotEntry(key, offset).serialize())
    return b"".join(parts)


def decode_snapshot(data: bytes) -> Dict[bytes, int]:
    """
    Deserialize snapshot bytes into a key to offset mapping.
    
    Args:
        data: Snapshot bytes as produced by encode_snapshot
    
    Returns:
        Mapping of key to offset
    
    Raises:
        SnapshotError: If data is truncated or has trailing bytes
    """
    if len(data) < 4:
        raise SnapshotError(f"Snapshot too short: {len(data)} bytes")
    
    (count,) = struct.unpack_from("<I", data, 0)
    position = 4
    offsets: Dict[bytes, int] = {}
    
    for i in range(count):
        if position + SnapshotEntry.SIZE > len(data):
            raise SnapshotError(f"Snapshot truncated in entry {i} header")
        key_len, offset = struct.unpack_from(SnapshotEntry.FORMAT, data, position)
        position += SnapshotEntry.SIZE
        
        if position + key_len > len(data):
            raise SnapshotError(f"Snapshot truncated in entry {i} key")
        offsets[data[position : position + key_len]] = offset
        position += key_len
    
    if position != len(data):
        raise SnapshotError(
            f"Snapshot has {len(data) - position} unexpected trailing bytes"
        )
    
    return offsets
