"""Tests for index snapshot encoding."""

import struct

import pytest

from logkv.core.errors import SnapshotError
from logkv.core.index.snapshot import SnapshotEntry, decode_snapshot, encode_snapshot


class TestSnapshotEntry:
    """Test SnapshotEntry class."""
    
    def test_serialize(self):
        """Test entry layout."""
        entry = SnapshotEntry(b"key", 4096)
        
        assert entry.serialize() == struct.pack("<IQ", 3, 4096) + b"key"
    
    def test_negative_offset_raises_error(self):
        """Test that negative offsets are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            SnapshotEntry(b"key", -5)


class TestSnapshotCodec:
    """Test snapshot encoding and decoding."""
    
    def test_empty_snapshot(self):
        """Test an empty index encodes to a bare count."""
        data = encode_snapshot({})
        
        assert data == b"\x00\x00\x00\x00"
        assert decode_snapshot(data) == {}
    
    def test_binary_keys_and_large_offsets(self):
        """Test keys that are not text and offsets beyond 4 GiB."""
        offsets = {b"\x00\xff\x10": 2**33, b"": 7, b"plain": 0}
        
        assert decode_snapshot(encode_snapshot(offsets)) == offsets
    
    def test_truncated_snapshot(self):
        """Test that a cut snapshot is rejected."""
        data = encode_snapshot({b"alpha": 1, b"beta": 2})
        
        with pytest.raises(SnapshotError, match="truncated"):
            decode_snapshot(data[:-1])
    
    def test_too_short(self):
        """Test that data without a count is rejected."""
        with pytest.raises(SnapshotError, match="too short"):
            decode_snapshot(b"\x01")
    
    def test_trailing_bytes(self):
        """Test that extra bytes after the entries are rejected."""
        with pytest.raises(SnapshotError, match="trailing"):
            decode_snapshot(encode_snapshot({b"a": 1}) + b"x")
