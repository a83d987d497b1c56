"""Tests for the single-file record log."""

import os
import struct
import tempfile
from pathlib import Path

import pytest

from logkv.core.errors import (
    CorruptionError,
    RecordNotFoundError,
    StoreClosedError,
    TornTailError,
)
from logkv.core.log.format import HEADER_SIZE, Record
from logkv.core.log.log_file import LogFile


class TestLogFile:
    """Test LogFile class."""
    
    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for tests."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)
    
    def test_create_log_file(self, temp_dir):
        """Test that opening creates an empty file."""
        log = LogFile(temp_dir / "data.log")
        
        assert log.path.exists()
        assert log.size() == 0
        assert list(log.scan_from(0)) == []
        
        log.close()
    
    def test_append_returns_record_offsets(self, temp_dir):
        """Test that append returns the pre-write offset."""
        log = LogFile(temp_dir / "data.log")
        
        first = log.append(b"a", b"1")
        second = log.append(b"bb", b"22")
        
        assert first == 0
        assert second == HEADER_SIZE + 2
        assert log.size() == second + HEADER_SIZE + 4
        
        log.close()
    
    def test_read_at(self, temp_dir):
        """Test positioned reads."""
        log = LogFile(temp_dir / "data.log")
        
        log.append(b"a", b"1")
        offset = log.append(b"b", b"2")
        
        assert log.read_at(offset) == Record(key=b"b", value=b"2")
        assert log.read_at(0) == Record(key=b"a", value=b"1")
        
        log.close()
    
    def test_read_past_end(self, temp_dir):
        """Test that reading at the end of the log finds no record."""
        log = LogFile(temp_dir / "data.log")
        log.append(b"a", b"1")
        
        with pytest.raises(RecordNotFoundError) as exc_info:
            log.read_at(log.size())
        
        assert exc_info.value.offset == log.size()
        
        log.close()
    
    def test_negative_offset_raises_error(self, temp_dir):
        """Test that a negative offset raises ValueError."""
        log = LogFile(temp_dir / "data.log")
        
        with pytest.raises(ValueError, match="non-negative"):
            log.read_at(-1)
        
        log.close()
    
    def test_scan_from_offset(self, temp_dir):
        """Test scanning from the middle of the log."""
        log = LogFile(temp_dir / "data.log")
        
        offsets = [log.append(f"key-{i}".encode(), f"value-{i}".encode()) for i in range(5)]
        
        scanned = list(log.scan_from(offsets[2]))
        
        assert [offset for offset, _ in scanned] == offsets[2:]
        assert scanned[0][1].key == b"key-2"
        assert log.valid_end == log.size()
        
        log.close()
    
    def test_interleaved_append_during_scan(self, temp_dir):
        """Test that appends do not disturb the position of a running scan."""
        log = LogFile(temp_dir / "data.log")
        log.append(b"a", b"1")
        log.append(b"b", b"2")
        
        scan = log.scan_from(0)
        first_offset, first = next(scan)
        log.append(b"c", b"3")
        log.read_at(first_offset)
        rest = [record.key for _, record in scan]
        
        assert first.key == b"a"
        assert rest == [b"b", b"c"]
        
        log.close()
    
    def test_scan_stops_at_torn_record(self, temp_dir):
        """Test that a torn final record ends the scan."""
        path = temp_dir / "data.log"
        log = LogFile(path)
        log.append(b"a", b"1")
        torn_offset = log.append(b"b", b"2")
        log.close()
        
        os.truncate(path, torn_offset + HEADER_SIZE + 1)
        
        log = LogFile(path)
        records = list(log.scan_from(0))
        
        assert [record.key for _, record in records] == [b"a"]
        assert log.valid_end == torn_offset
        
        with pytest.raises(RecordNotFoundError):
            log.read_at(torn_offset)
        
        log.close()
    
    def test_oversized_lengths_in_torn_header(self, temp_dir):
        """Test that a header claiming more bytes than the file holds ends the log."""
        path = temp_dir / "data.log"
        path.write_bytes(struct.pack("<III", 0, 0xFFFFFFFF, 0xFFFFFFFF) + b"abc")
        
        log = LogFile(path)
        
        assert list(log.scan_from(0)) == []
        assert log.valid_end == 0
        with pytest.raises(RecordNotFoundError):
            log.read_at(0)
        
        log.close()
    
    def test_append_refused_behind_torn_record(self, temp_dir):
        """Test that appends never land behind a torn final record."""
        path = temp_dir / "data.log"
        log = LogFile(path)
        log.append(b"a", b"1")
        log.append(b"b", b"2")
        log.close()
        
        os.truncate(path, path.stat().st_size - 3)
        
        log = LogFile(path)
        list(log.scan_from(0))
        size = log.size()
        
        with pytest.raises(TornTailError) as exc_info:
            log.append(b"c", b"3")
        
        assert exc_info.value.valid_end == HEADER_SIZE + 2
        assert log.size() == size
        
        log.close()
    
    def test_append_advances_valid_end(self, temp_dir):
        """Test that appends after a clean scan keep the valid end current."""
        log = LogFile(temp_dir / "data.log")
        list(log.scan_from(0))
        
        log.append(b"a", b"1")
        offset = log.append(b"b", b"2")
        
        assert log.valid_end == log.size()
        assert log.read_at(offset).key == b"b"
        
        log.close()
    
    def test_corruption_detected_on_read(self, temp_dir):
        """Test that a flipped payload bit fails the read."""
        path = temp_dir / "data.log"
        log = LogFile(path)
        offset = log.append(b"key", b"value")
        log.close()
        
        data = bytearray(path.read_bytes())
        data[offset + HEADER_SIZE] ^= 0x80
        path.write_bytes(bytes(data))
        
        log = LogFile(path)
        
        with pytest.raises(CorruptionError):
            log.read_at(offset)
        
        with pytest.raises(CorruptionError):
            list(log.scan_from(0))
        
        log.close()
    
    def test_truncate(self, temp_dir):
        """Test cutting the file back to a record boundary."""
        log = LogFile(temp_dir / "data.log")
        log.append(b"a", b"1")
        second = log.append(b"b", b"2")
        
        log.truncate(second)
        
        assert log.size() == second
        assert [record.key for _, record in log.scan_from(0)] == [b"a"]
        
        log.close()
    
    def test_fsync_on_append(self, temp_dir):
        """Test appending with fsync enabled."""
        log = LogFile(temp_dir / "data.log", fsync_on_append=True)
        
        offset = log.append(b"key", b"value")
        
        assert log.read_at(offset).value == b"value"
        
        log.close()
    
    def test_closed_log_rejects_operations(self, temp_dir):
        """Test operations on a closed log."""
        log = LogFile(temp_dir / "data.log")
        log.close()
        
        assert log.closed
        with pytest.raises(StoreClosedError):
            log.append(b"key", b"value")
        
        log.close()
    
    def test_context_manager(self, temp_dir):
        """Test context manager closes the file."""
        with LogFile(temp_dir / "data.log") as log:
            log.append(b"key", b"value")
        
        assert log.closed
