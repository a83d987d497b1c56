"""
Single-file append-only log of key-value records.

The log file owns one file descriptor opened for reading and appending. Every
operation positions the descriptor itself before acting, so no operation
relies on a cursor left behind by another one.
"""

import os
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from logkv.core.errors import RecordNotFoundError, StoreClosedError, TornTailError
from logkv.core.log.format import Record, decode_from
from logkv.utils.logging import get_logger

logger = get_logger(__name__)

READ_CHUNK_SIZE = 1 << 16


class LogFile:
    """
    Manages the record log backing a store.
    
    Properties:
    - Append-only writes (no in-place updates)
    - Positioned reads verified by checksum
    - Lazy scans that stop cleanly at a torn final record
    
    Attributes:
        path: Path to the log file
        fsync_on_append: Whether to fsync after each append
        valid_end: Offset just past the last complete record seen by the
            most recent scan that reached end of log, advanced by appends;
            appends are refused while torn bytes lie beyond it
    """
    
    def __init__(self, path: Union[str, Path], fsync_on_append: bool = False):
        """
        Open or create a log file.
        
        Args:
            path: Location of the log file
            fsync_on_append: Whether to fsync after each append
        
        Raises:
            OSError: If the file cannot be opened or created
        """
        self.path = Path(path)
        self.fsync_on_append = fsync_on_append
        self.valid_end: Optional[int] = None
        
        self._fd: Optional[int] = None
        self._open()
    
    def _open(self) -> None:
        """Open the log file for reading and appending."""
        if self._fd is not None:
            return
        
        flags = os.O_RDWR | os.O_CREAT | os.O_APPEND | getattr(os, "O_BINARY", 0)
        mode = 0o644
        
        self._fd = os.open(self.path, flags, mode)
        
        logger.info(
            "Opened log file",
            path=str(self.path),
            size=os.fstat(self._fd).st_size,
        )
    
    def _require_open(self) -> int:
        if self._fd is None:
            raise StoreClosedError(f"Log file is closed: {self.path}")
        return self._fd
    
    def _reader_at(self, position: int):
        """Return a read callable that starts at position and advances."""
        fd = self._require_open()
        cursor = position
        
        def read(size: int) -> bytes:
            nonlocal cursor
            chunks = []
            remaining = size
            while remaining > 0:
                os.lseek(fd, cursor, os.SEEK_SET)
                chunk = os.read(fd, min(remaining, READ_CHUNK_SIZE))
                if not chunk:
                    break
                chunks.append(chunk)
                cursor += len(chunk)
                remaining -= len(chunk)
            return b"".join(chunks)
        
        return read
    
    def append(self, key: bytes, value: bytes) -> int:
        """
        Append a record to the end of the log.
        
        Args:
            key: Record key
            value: Record value
        
        Returns:
            Offset at which the record begins
        
        Raises:
            TornTailError: If the last scan stopped at a torn record that
                is still in the file
            OSError: If the write fails
        """
        fd = self._require_open()
        data = Record(key=key, value=value).serialize()
        
        position = os.lseek(fd, 0, os.SEEK_END)
        if self.valid_end is not None and self.valid_end < position:
            raise TornTailError(self.valid_end, position)
        
        written = 0
        view = memoryview(data)
        while written < len(data):
            written += os.write(fd, view[written:])
        
        if self.fsync_on_append:
            os.fsync(fd)
        
        if self.valid_end == position:
            self.valid_end = position + len(data)
        
        logger.debug(
            "Appended record",
            offset=position,
            size=len(data),
            key_len=len(key),
            value_len=len(value),
        )
        
        return position
    
    def read_at(self, offset: int) -> Record:
        """
        Read the single record starting at offset.
        
        Args:
            offset: Byte offset of the record
        
        Returns:
            The record
        
        Raises:
            ValueError: If offset is negative
            RecordNotFoundError: If no complete record starts at offset
            CorruptionError: If the record fails its checksum
        """
        if offset < 0:
            raise ValueError(f"Offset must be non-negative, got {offset}")
        
        record = decode_from(self._reader_at(offset), offset)
        if record is None:
            raise RecordNotFoundError(offset)
        
        logger.debug("Read record", offset=offset, size=record.size())
        return record
    
    def scan_from(self, offset: int = 0) -> Iterator[Tuple[int, Record]]:
        """
        Lazily yield every record from offset to the end of the log.
        
        The iterator is single-pass; scanning again requires a new call.
        
        Args:
            offset: Byte offset of the first record
        
        Yields:
            (record offset, record) pairs in file order
        
        Raises:
            CorruptionError: If a fully-read record fails its checksum
        """
        if offset < 0:
            raise ValueError(f"Offset must be non-negative, got {offset}")
        
        read = self._reader_at(offset)
        position = offset
        
        while True:
            record = decode_from(read, position)
            if record is None:
                break
            yield position, record
            position += record.size()
        
        self.valid_end = position
        
        trailing = self.size() - position
        if trailing > 0:
            logger.warning(
                "Scan stopped at torn record",
                path=str(self.path),
                position=position,
                trailing_bytes=trailing,
            )
    
    def size(self) -> int:
        """
        Get current size of the log file in bytes.
        
        Returns:
            Size in bytes
        """
        return os.fstat(self._require_open()).st_size
    
    def truncate(self, size: int) -> None:
        """
        Cut the log file back to size bytes.
        
        Args:
            size: New length; must be a record boundary
        """
        fd = self._require_open()
        os.ftruncate(fd, size)
        os.fsync(fd)
        self.valid_end = size
        logger.warning("Truncated log file", path=str(self.path), size=size)
    
    def flush(self) -> None:
        """Force written records to stable storage."""
        if self._fd is not None:
            os.fsync(self._fd)
            logger.debug("Flushed log file", path=str(self.path))
    
    @property
    def closed(self) -> bool:
        return self._fd is None
    
    def close(self) -> None:
        """Close the log file and release the descriptor."""
        if self._fd is None:
            return
        self.flush()
        os.close(self._fd)
        self._fd = None
        logger.info("Closed log file", path=str(self.path))
    
    def __enter__(self) -> "LogFile":
        """Context manager entry."""
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
    
    def __repr__(self) -> str:
        """String representation."""
        state = "closed" if self._fd is None else f"size={self.size()}"
        return f"LogFile(path={str(self.path)!r}, {state})"
