"""
Key-value store composed of a record log and an in-memory key index.

All writes are appended to the log; the index maps each key to the offset of
its latest record so reads need a single positioned read.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from logkv.core.errors import StaleIndexError
from logkv.core.index.key_index import KeyIndex
from logkv.core.index.snapshot import DEFAULT_INDEX_KEY, decode_snapshot, encode_snapshot
from logkv.core.log.format import Record
from logkv.core.log.log_file import LogFile
from logkv.utils.logging import get_logger

logger = get_logger(__name__)


class KeyState(Enum):
    """Outcome of an index lookup."""
    
    PRESENT = "present"
    TOMBSTONED = "tombstoned"
    ABSENT = "absent"


@dataclass(frozen=True)
class Lookup:
    """
    Result of KVStore.lookup, distinguishing deleted keys from unknown ones.
    
    Attributes:
        state: Whether the key holds a value, was deleted, or was never written
        value: The stored value when present, empty when tombstoned
        offset: Offset of the key's latest record, if any
    """
    
    state: KeyState
    value: Optional[bytes] = None
    offset: Optional[int] = None
    
    @property
    def found(self) -> bool:
        return self.state is KeyState.PRESENT


class KVStore:
    """
    Log-structured key-value store backed by a single file.
    
    The index starts empty; call load() to replay the log before using the
    index-based reads (get, lookup). find() always scans the whole log and
    does not depend on the index.
    
    Attributes:
        path: Path to the log file
        truncate_torn_tail: Cut a torn final record off the file during load
    """
    
    def __init__(
        self,
        path: Union[str, Path],
        fsync_on_append: bool = False,
        truncate_torn_tail: bool = False,
    ):
        """
        Open a store, creating the log file if it does not exist.
        
        Args:
            path: Location of the log file
            fsync_on_append: Whether to fsync after each append
            truncate_torn_tail: Cut a torn final record off the file on load
        
        Raises:
            OSError: If the file cannot be opened or created
        """
        self.truncate_torn_tail = truncate_torn_tail
        self._log = LogFile(path, fsync_on_append=fsync_on_append)
        self._index = KeyIndex()
    
    @classmethod
    def open(cls, path: Union[str, Path], **kwargs) -> "KVStore":
        """Open a store at path; see KVStore.__init__ for options."""
        return cls(path, **kwargs)
    
    @property
    def path(self) -> Path:
        return self._log.path
    
    @property
    def index(self) -> KeyIndex:
        return self._index
    
    def load(self) -> int:
        """
        Rebuild the index by replaying the whole log from offset 0.
        
        Returns:
            Number of records replayed
        
        Raises:
            CorruptionError: If any complete record fails its checksum
        """
        replayed = self._index.rebuild_from(self._log.scan_from(0))
        
        valid_end = self._log.valid_end
        torn_bytes = self._log.size() - valid_end
        if torn_bytes > 0 and self.truncate_torn_tail:
            self._log.truncate(valid_end)
        
        logger.info(
            "Loaded store",
            path=str(self.path),
            records=replayed,
            keys=len(self._index),
            torn_bytes=torn_bytes,
        )
        return replayed
    
    def get(self, key: bytes) -> Optional[bytes]:
        """
        Read the current value of key through the index.
        
        A deleted key yields an empty value; use lookup() to tell deleted
        keys apart from keys that were never written.
        
        Returns:
            The latest value, or None if the key is not indexed
        
        Raises:
            StaleIndexError: If the index was invalidated by a snapshot
            CorruptionError: If the indexed record fails its checksum
        """
        offset = self._index.lookup(key)
        if offset is None:
            return None
        return self._log.read_at(offset).value
    
    def lookup(self, key: bytes) -> Lookup:
        """
        Read key through the index, reporting deleted keys explicitly.
        
        Raises:
            StaleIndexError: If the index was invalidated by a snapshot
            CorruptionError: If the indexed record fails its checksum
        """
        offset = self._index.lookup(key)
        if offset is None:
            return Lookup(KeyState.ABSENT)
        
        record = self._log.read_at(offset)
        if record.is_tombstone:
            return Lookup(KeyState.TOMBSTONED, value=b"", offset=offset)
        return Lookup(KeyState.PRESENT, value=record.value, offset=offset)
    
    def get_at(self, offset: int) -> Record:
        """
        Read the record starting at offset without consulting the index.
        
        Raises:
            RecordNotFoundError: If no complete record starts at offset
            CorruptionError: If the record fails its checksum
        """
        return self._log.read_at(offset)
    
    def find(self, key: bytes) -> Optional[Tuple[int, bytes]]:
        """
        Scan the entire log for the latest record of key.
        
        The scan always runs to the end of the log, since a later record may
        override an earlier match.
        
        Returns:
            (offset, value) of the last matching record, or None
        
        Raises:
            CorruptionError: If any complete record fails its checksum
        """
        found: Optional[Tuple[int, bytes]] = None
        for offset, record in self._log.scan_from(0):
            if record.key == key:
                found = (offset, record.value)
        return found
    
    def insert(self, key: bytes, value: bytes) -> int:
        """
        Append a record for key and point the index at it.
        
        Returns:
            Offset of the new record
        
        Raises:
            TornTailError: If the last load stopped at a torn record that was
                not truncated
        """
        offset = self._log.append(key, value)
        if self._index.is_stale:
            logger.debug("Skipped index update on stale index", offset=offset)
        else:
            self._index.put(key, offset)
        return offset
    
    def update(self, key: bytes, value: bytes) -> int:
        """Same as insert: the key need not exist already."""
        return self.insert(key, value)
    
    def delete(self, key: bytes) -> int:
        """Append a tombstone (empty value) for key."""
        return self.insert(key, b"")
    
    def snapshot_index(self, index_key: bytes = DEFAULT_INDEX_KEY) -> int:
        """
        Persist the index as the value of a record stored under index_key.
        
        Any entry for index_key itself is evicted first so the snapshot does
        not describe itself. Afterwards the in-memory index is empty and
        stale until the next load().
        
        Returns:
            Offset of the snapshot record
        
        Raises:
            StaleIndexError: If the index is already stale
        """
        if self._index.is_stale:
            raise StaleIndexError("Cannot snapshot a stale index; call load() first")
        
        self._index.remove(index_key)
        data = encode_snapshot(self._index.to_dict())
        entries = len(self._index)
        
        offset = self._log.append(index_key, data)
        self._index.invalidate()
        
        logger.info(
            "Stored index snapshot",
            offset=offset,
            entries=entries,
            size=len(data),
        )
        return offset
    
    def read_index_snapshot(
        self,
        index_key: bytes = DEFAULT_INDEX_KEY,
    ) -> Optional[Dict[bytes, int]]:
        """
        Decode the most recent index snapshot stored under index_key.
        
        Uses the index when it is usable and a full scan otherwise.
        
        Returns:
            Mapping of key to offset, or None if no snapshot exists
        
        Raises:
            SnapshotError: If the stored snapshot cannot be decoded
        """
        if self._index.is_stale:
            found = self.find(index_key)
            data = found[1] if found is not None else None
        else:
            data = self.get(index_key)
        
        if not data:
            return None
        return decode_snapshot(data)
    
    def size(self) -> int:
        """Size of the log file in bytes."""
        return self._log.size()
    
    def flush(self) -> None:
        """Force written records to stable storage."""
        self._log.flush()
    
    @property
    def closed(self) -> bool:
        return self._log.closed
    
    def close(self) -> None:
        """Close the store and release the log file."""
        self._log.close()
    
    def __enter__(self) -> "KVStore":
        """Context manager entry."""
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
    
    def __repr__(self) -> str:
        """String representation."""
        return f"KVStore(path={str(self.path)!r}, index={self._index!r})"
