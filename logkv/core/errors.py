"""Exception types raised by the logkv core."""

from typing import Optional


class LogKVError(Exception):
    """Base class for all logkv errors."""
    pass


class CorruptionError(LogKVError):
    """Raised when a fully-read record fails its checksum."""
    
    def __init__(self, offset: Optional[int], expected: int, computed: int):
        self.offset = offset
        self.expected = expected
        self.computed = computed
        location = f" at offset {offset}" if offset is not None else ""
        super().__init__(
            f"Data corruption encountered{location}: "
            f"stored checksum {expected:08x} != computed {computed:08x}"
        )


class RecordNotFoundError(LogKVError):
    """Raised when no complete record starts at the requested offset."""
    
    def __init__(self, offset: int):
        self.offset = offset
        super().__init__(f"No complete record at offset {offset}")


class StaleIndexError(LogKVError):
    """Raised when the in-memory index must be reloaded before use."""
    pass


class SnapshotError(LogKVError):
    """Raised when a persisted index snapshot cannot be decoded."""
    pass


class StoreClosedError(LogKVError):
    """Raised when operating on a closed store."""
    pass


class TornTailError(LogKVError):
    """Raised when appending behind a torn final record left by a crash."""
    
    def __init__(self, valid_end: int, size: int):
        self.valid_end = valid_end
        self.size = size
        super().__init__(
            f"Log has {size - valid_end} torn bytes after offset {valid_end}; "
            f"truncate the torn tail before writing"
        )
