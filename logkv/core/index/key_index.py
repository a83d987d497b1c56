"""
In-memory key index for direct lookups into the record log.

The index maps each key to the offset of its most recently written record.
It is rebuilt by replaying the log and kept current by every write.
"""

from typing import Dict, Iterable, Optional, Tuple

from logkv.core.errors import StaleIndexError
from logkv.core.log.format import Record
from logkv.utils.logging import get_logger

logger = get_logger(__name__)


class KeyIndex:
    """
    Mapping from key to the offset of that key's latest record.
    
    The index has an explicit stale state: after it has been persisted as a
    snapshot it is emptied and must be rebuilt before lookups are trusted.
    """
    
    def __init__(self) -> None:
        self._offsets: Dict[bytes, int] = {}
        self._stale = False
    
    @property
    def is_stale(self) -> bool:
        """Whether the index must be rebuilt before lookups."""
        return self._stale
    
    def rebuild_from(self, records: Iterable[Tuple[int, Record]]) -> int:
        """
        Replace the index contents by replaying records in log order.
        
        Later records for the same key overwrite earlier ones. If the
        replay fails, the previous contents are left untouched.
        
        Args:
            records: (offset, record) pairs in file order
        
        Returns:
            Number of records replayed
        """
        offsets: Dict[bytes, int] = {}
        replayed = 0
        
        for offset, record in records:
            offsets[record.key] = offset
            replayed += 1
        
        self._offsets = offsets
        self._stale = False
        
        logger.debug("Rebuilt key index", records=replayed, keys=len(self._offsets))
        return replayed
    
    def lookup(self, key: bytes) -> Optional[int]:
        """
        Find the offset of the latest record for key.
        
        Raises:
            StaleIndexError: If the index has not been reloaded since it
                was invalidated
        """
        if self._stale:
            raise StaleIndexError("Key index is stale; call load() first")
        return self._offsets.get(key)
    
    def put(self, key: bytes, offset: int) -> None:
        if offset < 0:
            raise ValueError(f"Offset must be non-negative, got {offset}")
        self._offsets[key] = offset
    
    def remove(self, key: bytes) -> Optional[int]:
        return self._offsets.pop(key, None)
    
    def invalidate(self) -> None:
        """Empty the index and mark it stale until the next rebuild."""
        self._offsets = {}
        self._stale = True
        logger.debug("Invalidated key index")
    
    def to_dict(self) -> Dict[bytes, int]:
        return dict(self._offsets)
    
    def __len__(self) -> int:
        return len(self._offsets)
    
    def __contains__(self, key: object) -> bool:
        return key in self._offsets
    
    def __repr__(self) -> str:
        return f"KeyIndex(keys={len(self._offsets)}, stale={self._stale})"
