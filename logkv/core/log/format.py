"""
Record format structures for the key-value log.

This module defines the binary framing of a single key-value record,
including serialization and checksum-verified deserialization.

Wire format (all integers little-endian):
    Checksum (4 bytes) - CRC-32/CKSUM of key followed by value
    Key length (4 bytes)
    Value length (4 bytes)
    Key (variable)
    Value (variable)
"""

import struct
from dataclasses import dataclass
from typing import Callable, Optional

from crc import Calculator, Crc32

from logkv.core.errors import CorruptionError

_CALCULATOR = Calculator(Crc32.POSIX, optimized=True)

HEADER = struct.Struct("<III")
HEADER_SIZE = HEADER.size
MAX_FIELD_LENGTH = 0xFFFFFFFF


def checksum(data: bytes) -> int:
    """
    Compute the CRC-32/CKSUM checksum of data.
    
    Args:
        data: Bytes to checksum
    
    Returns:
        Unsigned 32-bit checksum
    """
    return _CALCULATOR.checksum(data)


@dataclass(frozen=True)
class Record:
    """
    A single key-value record in the log.
    
    Attributes:
        key: Record key
        value: Record value; empty for a tombstone
    """
    
    key: bytes
    value: bytes
    
    def __post_init__(self) -> None:
        """Validate record fields."""
        if not isinstance(self.key, bytes):
            raise TypeError(f"Key must be bytes, got {type(self.key)}")
        if not isinstance(self.value, bytes):
            raise TypeError(f"Value must be bytes, got {type(self.value)}")
        if len(self.key) > MAX_FIELD_LENGTH:
            raise ValueError(f"Key too long: {len(self.key)} bytes")
        if len(self.value) > MAX_FIELD_LENGTH:
            raise ValueError(f"Value too long: {len(self.value)} bytes")
    
    @property
    def is_tombstone(self) -> bool:
        """Whether this record marks its key as deleted."""
        return len(self.value) == 0
    
    def serialize(self) -> bytes:
        """
        Serialize the record to bytes.
        
        Returns:
            Framed record ready to append to the log
        """
        payload = self.key + self.value
        header = HEADER.pack(checksum(payload), len(self.key), len(self.value))
        return header + payload
    
    @classmethod
    def deserialize(cls, data: bytes, offset: Optional[int] = None) -> "Record":
        """
        Deserialize a complete record from bytes.
        
        Args:
            data: Header followed by at least the full payload
            offset: Log offset of the record, used in error reports
        
        Returns:
            Deserialized Record
        
        Raises:
            ValueError: If data is shorter than the framed record
            CorruptionError: If the checksum does not match
        """
        if len(data) < HEADER_SIZE:
            raise ValueError(f"Data too short: {len(data)} bytes")
        
        stored, key_len, value_len = HEADER.unpack_from(data)
        end = HEADER_SIZE + key_len + value_len
        
        if len(data) < end:
            raise ValueError(
                f"Incomplete record: expected {end} bytes, got {len(data)} bytes"
            )
        
        return cls._from_payload(data[HEADER_SIZE:end], stored, key_len, offset)
    
    @classmethod
    def _from_payload(
        cls,
        payload: bytes,
        stored: int,
        key_len: int,
        offset: Optional[int],
    ) -> "Record":
        computed = checksum(payload)
        if computed != stored:
            raise CorruptionError(offset, stored, computed)
        return cls(key=payload[:key_len], value=payload[key_len:])
    
    def size(self) -> int:
        """
        Calculate the serialized size of this record.
        
        Returns:
            Size in bytes
        """
        return HEADER_SIZE + len(self.key) + len(self.value)


def decode_from(
    read: Callable[[int], bytes],
    offset: Optional[int] = None,
) -> Optional[Record]:
    """
    Decode one record from a reader positioned at a record boundary.
    
    A short header or short payload means the log ended, possibly in the
    middle of a record torn by a crash; both are reported as None.
    
    Args:
        read: Callable returning up to n bytes, fewer only at end of stream
        offset: Log offset of the record, used in error reports
    
    Returns:
        The decoded Record, or None at end of log
    
    Raises:
        CorruptionError: If the record was fully read but its checksum fails
    """
    header = read(HEADER_SIZE)
    if len(header) < HEADER_SIZE:
        return None
    
    stored, key_len, value_len = HEADER.unpack(header)
    payload_len = key_len + value_len
    
    payload = read(payload_len)
    if len(payload) < payload_len:
        return None
    
    return Record._from_payload(payload, stored, key_len, offset)
