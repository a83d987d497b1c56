"""
Core log storage implementation.

This package provides the single-file record log with:
- Binary record format with CRC validation
- Positioned reads and lazy scans
- Tolerance of a torn final record
"""

from logkv.core.log.format import HEADER_SIZE, Record, checksum, decode_from
from logkv.core.log.log_file import LogFile

__all__ = [
    "HEADER_SIZE",
    "LogFile",
    "Record",
    "checksum",
    "decode_from",
]
