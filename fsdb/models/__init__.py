"""
Data models for the filesystem database.
"""

from fsdb.models.exceptions import (
    DecodeError,
    EncodeError,
    FsdbError,
    InvalidKeyError,
    NotFoundError,
    StorageIOError,
)
from fsdb.models.record import Record

__all__ = [
    "DecodeError",
    "EncodeError",
    "FsdbError",
    "InvalidKeyError",
    "NotFoundError",
    "Record",
    "StorageIOError",
]
