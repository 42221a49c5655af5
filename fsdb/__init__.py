"""
Filesystem-backed embedded key-value store.

This package stores one file per entry, grouped into bucket directories:
- Database.open(root) - Open or create a database directory
- Database.bucket(name) - Open or create a bucket
- Bucket.put(key, value) - Atomic, durable write
- Bucket.get(key, into) - Read and decode a value
- Bucket.delete(key) / Bucket.list_keys() / Bucket.exists(key)
"""

from fsdb.engine.bucket import Bucket
from fsdb.engine.codec import Codec
from fsdb.engine.database import Database
from fsdb.interfaces.serializable import Serializable
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
    "Bucket",
    "Codec",
    "Database",
    "DecodeError",
    "EncodeError",
    "FsdbError",
    "InvalidKeyError",
    "NotFoundError",
    "Record",
    "Serializable",
    "StorageIOError",
]
