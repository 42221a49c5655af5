"""
Storage engine components.
"""

from fsdb.engine.atomic_writer import AtomicWriter
from fsdb.engine.bucket import Bucket, KeyListing
from fsdb.engine.codec import Codec
from fsdb.engine.database import Database
from fsdb.engine.path_mapper import PathMapper

__all__ = [
    "AtomicWriter",
    "Bucket",
    "Codec",
    "Database",
    "KeyListing",
    "PathMapper",
]
