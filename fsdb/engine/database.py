"""
Database - Root directory owning a set of buckets.
"""

import logging
import os
import shutil

from fsdb.engine.atomic_writer import AtomicWriter
from fsdb.engine.bucket import Bucket, KeyListing
from fsdb.engine.codec import Codec
from fsdb.engine.path_mapper import PathMapper
from fsdb.models.exceptions import InvalidKeyError, NotFoundError, StorageIOError

logger = logging.getLogger(__name__)


class Database:
    """
    Filesystem-backed key-value database.

    Provides:
    - bucket(name): Open or create a bucket
    - list_buckets(): Enumerate bucket names
    - delete_bucket(name): Remove a bucket and all its entries

    Layout:
    - <root>/<bucket>/<key> holds the serialized value of one entry
    - Bucket objects are built on demand and never cached
    """

    DEFAULT_FSYNC = True

    def __init__(self, root: str, fsync: bool = DEFAULT_FSYNC) -> None:
        """
        Open a database, creating its root directory if needed.

        Args:
            root: Directory holding the buckets. Missing parents are created.
            fsync: Sync every write to stable storage before returning.

        Raises:
            ValueError: If root is empty.
            StorageIOError: If root is not a directory or cannot be created.
        """
        if not root or not str(root).strip():
            raise ValueError("root cannot be empty")

        self._root = os.path.abspath(root)
        self._mapper = PathMapper()
        self._codec = Codec()
        self._writer = AtomicWriter(self._mapper, fsync=fsync)

        self._initialize()

    @classmethod
    def open(cls, root: str, fsync: bool = DEFAULT_FSYNC) -> "Database":
        """Open (or create) the database rooted at ``root``."""
        return cls(root, fsync=fsync)

    def _initialize(self) -> None:
        """Ensure the root directory exists."""
        if os.path.isdir(self._root):
            return
        if os.path.exists(self._root):
            raise StorageIOError(f"Database root is not a directory: {self._root}", self._root)

        try:
            os.makedirs(self._root, exist_ok=True)
        except OSError as e:
            raise StorageIOError(
                f"Cannot create database root {self._root}: {e}", self._root
            ) from e
        logger.info(f"Created database at {self._root}")

    @property
    def root(self) -> str:
        return self._root

    def bucket(self, name: str) -> Bucket:
        """
        Open a bucket, creating its directory if absent.

        Calling this repeatedly with the same name returns equal buckets
        over the same directory.

        Args:
            name: Bucket name. Same rules as keys.

        Returns:
            The bucket.

        Raises:
            InvalidKeyError: If the name is not path-safe.
            StorageIOError: If the directory cannot be created or a file
                            occupies its place.
        """
        directory = self._mapper.resolve(self._root, name)

        if not os.path.isdir(directory):
            try:
                os.mkdir(directory)
                logger.info(f"Created bucket {name}")
            except FileExistsError:
                # Another thread created it first, or a file is in the way
                if not os.path.isdir(directory):
                    raise StorageIOError(
                        f"Bucket path is not a directory: {directory}", directory
                    )
            except OSError as e:
                raise StorageIOError(f"Cannot create bucket {name}: {e}", directory) from e

        return Bucket(directory, codec=self._codec, writer=self._writer, mapper=self._mapper)

    def has_bucket(self, name: str) -> bool:
        try:
            directory = self._mapper.resolve(self._root, name)
        except InvalidKeyError:
            return False
        return os.path.isdir(directory)

    def list_buckets(self) -> KeyListing:
        """Return a lazy, restartable listing of bucket names."""
        return KeyListing(self._root, self._mapper, directories=True)

    def delete_bucket(self, name: str) -> None:
        """
        Remove a bucket and every entry in it.

        Raises:
            InvalidKeyError: If the name is not path-safe.
            NotFoundError: If the bucket does not exist.
            StorageIOError: If the directory cannot be removed.
        """
        directory = self._mapper.resolve(self._root, name)
        if not os.path.isdir(directory) or os.path.islink(directory):
            raise NotFoundError(directory)

        try:
            shutil.rmtree(directory)
        except FileNotFoundError as e:
            raise NotFoundError(directory) from e
        except OSError as e:
            raise StorageIOError(f"Cannot delete bucket {name}: {e}", directory) from e
        logger.info(f"Deleted bucket {name}")

    def __repr__(self) -> str:
        return f"Database({self._root!r})"
