"""
Bucket - Directory-backed namespace of key-value entries.
"""

import logging
import os
from collections.abc import Iterable, Iterator
from typing import Any

from fsdb.engine.atomic_writer import AtomicWriter
from fsdb.engine.codec import Codec
from fsdb.engine.path_mapper import PathMapper
from fsdb.models.exceptions import InvalidKeyError, NotFoundError, StorageIOError

logger = logging.getLogger(__name__)


class KeyListing(Iterable[str]):
    """
    Lazy, restartable listing of the names stored in a directory.

    Every iteration scans the directory afresh, so the listing reflects
    entries added or removed since it was created. Order is whatever the
    filesystem returns.
    """

    def __init__(self, directory: str, mapper: PathMapper, directories: bool = False) -> None:
        """
        Initialize the listing.

        Args:
            directory: Directory to scan.
            mapper: Reverses file names into keys and filters out temp files.
            directories: List subdirectories instead of files.
        """
        self._directory = directory
        self._mapper = mapper
        self._directories = directories

    def __iter__(self) -> Iterator[str]:
        try:
            entries = os.scandir(self._directory)
        except FileNotFoundError as e:
            raise NotFoundError(self._directory) from e
        except OSError as e:
            raise StorageIOError(
                f"Failed to list {self._directory}: {e}", self._directory
            ) from e

        with entries:
            for entry in entries:
                if self._directories:
                    wanted = entry.is_dir(follow_symlinks=False)
                else:
                    wanted = entry.is_file(follow_symlinks=False)
                if not wanted:
                    continue

                key = self._mapper.key_for(entry.name)
                if key is not None:
                    yield key

    def __repr__(self) -> str:
        return f"KeyListing({self._directory!r})"


class Bucket:
    """
    A named collection of entries bound to one directory.

    Provides:
    - put(key, value): Store a value, replacing any previous one atomically
    - get(key, into): Load a value, decoded as the requested type
    - delete(key): Remove an entry
    - list_keys(): Enumerate stored keys
    - exists(key): Check for an entry

    A Bucket is a view over its directory. It caches nothing and holds no
    open files between calls, so any number of Bucket objects for the same
    directory observe the same entries.
    """

    def __init__(
        self,
        directory: str,
        codec: Codec | None = None,
        writer: AtomicWriter | None = None,
        mapper: PathMapper | None = None,
    ) -> None:
        """
        Initialize a bucket over an existing directory.

        Use ``Database.bucket`` to create the directory and the bucket together.

        Args:
            directory: The bucket's directory.
            codec: Value serializer. Defaults to a new Codec.
            writer: File writer. Defaults to an AtomicWriter sharing ``mapper``.
            mapper: Key to path mapping. Defaults to a new PathMapper.
        """
        self._directory = os.path.abspath(directory)
        self._mapper = mapper or PathMapper()
        self._codec = codec or Codec()
        self._writer = writer or AtomicWriter(self._mapper)

    @property
    def name(self) -> str:
        return os.path.basename(self._directory)

    @property
    def path(self) -> str:
        return self._directory

    def put(self, key: str, value: Any) -> None:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: The key to write.
            value: Any value the codec can encode.

        Raises:
            InvalidKeyError: If the key is not path-safe.
            EncodeError: If the value cannot be serialized.
            StorageIOError: If the file cannot be written.
        """
        path = self._mapper.resolve(self._directory, key)
        data = self._codec.encode(value)
        self._writer.write_atomic(path, data)
        logger.debug(f"put {self.name}/{key} ({len(data)} bytes)")

    def get(self, key: str, into: type | None = None) -> Any:
        """
        Load the value stored under a key.

        Args:
            key: The key to read.
            into: Type to decode into (a Serializable subclass or a builtin
                  type). None returns the plain decoded value.

        Returns:
            The stored value.

        Raises:
            InvalidKeyError: If the key is not path-safe.
            NotFoundError: If the key has no entry.
            DecodeError: If the stored bytes do not decode as ``into``.
            StorageIOError: If the file cannot be read.
        """
        path = self._mapper.resolve(self._directory, key)
        return self._codec.decode(self._writer.read(path), into)

    def delete(self, key: str) -> None:
        """
        Remove the entry for a key.

        Raises:
            InvalidKeyError: If the key is not path-safe.
            NotFoundError: If the key has no entry.
            StorageIOError: If the file cannot be removed.
        """
        path = self._mapper.resolve(self._directory, key)
        self._writer.delete(path)
        logger.debug(f"delete {self.name}/{key}")

    remove = delete

    def list_keys(self) -> KeyListing:
        """Return a lazy, restartable listing of the keys in this bucket."""
        return KeyListing(self._directory, self._mapper)

    def exists(self, key: str) -> bool:
        """Check whether a key has an entry. Invalid keys never exist."""
        try:
            path = self._mapper.resolve(self._directory, key)
        except InvalidKeyError:
            return False
        return self._writer.exists(path)

    def purge_temp_files(self, older_than: float = 0.0) -> int:
        """Remove temp files orphaned by interrupted writes. See AtomicWriter."""
        return self._writer.purge_temp_files(self._directory, older_than)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_keys())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bucket):
            return NotImplemented
        return self._directory == other._directory

    def __hash__(self) -> int:
        return hash(self._directory)

    def __repr__(self) -> str:
        return f"Bucket({self._directory!r})"
