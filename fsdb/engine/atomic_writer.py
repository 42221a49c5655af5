"""
AtomicWriter - Crash-safe file replacement via temp file and rename.
"""

import logging
import os
import time
from typing import BinaryIO

from fsdb.engine.path_mapper import PathMapper
from fsdb.models.exceptions import NotFoundError, StorageIOError

logger = logging.getLogger(__name__)


class AtomicWriter:
    """
    Reads, writes and deletes whole files.

    Writes go to a uniquely named temporary file in the target's directory,
    are synced to disk, then renamed over the target. Readers see either the
    previous content or the new content, never a partial file. A crash before
    the rename leaves the target untouched and, at worst, an orphaned temp
    file that listings ignore and ``purge_temp_files`` removes.
    """

    def __init__(self, mapper: PathMapper | None = None, fsync: bool = True) -> None:
        """
        Initialize the writer.

        Args:
            mapper: Supplies temporary file names. Defaults to a new PathMapper.
            fsync: Force data and renames to stable storage. Turning this off
                   keeps writes atomic for readers but not durable across
                   power loss.
        """
        self._mapper = mapper or PathMapper()
        self._fsync = fsync

    @property
    def fsync(self) -> bool:
        return self._fsync

    def write_atomic(self, path: str, data: bytes) -> None:
        """
        Replace the content of ``path`` with ``data``.

        Args:
            path: Target file path.
            data: Full new content.

        Raises:
            StorageIOError: If any filesystem step fails. The target is left
                            as it was.
        """
        directory = os.path.dirname(path)
        temp_path = os.path.join(directory, self._mapper.temp_name(os.path.basename(path)))

        try:
            with open(temp_path, "xb") as f:
                f.write(data)
                if self._fsync:
                    self._sync_file(f)
            os.replace(temp_path, path)
        except OSError as e:
            self._discard(temp_path)
            raise StorageIOError(f"Failed to write {path}: {e}", path) from e

        if self._fsync:
            self._sync_directory(directory)

    def read(self, path: str) -> bytes:
        """
        Read the full content of a file.

        Raises:
            NotFoundError: If the file does not exist.
            StorageIOError: If the file cannot be read.
        """
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise NotFoundError(path) from e
        except OSError as e:
            raise StorageIOError(f"Failed to read {path}: {e}", path) from e

    def delete(self, path: str) -> None:
        """
        Remove a file.

        Raises:
            NotFoundError: If the file does not exist.
            StorageIOError: If the file cannot be removed.
        """
        try:
            os.remove(path)
        except FileNotFoundError as e:
            raise NotFoundError(path) from e
        except OSError as e:
            raise StorageIOError(f"Failed to delete {path}: {e}", path) from e

        if self._fsync:
            self._sync_directory(os.path.dirname(path))

    def exists(self, path: str) -> bool:
        return os.path.isfile(path)

    def purge_temp_files(self, directory: str, older_than: float = 0.0) -> int:
        """
        Remove temporary files orphaned by interrupted writes.

        Args:
            directory: Directory to clean.
            older_than: Only remove temp files whose modification time is at
                        least this many seconds in the past. 0 removes all of
                        them; use a positive value when other threads may be
                        writing.

        Returns:
            Number of files removed.

        Raises:
            NotFoundError: If the directory does not exist.
            StorageIOError: If the directory cannot be scanned or a file
                            cannot be removed.
        """
        cutoff = time.time() - older_than
        removed = 0

        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if not self._mapper.is_temp_name(entry.name):
                        continue
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    try:
                        if older_than > 0 and entry.stat(follow_symlinks=False).st_mtime > cutoff:
                            continue
                        os.remove(entry.path)
                    except FileNotFoundError:
                        # Renamed or removed by someone else meanwhile
                        continue
                    logger.warning(f"Removed orphaned temp file {entry.path}")
                    removed += 1
        except FileNotFoundError as e:
            raise NotFoundError(directory) from e
        except OSError as e:
            raise StorageIOError(f"Failed to purge {directory}: {e}", directory) from e

        return removed

    def _sync_file(self, f: BinaryIO) -> None:
        """Flush buffered bytes and force the temp file's data to disk."""
        f.flush()
        # fdatasync where the platform has it, plain fsync elsewhere
        _sync_data = getattr(os, "fdatasync", os.fsync)
        _sync_data(f.fileno())

    def _sync_directory(self, directory: str) -> None:
        """Make a rename or unlink in ``directory`` durable."""
        if os.name == "nt":
            # Directories cannot be opened for fsync on Windows
            return
        try:
            fd = os.open(directory, os.O_RDONLY)
        except OSError as e:
            raise StorageIOError(f"Failed to sync {directory}: {e}", directory) from e
        try:
            os.fsync(fd)
        except OSError as e:
            raise StorageIOError(f"Failed to sync {directory}: {e}", directory) from e
        finally:
            os.close(fd)

    def _discard(self, temp_path: str) -> None:
        try:
            os.remove(temp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temp file {temp_path}: {e}")
