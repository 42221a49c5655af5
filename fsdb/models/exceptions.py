"""
Custom exceptions for the filesystem database.
"""


class FsdbError(Exception):
    """Base class for every error raised by the store."""


class InvalidKeyError(FsdbError, ValueError):
    """
    Raised when a key or bucket name fails path-safety validation.

    Nothing is read or written for a rejected name.
    """

    def __init__(self, key: object, reason: str):
        """
        Initialize invalid key error.

        Args:
            key: The rejected key or bucket name.
            reason: Human readable explanation of the rejection.
        """
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid key {key!r}: {reason}")


class NotFoundError(FsdbError, LookupError):
    """Raised when an entry or bucket does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No such entry: {path}")


class EncodeError(FsdbError, ValueError):
    """Raised when a value cannot be represented in the storage format."""


class DecodeError(FsdbError, ValueError):
    """
    Raised when stored bytes are malformed, truncated, or incompatible
    with the type requested by the caller.
    """


class StorageIOError(FsdbError, OSError):
    """
    Raised when an underlying filesystem operation fails.

    Permission problems, a full disk, or a path of the wrong kind all end up
    here. The original ``OSError`` is available as ``__cause__``.
    """

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)
