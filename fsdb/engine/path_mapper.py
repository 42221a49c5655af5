"""
PathMapper - Map keys and bucket names to confined filesystem paths.
"""

import os
import re
import uuid

from fsdb.models.exceptions import InvalidKeyError


class PathMapper:
    """
    Maps logical names to file names inside a directory.

    The mapping is the identity for every accepted name, so it is trivially
    deterministic, injective and reversible. Names that are unsafe for the
    host filesystem are rejected rather than escaped.

    Names starting with ``.`` are reserved: temporary files written by the
    atomic writer use that prefix, so they can never be mistaken for entries.

    Case sensitivity follows the underlying filesystem. On a case-insensitive
    filesystem ``"Key"`` and ``"key"`` address the same entry.
    """

    # Leaves room for the temp file decoration within the usual 255 byte limit
    MAX_NAME_BYTES = 200

    TEMP_PREFIX = "."
    TEMP_SUFFIX = ".tmp"

    _RESERVED_DEVICE_NAMES = frozenset(
        ["CON", "PRN", "AUX", "NUL"]
        + [f"COM{i}" for i in range(1, 10)]
        + [f"LPT{i}" for i in range(1, 10)]
    )
    _CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
    _WINDOWS_FORBIDDEN = re.compile(r'[<>:"|?*]')

    def __init__(self, windows: bool | None = None) -> None:
        """
        Initialize the mapper.

        Args:
            windows: Apply the extra Windows file name rules. Defaults to
                     whether the host is Windows.
        """
        self._windows = os.name == "nt" if windows is None else windows

    def validate(self, name: str) -> str:
        """
        Check that a name is safe to use as a single path component.

        Args:
            name: The key or bucket name.

        Returns:
            The name, unchanged.

        Raises:
            InvalidKeyError: If the name is rejected.
        """
        if not isinstance(name, str):
            raise InvalidKeyError(name, "must be a string")
        if not name:
            raise InvalidKeyError(name, "must not be empty")
        if name in (".", ".."):
            raise InvalidKeyError(name, "path traversal segment")
        if os.sep in name or "/" in name or (os.altsep and os.altsep in name):
            raise InvalidKeyError(name, "contains a path separator")
        if self._CONTROL_CHARS.search(name):
            raise InvalidKeyError(name, "contains a NUL or control character")
        if name.startswith(self.TEMP_PREFIX):
            raise InvalidKeyError(name, f"names starting with {self.TEMP_PREFIX!r} are reserved")
        try:
            encoded = name.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidKeyError(name, "not encodable as UTF-8") from e
        if len(encoded) > self.MAX_NAME_BYTES:
            raise InvalidKeyError(name, f"longer than {self.MAX_NAME_BYTES} bytes")
        if name.split(".", 1)[0].upper() in self._RESERVED_DEVICE_NAMES:
            raise InvalidKeyError(name, "reserved device name")

        if self._windows:
            if "\\" in name:
                raise InvalidKeyError(name, "contains a path separator")
            if self._WINDOWS_FORBIDDEN.search(name):
                raise InvalidKeyError(name, "contains a character Windows forbids")
            if name[-1] in ". ":
                raise InvalidKeyError(name, "ends with a dot or space")

        return name

    def resolve(self, directory: str, key: str) -> str:
        """
        Resolve the file path for a key inside a directory.

        Args:
            directory: The bucket (or database root) directory.
            key: The logical key.

        Returns:
            Path of the file holding the key's value.

        Raises:
            InvalidKeyError: If the key is unsafe or would escape the directory.
        """
        self.validate(key)
        path = os.path.join(directory, key)

        if os.path.dirname(os.path.normpath(path)) != os.path.normpath(directory):
            raise InvalidKeyError(key, "escapes its directory")

        return path

    def key_for(self, filename: str) -> str | None:
        """
        Reverse a file name into its key.

        Args:
            filename: A name found by listing a directory.

        Returns:
            The key, or None if the mapper never produces this name.
        """
        if self.is_temp_name(filename):
            return None
        try:
            return self.validate(filename)
        except InvalidKeyError:
            return None

    def is_temp_name(self, filename: str) -> bool:
        return filename.startswith(self.TEMP_PREFIX) and filename.endswith(self.TEMP_SUFFIX)

    def temp_name(self, filename: str) -> str:
        """Return a unique temporary file name for writing ``filename``."""
        return f"{self.TEMP_PREFIX}{filename}.{uuid.uuid4().hex}{self.TEMP_SUFFIX}"
