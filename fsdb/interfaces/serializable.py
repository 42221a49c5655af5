"""
Serializable protocol for values that know how to break themselves into fields.
"""

from abc import ABC, abstractmethod
from typing import Any, TypeVar

S = TypeVar("S", bound="Serializable")


class Serializable(ABC):
    """
    Protocol for typed values stored in a bucket.

    Implementations must support:
    - Breaking the value into a mapping of field name to plain data
    - Rebuilding an instance from such a mapping

    Field values may be anything the codec can encode, including other
    Serializable instances.
    """

    @abstractmethod
    def to_fields(self) -> dict[str, Any]:
        """Return the value as a mapping of field name to field value."""
        pass

    @classmethod
    @abstractmethod
    def from_fields(cls: type[S], fields: dict[str, Any]) -> S:
        """
        Build an instance from a mapping produced by ``to_fields``.

        Args:
            fields: Field mapping as decoded from storage.

        Returns:
            A new instance.

        Raises:
            DecodeError: If the mapping does not describe a valid instance.
        """
        pass
