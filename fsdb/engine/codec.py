"""
Codec - MessagePack serialization of stored values.
"""

import math
from typing import Any

import msgpack

from fsdb.interfaces.serializable import Serializable
from fsdb.models.exceptions import DecodeError, EncodeError


class Codec:
    """
    Serializes values to bytes and back using MessagePack.

    Encodable values:
    - None, bool, int (64-bit range), finite float, str, bytes
    - list, tuple and dict of encodable values (tuples nest at most
      MAX_TUPLE_DEPTH levels deep)
    - Serializable instances, stored as the map of their fields

    No type tag is written. The caller names the type to decode into, and
    a stored value of a different shape is a DecodeError.
    """

    # MessagePack extension code used for tuples
    TUPLE_EXT = 1

    # Deeper tuple nesting is refused on both encode and decode
    MAX_TUPLE_DEPTH = 64

    MIN_INT = -(2**63)
    MAX_INT = 2**64 - 1

    PLAIN_TYPES = (dict, list, tuple, str, int, float, bool, bytes, type(None))

    def encode(self, value: Any) -> bytes:
        """
        Serialize a value to bytes.

        Args:
            value: The value to serialize.

        Returns:
            The MessagePack encoding of the value.

        Raises:
            EncodeError: If the value holds something the format cannot represent.
        """
        try:
            return msgpack.packb(self._to_wire(value), use_bin_type=True)
        except EncodeError:
            raise
        except RecursionError as e:
            raise EncodeError("Value is nested too deeply or contains a cycle") from e
        except (TypeError, ValueError, OverflowError) as e:
            raise EncodeError(f"Cannot encode value: {e}") from e

    def decode(self, data: bytes, into: type | None = None) -> Any:
        """
        Deserialize bytes produced by ``encode``.

        Args:
            data: The stored bytes.
            into: Type to decode into. None returns the plain decoded value.

        Returns:
            The decoded value.

        Raises:
            DecodeError: If the bytes are malformed or do not match ``into``.
            TypeError: If ``into`` is not a supported target type.
        """
        if into is not None and not self._is_target(into):
            raise TypeError(f"Cannot decode into {into!r}")

        value = self._unpack(data)

        if into is None:
            return value

        if issubclass(into, Serializable):
            if not isinstance(value, dict):
                raise DecodeError(
                    f"Expected a field map for {into.__name__}, got {type(value).__name__}"
                )
            return into.from_fields(value)

        if type(value) is not into:
            raise DecodeError(
                f"Expected {into.__name__}, stored value is {type(value).__name__}"
            )
        return value

    def _is_target(self, into: Any) -> bool:
        return isinstance(into, type) and (
            issubclass(into, Serializable) or into in self.PLAIN_TYPES
        )

    def _unpack(self, data: bytes, tuple_depth: int = 0) -> Any:
        def ext_hook(code: int, payload: bytes) -> Any:
            return self._ext_hook(code, payload, tuple_depth + 1)

        try:
            return msgpack.unpackb(
                data, raw=False, strict_map_key=False, ext_hook=ext_hook
            )
        except DecodeError:
            raise
        except (ValueError, TypeError, msgpack.exceptions.UnpackException) as e:
            raise DecodeError(f"Malformed value: {e}") from e

    def _ext_hook(self, code: int, payload: bytes, tuple_depth: int) -> Any:
        if code != self.TUPLE_EXT:
            raise DecodeError(f"Unknown extension type {code}")
        # Each level re-enters msgpack from its own callback
        if tuple_depth > self.MAX_TUPLE_DEPTH:
            raise DecodeError(f"Tuples nested deeper than {self.MAX_TUPLE_DEPTH} levels")

        items = self._unpack(payload, tuple_depth)
        if not isinstance(items, list):
            raise DecodeError("Malformed tuple payload")
        return tuple(items)

    def _to_wire(self, value: Any, tuple_depth: int = 0) -> Any:
        """Convert a value into data msgpack encodes without loss."""
        if value is None or isinstance(value, (bool, str, bytes)):
            return value

        if isinstance(value, int):
            if not self.MIN_INT <= value <= self.MAX_INT:
                raise EncodeError(f"Integer {value} is outside the 64-bit range")
            return value

        if isinstance(value, float):
            if not math.isfinite(value):
                raise EncodeError(f"Non-finite float {value!r} is not storable")
            return value

        if isinstance(value, list):
            return [self._to_wire(item, tuple_depth) for item in value]

        if isinstance(value, tuple):
            tuple_depth += 1
            if tuple_depth > self.MAX_TUPLE_DEPTH:
                raise EncodeError(f"Tuples nested deeper than {self.MAX_TUPLE_DEPTH} levels")
            items = [self._to_wire(item, tuple_depth) for item in value]
            return msgpack.ExtType(self.TUPLE_EXT, msgpack.packb(items, use_bin_type=True))

        if isinstance(value, dict):
            return {
                self._key_to_wire(k, tuple_depth): self._to_wire(v, tuple_depth)
                for k, v in value.items()
            }

        if isinstance(value, Serializable):
            fields = value.to_fields()
            if not isinstance(fields, dict) or not all(isinstance(k, str) for k in fields):
                raise EncodeError(
                    f"{type(value).__name__}.to_fields() must return a dict keyed by str"
                )
            return {k: self._to_wire(v, tuple_depth) for k, v in fields.items()}

        raise EncodeError(f"Cannot encode value of type {type(value).__name__}")

    def _key_to_wire(self, key: Any, tuple_depth: int) -> Any:
        if key is None or isinstance(key, (bool, int, float, str, bytes, tuple)):
            return self._to_wire(key, tuple_depth)
        raise EncodeError(f"Cannot use {type(key).__name__} as a map key")
