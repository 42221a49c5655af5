"""
Record - Dataclass base implementing the Serializable protocol.
"""

import dataclasses
import types
import typing
from typing import Any, TypeVar

from fsdb.interfaces.serializable import Serializable
from fsdb.models.exceptions import DecodeError, EncodeError

R = TypeVar("R", bound="Record")


class Record(Serializable):
    """
    Base class for dataclasses stored in a bucket.

    Subclasses are ordinary ``@dataclass`` types. Constructor fields are
    encoded one by one. On decode each field is rebuilt from its annotation:
    Record types (also inside list, dict, tuple and optional annotations) come
    back as instances, and builtin annotations such as ``int`` or ``str`` must
    match the stored type, so a mismatch is a DecodeError.

    Example:
        @dataclass
        class Thing(Record):
            n: int
    """

    def to_fields(self) -> dict[str, Any]:
        if not dataclasses.is_dataclass(self):
            raise EncodeError(f"{type(self).__name__} is not a dataclass")
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self) if f.init}

    @classmethod
    def from_fields(cls: type[R], fields: dict[str, Any]) -> R:
        if not isinstance(fields, dict):
            raise DecodeError(
                f"Expected a field map for {cls.__name__}, got {type(fields).__name__}"
            )
        if not dataclasses.is_dataclass(cls):
            raise DecodeError(f"{cls.__name__} is not a dataclass")

        known = {f.name for f in dataclasses.fields(cls) if f.init}
        unknown = set(fields) - known
        if unknown:
            raise DecodeError(
                f"Unknown fields for {cls.__name__}: {sorted(map(str, unknown))}"
            )

        hints = typing.get_type_hints(cls)
        kwargs = {}
        for name, value in fields.items():
            try:
                kwargs[name] = _rebuild(hints.get(name), value)
            except DecodeError as e:
                raise DecodeError(f"Field {name!r} of {cls.__name__}: {e}") from e

        try:
            return cls(**kwargs)
        except TypeError as e:
            raise DecodeError(f"Cannot build {cls.__name__}: {e}") from e


# Annotations checked by exact type; anything else passes through as decoded
_PLAIN_TYPES = (str, int, float, bool, bytes, dict, list, tuple, type(None))


def _record_type(hint: Any) -> type["Record"] | None:
    if isinstance(hint, type) and issubclass(hint, Record):
        return hint
    return None


def _rebuild(hint: Any, value: Any) -> Any:
    """
    Rebuild decoded plain data according to a field annotation.

    Records are rebuilt from their field maps, containers are rebuilt item by
    item, and plain builtin annotations must match the decoded type exactly.

    Raises:
        DecodeError: If the value does not fit the annotation.
    """
    record_type = _record_type(hint)
    if record_type is not None:
        return record_type.from_fields(value)

    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if origin in (typing.Union, types.UnionType):
        return _rebuild_union(args, value)

    if origin is list:
        _expect(list, value)
        if not args:
            return value
        return [_rebuild(args[0], item) for item in value]

    if origin is dict:
        _expect(dict, value)
        if len(args) != 2:
            return value
        return {_rebuild(args[0], k): _rebuild(args[1], v) for k, v in value.items()}

    if origin is tuple:
        _expect(tuple, value)
        if args == ((),):
            args = ()
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_rebuild(args[0], item) for item in value)
        if len(args) != len(value):
            raise DecodeError(f"Expected a tuple of {len(args)} items, got {len(value)}")
        return tuple(_rebuild(arg, item) for arg, item in zip(args, value))

    if hint in _PLAIN_TYPES:
        # int is acceptable where float is annotated, bool is not
        if hint is float and type(value) is int:
            return value
        _expect(hint, value)

    return value


def _rebuild_union(args: tuple, value: Any) -> Any:
    if value is None and type(None) in args:
        return None

    candidates = [arg for arg in args if arg is not type(None)]
    if len(candidates) == 1:
        return _rebuild(candidates[0], value)

    for candidate in candidates:
        try:
            return _rebuild(candidate, value)
        except DecodeError:
            continue
    raise DecodeError(f"Value of type {type(value).__name__} matches no member of the union")


def _expect(expected: type, value: Any) -> None:
    if type(value) is not expected:
        raise DecodeError(f"Expected {expected.__name__}, got {type(value).__name__}")
