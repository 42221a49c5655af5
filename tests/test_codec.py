"""
Tests for the MessagePack Codec, Serializable and Record.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import msgpack
import pytest

from fsdb.engine.codec import Codec
from fsdb.interfaces.serializable import Serializable
from fsdb.models.exceptions import DecodeError, EncodeError
from fsdb.models.record import Record


@dataclass
class Thing(Record):
    n: int


@dataclass
class Owner(Record):
    name: str
    pet: Thing
    others: list[Thing] = field(default_factory=list)
    backup: Thing | None = None


@dataclass
class Kennel(Record):
    pets: list[Thing] | None = None
    by_name: dict[str, Thing] = field(default_factory=dict)
    pair: tuple[Thing, Thing] | None = None
    row: tuple[Thing, ...] = ()


@dataclass
class Measured(Record):
    x: float
    label: str = ""


class Point(Serializable):
    """Hand-written Serializable without dataclasses."""

    def __init__(self, x: int, y: int) -> None:
        self.x = x
        self.y = y

    def to_fields(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> "Point":
        try:
            return cls(fields["x"], fields["y"])
        except KeyError as e:
            raise DecodeError(f"missing field {e}") from e

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Point) and (self.x, self.y) == (other.x, other.y)


class Color(IntEnum):
    RED = 1


def nested_tuple(depth: int) -> tuple:
    value: tuple = ()
    for _ in range(depth - 1):
        value = (value,)
    return value


def nested_tuple_bytes(depth: int) -> bytes:
    """Hand-build the encoding of nested_tuple(depth) without going through Codec."""
    ext = msgpack.ExtType(Codec.TUPLE_EXT, msgpack.packb([]))
    for _ in range(depth - 1):
        ext = msgpack.ExtType(Codec.TUPLE_EXT, msgpack.packb([ext]))
    return msgpack.packb(ext)


class TestRoundTrip:
    """Tests that decode(encode(v)) == v."""

    def test_plain_values(self, codec, sample_values):
        """Test round trip for every kind of plain value."""
        for value in sample_values:
            decoded = codec.decode(codec.encode(value))
            assert decoded == value
            assert type(decoded) is type(value)

    def test_tuple_stays_tuple(self, codec):
        """Test that tuples do not come back as lists."""
        assert codec.decode(codec.encode((1, 2))) == (1, 2)
        assert codec.decode(codec.encode([(1, 2)])) == [(1, 2)]

    def test_record(self, codec):
        """Test round trip of a simple Record."""
        thing = Thing(n=1)
        assert codec.decode(codec.encode(thing), Thing) == thing

    def test_nested_records(self, codec):
        """Test that nested, listed and optional Record fields are rebuilt."""
        owner = Owner(name="a", pet=Thing(1), others=[Thing(2), Thing(3)], backup=Thing(4))
        decoded = codec.decode(codec.encode(owner), Owner)
        assert decoded == owner
        assert isinstance(decoded.pet, Thing)
        assert all(isinstance(t, Thing) for t in decoded.others)
        assert isinstance(decoded.backup, Thing)

    def test_optional_record_none(self, codec):
        """Test an optional Record field left empty."""
        owner = Owner(name="a", pet=Thing(1))
        assert codec.decode(codec.encode(owner), Owner) == owner

    def test_custom_serializable(self, codec):
        """Test a hand-written Serializable implementation."""
        point = Point(3, 4)
        assert codec.decode(codec.encode(point), Point) == point

    def test_record_is_stored_as_field_map(self, codec):
        """Test that no type tag is written: a Record reads back as a dict."""
        assert codec.decode(codec.encode(Thing(n=1))) == {"n": 1}

    def test_int_enum_compares_equal(self, codec):
        """Test that int subclasses are stored as their integer value."""
        assert codec.decode(codec.encode(Color.RED)) == Color.RED


class TestEncodeErrors:
    """Tests for values the format cannot represent."""

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), -float("inf")])
    def test_non_finite_floats(self, codec, value):
        """Test that non-finite floats are refused."""
        with pytest.raises(EncodeError):
            codec.encode(value)

    @pytest.mark.parametrize("value", [2**64, -(2**63) - 1])
    def test_out_of_range_ints(self, codec, value):
        """Test that integers outside 64 bits are refused."""
        with pytest.raises(EncodeError):
            codec.encode(value)

    @pytest.mark.parametrize("value", [{1, 2}, object(), 1 + 2j, bytearray(b"x")])
    def test_unsupported_types(self, codec, value):
        """Test that unknown types fail with EncodeError, not TypeError."""
        with pytest.raises(EncodeError):
            codec.encode(value)

    def test_nested_unsupported_value(self, codec):
        """Test that bad content is found deep inside a structure."""
        with pytest.raises(EncodeError):
            codec.encode({"a": [1, {"b": float("nan")}]})

    def test_cycle(self, codec):
        """Test that self-referencing structures fail cleanly."""
        loop: list = []
        loop.append(loop)
        with pytest.raises(EncodeError):
            codec.encode(loop)

    def test_record_without_dataclass(self, codec):
        """Test that a Record subclass must be a dataclass."""

        class NotADataclass(Record):
            pass

        with pytest.raises(EncodeError):
            codec.encode(NotADataclass())


class TestDecodeErrors:
    """Tests that malformed or mismatched bytes raise DecodeError."""

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"\xc1",
            b"\x92\x01",
            b"\xa5ab",
            b"\xa2\xff\xfe",
        ],
    )
    def test_malformed_bytes(self, codec, data):
        """Test truncated and invalid input."""
        with pytest.raises(DecodeError):
            codec.decode(data)

    def test_trailing_garbage(self, codec):
        """Test that extra bytes after a value are rejected."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode(1) + b"\x01")

    def test_unknown_extension(self, codec):
        """Test that foreign extension types are rejected."""
        data = msgpack.packb(msgpack.ExtType(42, b"x"))
        with pytest.raises(DecodeError):
            codec.decode(data)

    def test_type_mismatch(self, codec):
        """Test that the requested type must match the stored shape."""
        data = codec.encode({"n": 1})
        with pytest.raises(DecodeError):
            codec.decode(data, list)
        with pytest.raises(DecodeError):
            codec.decode(codec.encode([1]), Thing)

    def test_bool_is_not_int(self, codec):
        """Test that a stored bool does not satisfy a request for int."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode(True), int)

    def test_plain_type_match(self, codec):
        """Test decoding into matching builtin types."""
        assert codec.decode(codec.encode("s"), str) == "s"
        assert codec.decode(codec.encode(None), type(None)) is None
        assert codec.decode(codec.encode((1,)), tuple) == (1,)

    def test_record_unknown_field(self, codec):
        """Test that extra fields are not silently dropped."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode({"n": 1, "extra": 2}), Thing)

    def test_record_missing_field(self, codec):
        """Test that required fields must be present."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode({}), Thing)

    def test_nested_record_mismatch(self, codec):
        """Test that a nested Record field must be a map."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode({"name": "a", "pet": 5}), Owner)

    def test_unsupported_target(self, codec):
        """Test that asking for an unsupported type is a programming error."""
        with pytest.raises(TypeError):
            codec.decode(codec.encode(1), set)


class TestTupleNesting:
    """Tests for the tuple nesting limit on both sides of the codec."""

    def test_nesting_at_limit_round_trips(self, codec):
        """Test that tuples nested up to the limit still round trip."""
        value = nested_tuple(Codec.MAX_TUPLE_DEPTH)
        assert codec.decode(codec.encode(value)) == value

    def test_tuples_inside_lists_count(self, codec):
        """Test that lists between tuples do not reset the depth."""
        value: object = ()
        for _ in range(Codec.MAX_TUPLE_DEPTH):
            value = [(value,)]
        with pytest.raises(EncodeError):
            codec.encode(value)

    @pytest.mark.parametrize("depth", [Codec.MAX_TUPLE_DEPTH + 1, 200, 400])
    def test_encode_refuses_deep_nesting(self, codec, depth):
        """Test that too deeply nested tuples are refused before writing."""
        with pytest.raises(EncodeError):
            codec.encode(nested_tuple(depth))

    def test_hand_built_bytes_at_limit(self, codec):
        """Test that the hand-built encoding matches what the codec accepts."""
        depth = Codec.MAX_TUPLE_DEPTH
        assert codec.decode(nested_tuple_bytes(depth)) == nested_tuple(depth)

    @pytest.mark.parametrize("depth", [Codec.MAX_TUPLE_DEPTH + 1, 200, 1000])
    def test_decode_refuses_deep_nesting(self, codec, depth):
        """Test that crafted deeply nested bytes fail with DecodeError."""
        with pytest.raises(DecodeError):
            codec.decode(nested_tuple_bytes(depth))


class TestRecordContainers:
    """Tests that Records inside container annotations come back as Records."""

    def test_optional_list_of_records(self, codec):
        """Test list[Thing] | None with a list."""
        kennel = Kennel(pets=[Thing(1), Thing(2)])
        decoded = codec.decode(codec.encode(kennel), Kennel)
        assert decoded == kennel
        assert all(isinstance(t, Thing) for t in decoded.pets)

    def test_optional_list_left_empty(self, codec):
        """Test list[Thing] | None with None."""
        assert codec.decode(codec.encode(Kennel()), Kennel) == Kennel()

    def test_dict_of_records(self, codec):
        """Test dict[str, Thing]."""
        kennel = Kennel(by_name={"a": Thing(1), "b": Thing(2)})
        decoded = codec.decode(codec.encode(kennel), Kennel)
        assert decoded == kennel
        assert isinstance(decoded.by_name["a"], Thing)

    def test_fixed_and_variadic_tuples_of_records(self, codec):
        """Test tuple[Thing, Thing] and tuple[Thing, ...]."""
        kennel = Kennel(pair=(Thing(1), Thing(2)), row=(Thing(3), Thing(4), Thing(5)))
        decoded = codec.decode(codec.encode(kennel), Kennel)
        assert decoded == kennel
        assert isinstance(decoded.pair[1], Thing)
        assert isinstance(decoded.row[2], Thing)

    def test_fixed_tuple_length_mismatch(self, codec):
        """Test that a fixed-size tuple must have the annotated length."""
        data = codec.encode({"pair": ({"n": 1}, {"n": 2}, {"n": 3})})
        with pytest.raises(DecodeError):
            codec.decode(data, Kennel)

    def test_container_shape_mismatch(self, codec):
        """Test that a list annotation refuses a stored map."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode({"pets": {"n": 1}}), Kennel)


class TestRecordFieldTypes:
    """Tests that builtin field annotations are enforced on decode."""

    def test_wrong_scalar_type(self, codec):
        """Test that a str stored where int is annotated is rejected."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode({"n": "not an int"}), Thing)

    def test_bool_is_not_int_field(self, codec):
        """Test that a stored bool does not fill an int field."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode({"n": True}), Thing)

    def test_int_fills_float_field(self, codec):
        """Test that an int stored in a float field round trips."""
        measured = Measured(x=1)
        assert codec.decode(codec.encode(measured), Measured) == measured

    def test_wrong_type_in_float_field(self, codec):
        """Test that a float field refuses a str."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode({"x": "1.5"}), Measured)

    def test_wrong_item_type_in_dict_of_records(self, codec):
        """Test that dict keys are checked against their annotation."""
        with pytest.raises(DecodeError):
            codec.decode(codec.encode({"by_name": {1: {"n": 1}}}), Kennel)

    def test_error_names_the_field(self, codec):
        """Test that the error message points at the offending field."""
        with pytest.raises(DecodeError, match="'n'"):
            codec.decode(codec.encode({"n": "x"}), Thing)
