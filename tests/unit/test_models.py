"""Unit tests for Pydantic model integration."""

from __future__ import annotations

import enum
from typing import Annotated, Optional

import pytest
from pydantic import Field, ValidationError

from didl import (
    Bool,
    ConstructionError,
    FixedFloat,
    FixedInt,
    Float32,
    IDLModel,
    Int,
    Int16,
    Nat,
    Nat8,
    Natural,
    Null,
    Opt,
    Rec,
    Record,
    Text,
    Tuple,
    Variant,
    Vec,
    decode,
    encode,
)
from didl.codec.schema import ModelSchema, type_for_annotation


class Color(enum.Enum):
    """Test enum."""

    RED = 1
    GREEN = 2


class Reading(IDLModel):
    """Model covering most annotation kinds."""

    sensor: Annotated[int, FixedInt(bits=8)]
    temperature: Annotated[int, FixedInt(bits=16, signed=True)]
    voltage: Annotated[float, FixedFloat(bits=32)]
    label: str
    color: Color
    samples: list[int]
    raw: bytes
    note: Optional[str] = None


class ReadingSummary(IDLModel):
    """Older view of Reading."""

    sensor: Annotated[int, FixedInt(bits=8)]
    label: str


class Counter(IDLModel):
    count: int = Natural()
    pair: tuple[int, str] = (0, "")


class LinkedNode(IDLModel):
    value: int
    next: Optional[LinkedNode] = None


class Wrapper(IDLModel):
    reading: Reading
    history: list[ReadingSummary] = []


@pytest.fixture
def reading() -> Reading:
    return Reading(
        sensor=7,
        temperature=-40,
        voltage=0.5,
        label="probe",
        color=Color.GREEN,
        samples=[1, -2, 3],
        raw=b"\x00\x01",
    )


class TestTypeForAnnotation:
    """Test annotation mapping."""

    @pytest.mark.parametrize(
        "annotation,expected",
        [
            (None, Null),
            (bool, Bool),
            (int, Int),
            (str, Text),
            (bytes, Vec(Nat8)),
            (list[str], Vec(Text)),
            (tuple[int, str], Tuple(Int, Text)),
            (tuple[str, ...], Vec(Text)),
            (Optional[int], Opt(Int)),
            (int | None, Opt(Int)),
            (Color, Variant({"RED": Null, "GREEN": Null})),
        ],
    )
    def test_mapping(self, annotation, expected) -> None:
        assert type_for_annotation(annotation) == expected

    def test_fixed_width(self) -> None:
        assert type_for_annotation(int, bits=8) == Nat8
        assert type_for_annotation(int, bits=16, signed=True) == Int16
        assert type_for_annotation(float, bits=32) == Float32
        assert type_for_annotation(int, non_negative=True) == Nat

    def test_annotated_inside_containers(self) -> None:
        assert type_for_annotation(Optional[Annotated[int, FixedInt(bits=8)]]) == Opt(Nat8)
        assert type_for_annotation(list[Annotated[int, Natural()]]) == Vec(Nat)
        assert type_for_annotation(Annotated[float, FixedFloat(bits=32)]) == Float32

    @pytest.mark.parametrize("annotation", [dict[str, int], set, Optional[int] | str, complex])
    def test_unsupported(self, annotation) -> None:
        with pytest.raises(ConstructionError):
            type_for_annotation(annotation)


class TestIDLModel:
    """Test IDLModel behavior."""

    def test_idl_type(self) -> None:
        t = Reading.idl_type()
        assert t == Record(
            {
                "sensor": Nat8,
                "temperature": Int16,
                "voltage": Float32,
                "label": Text,
                "color": Variant({"RED": Null, "GREEN": Null}),
                "samples": Vec(Int),
                "raw": Vec(Nat8),
                "note": Opt(Text),
            }
        )

    def test_constraints_map_to_nat(self) -> None:
        assert Counter.idl_type() == Record({"count": Nat, "pair": Tuple(Int, Text)})

    def test_round_trip(self, reading: Reading) -> None:
        assert Reading.decode(reading.encode()) == reading

    def test_optional_present(self, reading: Reading) -> None:
        reading.note = "checked"
        assert Reading.decode(reading.encode()).note == "checked"

    def test_to_idl_shape(self, reading: Reading) -> None:
        value = reading.to_idl()
        assert value["note"] == []
        assert value["color"] == {"GREEN": None}
        assert value["raw"] == b"\x00\x01"

    def test_from_idl(self) -> None:
        counter = Counter.from_idl({"count": 3, "pair": (1, "x")})
        assert counter == Counter(count=3, pair=(1, "x"))

    def test_model_instances_accepted_by_encode(self, reading: Reading) -> None:
        data = encode([Reading.idl_type()], [reading])
        assert data == reading.encode()

    def test_older_reader(self, reading: Reading) -> None:
        summary = ReadingSummary.decode(reading.encode())
        assert summary == ReadingSummary(sensor=7, label="probe")

    def test_newer_reader_defaults_optional(self) -> None:
        data = encode([Record({"value": Int})], [{"value": 1}])
        assert LinkedNode.decode(data) == LinkedNode(value=1)

    def test_recursive_model(self) -> None:
        t = LinkedNode.idl_type()
        assert isinstance(t, Rec)
        node = LinkedNode(value=1, next=LinkedNode(value=2, next=LinkedNode(value=3)))
        assert LinkedNode.decode(node.encode()) == node

    def test_nested_models(self, reading: Reading) -> None:
        wrapper = Wrapper(reading=reading, history=[ReadingSummary(sensor=1, label="a")])
        assert Wrapper.decode(wrapper.encode()) == wrapper

    def test_schema_fields(self) -> None:
        schema = ModelSchema.from_model(Reading)
        fields = {f.name: f for f in schema.fields}
        assert fields["sensor"].idl_type == Nat8
        assert fields["sensor"].required
        assert not fields["note"].required

    def test_pydantic_validation_still_applies(self) -> None:
        with pytest.raises(ValidationError):
            Reading(
                sensor=300,
                temperature=0,
                voltage=0.0,
                label="x",
                color=Color.RED,
                samples=[],
                raw=b"",
            )

    def test_unsupported_field(self) -> None:
        class Bad(IDLModel):
            mapping: dict[str, int]

        with pytest.raises(ConstructionError, match="mapping"):
            Bad.idl_type()

    def test_decode_plain_record_value(self) -> None:
        data = Counter(count=5).encode()
        assert decode([Counter.idl_type()], data) == [{"count": 5, "pair": (0, "")}]


class TestFieldHelpers:
    """Test field helper validation."""

    def test_fixed_int_bad_width(self) -> None:
        with pytest.raises(ValueError):
            FixedInt(bits=12)

    def test_fixed_float_bad_width(self) -> None:
        with pytest.raises(ValueError):
            FixedFloat(bits=16)

    def test_fixed_int_range(self) -> None:
        class Small(IDLModel):
            value: Annotated[int, FixedInt(bits=8, signed=True)] = Field(default=0)

        Small(value=-128)
        with pytest.raises(ValidationError):
            Small(value=128)
