"""Property-based tests using hypothesis."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from didl import (
    DecodeError,
    Int,
    Int32,
    MalformedTable,
    Nat,
    Nat16,
    Opt,
    Record,
    Text,
    ValueDecodeError,
    Variant,
    Vec,
    decode,
    encode,
)
from didl.codec import leb128

Message = Record(
    {
        "id": Nat,
        "delta": Int,
        "port": Nat16,
        "offset": Int32,
        "label": Text,
        "tags": Vec(Text),
        "parent": Opt(Nat),
        "state": Variant({"idle": Nat, "busy": Text}),
    }
)

messages = st.fixed_dictionaries(
    {
        "id": st.integers(min_value=0),
        "delta": st.integers(),
        "port": st.integers(min_value=0, max_value=2**16 - 1),
        "offset": st.integers(min_value=-(2**31), max_value=2**31 - 1),
        "label": st.text(),
        "tags": st.lists(st.text(max_size=8), max_size=5),
        "parent": st.one_of(st.just([]), st.integers(min_value=0).map(lambda n: [n])),
        "state": st.one_of(
            st.integers(min_value=0).map(lambda n: {"idle": n}),
            st.text().map(lambda s: {"busy": s}),
        ),
    }
)


class TestLeb128Properties:
    """Property-based tests for varints."""

    @given(value=st.integers(min_value=0))
    def test_unsigned_roundtrip(self, value: int) -> None:
        data = leb128.encode_unsigned(value)
        assert leb128.decode_unsigned(data) == (value, len(data))

    @given(value=st.integers())
    def test_signed_roundtrip(self, value: int) -> None:
        data = leb128.encode_signed(value)
        assert leb128.decode_signed(data) == (value, len(data))


class TestCodecProperties:
    """Property-based tests for codec."""

    @given(value=messages)
    def test_encode_decode_roundtrip(self, value: dict) -> None:
        """Test encode/decode is invertible."""
        assert decode([Message], encode([Message], [value])) == [value]

    @given(value=messages)
    def test_encode_deterministic(self, value: dict) -> None:
        """Test encoding is deterministic and independent of key order."""
        reordered = dict(reversed(list(value.items())))
        assert encode([Message], [value]) == encode([Message], [reordered])

    @given(value=messages, names=st.permutations(list(Message.fields)))
    def test_field_declaration_order_irrelevant(self, value: dict, names: list[str]) -> None:
        permuted = Record({name: Message.fields[name] for name in names})
        assert encode([permuted], [value]) == encode([Message], [value])

    @given(value=messages)
    def test_truncation_always_detected(self, value: dict) -> None:
        data = encode([Message], [value])
        with pytest.raises((ValueDecodeError, MalformedTable)):
            decode([Message], data[:-1])

    @given(value=messages)
    def test_projection_to_supertype(self, value: dict) -> None:
        narrow = Record({"id": Nat, "label": Text, "extra": Opt(Text)})
        decoded = decode([narrow], encode([Message], [value]))
        assert decoded == [{"id": value["id"], "label": value["label"], "extra": []}]

    @settings(deadline=None)
    @given(data=st.binary(max_size=64))
    def test_garbage_never_crashes(self, data: bytes) -> None:
        """Arbitrary input either decodes or raises a DecodeError."""
        try:
            decode([Message], b"DIDL" + data)
        except DecodeError:
            pass
