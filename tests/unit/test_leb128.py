"""Unit tests for LEB128 varints and the byte buffers."""

from __future__ import annotations

import pytest

from didl.codec import leb128
from didl.codec.buffer import ByteReader, ByteWriter
from didl.exceptions import MalformedVarint, ValueDecodeError


class TestUnsigned:
    """Test ULEB128 encoding."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, "00"),
            (1, "01"),
            (127, "7f"),
            (128, "8001"),
            (300, "ac02"),
            (624485, "e58e26"),
            ((1 << 64) - 1, "ffffffffffffffffff01"),
        ],
    )
    def test_known_encodings(self, value: int, expected: str) -> None:
        assert leb128.encode_unsigned(value).hex() == expected
        assert leb128.decode_unsigned(bytes.fromhex(expected)) == (value, len(expected) // 2)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError):
            leb128.encode_unsigned(-1)

    def test_decode_at_offset(self) -> None:
        assert leb128.decode_unsigned(bytes.fromhex("ffac02ff"), 1) == (300, 2)

    def test_truncated(self) -> None:
        with pytest.raises(MalformedVarint) as exc_info:
            leb128.decode_unsigned(bytes.fromhex("8080"))
        assert exc_info.value.kind == "varint"
        assert exc_info.value.offset == 2

    def test_max_bytes(self) -> None:
        data = bytes.fromhex("80808001")
        assert leb128.decode_unsigned(data, max_bytes=4) == (1 << 21, 4)
        with pytest.raises(MalformedVarint):
            leb128.decode_unsigned(data, max_bytes=3)

    def test_unbounded_large_value(self) -> None:
        value = 1 << 200
        assert leb128.decode_unsigned(leb128.encode_unsigned(value)) == (value, 29)


class TestSigned:
    """Test SLEB128 encoding."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, "00"),
            (1, "01"),
            (-1, "7f"),
            (63, "3f"),
            (64, "c000"),
            (-64, "40"),
            (-65, "bf7f"),
            (-123456, "c0bb78"),
        ],
    )
    def test_known_encodings(self, value: int, expected: str) -> None:
        assert leb128.encode_signed(value).hex() == expected
        assert leb128.decode_signed(bytes.fromhex(expected)) == (value, len(expected) // 2)

    def test_opcodes_are_single_bytes(self) -> None:
        assert leb128.encode_signed(-3) == b"\x7d"
        assert leb128.encode_signed(-23) == b"\x69"

    def test_truncated(self) -> None:
        with pytest.raises(MalformedVarint):
            leb128.decode_signed(b"\xc0")


class TestByteWriter:
    """Test ByteWriter."""

    def test_fixed_width_little_endian(self) -> None:
        writer = ByteWriter()
        writer.write_uint(0x0102, 2)
        writer.write_int(-2, 2)
        writer.write_float(1.5, 8)
        assert writer.to_bytes().hex() == "0201feff000000000000f83f"
        assert len(writer) == 12

    def test_text(self) -> None:
        writer = ByteWriter()
        writer.write_text("hé")
        assert writer.to_bytes() == b"\x03h\xc3\xa9"


class TestByteReader:
    """Test ByteReader."""

    def test_reads_advance_position(self) -> None:
        reader = ByteReader(bytes.fromhex("01ac020268690a"))
        assert reader.read_bool() is True
        assert reader.read_leb128() == 300
        assert reader.read_text() == "hi"
        assert reader.position == 6
        assert reader.remaining() == 1
        assert reader.read_byte() == 10
        assert reader.is_empty()

    def test_read_past_end(self) -> None:
        reader = ByteReader(b"\x01")
        with pytest.raises(ValueDecodeError) as exc_info:
            reader.read_bytes(2)
        assert exc_info.value.kind == "eof"
        assert exc_info.value.offset == 0

    def test_invalid_bool(self) -> None:
        with pytest.raises(ValueDecodeError) as exc_info:
            ByteReader(b"\x02").read_bool()
        assert exc_info.value.kind == "bool"

    def test_length_overrun(self) -> None:
        with pytest.raises(ValueDecodeError) as exc_info:
            ByteReader(b"\x05ab").read_text()
        assert exc_info.value.kind == "length"

    def test_invalid_utf8(self) -> None:
        with pytest.raises(ValueDecodeError) as exc_info:
            ByteReader(b"\x01\xff").read_text()
        assert exc_info.value.kind == "utf8"

    def test_bounded_leb128(self) -> None:
        data = b"\x80" * 3 + b"\x01"
        with pytest.raises(MalformedVarint):
            ByteReader(data, max_leb128_bytes=3).read_leb128()
        assert ByteReader(data, max_leb128_bytes=3).read_leb128(bounded=False) == 1 << 21
