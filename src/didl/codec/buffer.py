"""Byte-level writing and reading utilities.

This module provides the growable output buffer used while encoding and the
read-only cursor used while decoding. Multi-byte fixed-width values are
little-endian.
"""

from __future__ import annotations

import struct

from ..exceptions import ValueDecodeError
from . import leb128


class ByteWriter:
    """Appends values to a growing byte buffer.

    Example:
        >>> writer = ByteWriter()
        >>> writer.write_leb128(300)
        >>> writer.write_bool(True)
        >>> writer.to_bytes().hex()
        'ac0201'
    """

    def __init__(self) -> None:
        """Initialize an empty writer."""
        self._buffer = bytearray()

    def write_byte(self, value: int) -> None:
        self._buffer.append(value)

    def write_bool(self, value: bool) -> None:
        """Write a boolean as a single 0/1 byte."""
        self._buffer.append(1 if value else 0)

    def write_bytes(self, data: bytes) -> None:
        self._buffer.extend(data)

    def write_leb128(self, value: int) -> None:
        """Write an unsigned LEB128 integer.

        Raises:
            ValueError: If value is negative
        """
        self._buffer.extend(leb128.encode_unsigned(value))

    def write_sleb128(self, value: int) -> None:
        """Write a signed LEB128 integer."""
        self._buffer.extend(leb128.encode_signed(value))

    def write_uint(self, value: int, num_bytes: int) -> None:
        """Write an unsigned integer using exactly ``num_bytes`` little-endian bytes.

        Raises:
            OverflowError: If value doesn't fit in num_bytes
        """
        self._buffer.extend(value.to_bytes(num_bytes, "little", signed=False))

    def write_int(self, value: int, num_bytes: int) -> None:
        """Write a two's complement integer using exactly ``num_bytes`` bytes.

        Raises:
            OverflowError: If value doesn't fit in num_bytes
        """
        self._buffer.extend(value.to_bytes(num_bytes, "little", signed=True))

    def write_float(self, value: float, num_bytes: int) -> None:
        """Write an IEEE-754 float of 4 or 8 bytes."""
        self._buffer.extend(struct.pack("<f" if num_bytes == 4 else "<d", value))

    def write_text(self, value: str) -> None:
        """Write a length-prefixed UTF-8 string."""
        data = value.encode("utf-8")
        self.write_leb128(len(data))
        self._buffer.extend(data)

    def __len__(self) -> int:
        return len(self._buffer)

    def to_bytes(self) -> bytes:
        """Return the bytes written so far."""
        return bytes(self._buffer)


class ByteReader:
    """Reads values from an immutable byte buffer with an internal cursor.

    The reader never mutates or retains more than a view of the caller's
    buffer. Every read failure raises ValueDecodeError carrying the offset
    where it happened.

    Example:
        >>> reader = ByteReader(bytes.fromhex('ac0201'))
        >>> reader.read_leb128()
        300
        >>> reader.read_bool()
        True
    """

    def __init__(self, data: bytes | bytearray | memoryview, *, max_leb128_bytes: int = 10) -> None:
        """Initialize a reader over ``data``.

        Args:
            data: Buffer to read from
            max_leb128_bytes: Width bound for lengths, counts and indices
        """
        view = memoryview(data)
        self._view = view if view.format == "B" else view.cast("B")
        self._position = 0
        self._max_leb128_bytes = max_leb128_bytes

    @property
    def position(self) -> int:
        """Current read offset in bytes."""
        return self._position

    def remaining(self) -> int:
        """Return the number of unread bytes."""
        return len(self._view) - self._position

    def is_empty(self) -> bool:
        return self._position >= len(self._view)

    def read_byte(self) -> int:
        """Read a single unsigned byte.

        Raises:
            ValueDecodeError: If no more bytes are available
        """
        if self._position >= len(self._view):
            raise ValueDecodeError("attempted to read past end of buffer", kind="eof", offset=self._position)
        value = self._view[self._position]
        self._position += 1
        return value

    def read_bytes(self, num_bytes: int) -> bytes:
        """Read exactly ``num_bytes`` bytes.

        Raises:
            ValueDecodeError: If not enough bytes are available
        """
        if num_bytes > self.remaining():
            raise ValueDecodeError(
                f"not enough bytes: need {num_bytes}, have {self.remaining()}",
                kind="eof",
                offset=self._position,
            )
        data = bytes(self._view[self._position : self._position + num_bytes])
        self._position += num_bytes
        return data

    def read_bool(self) -> bool:
        """Read a 0/1 byte as a boolean.

        Raises:
            ValueDecodeError: If the byte is neither 0 nor 1
        """
        offset = self._position
        value = self.read_byte()
        if value > 1:
            raise ValueDecodeError(f"invalid boolean byte {value:#04x}", kind="bool", offset=offset)
        return value == 1

    def read_leb128(self, *, bounded: bool = True) -> int:
        """Read an unsigned LEB128 integer.

        Args:
            bounded: Apply the configured width bound (lengths, indices). Value
                types such as ``nat`` read unbounded.
        """
        value, consumed = leb128.decode_unsigned(
            self._view, self._position, max_bytes=self._max_leb128_bytes if bounded else None
        )
        self._position += consumed
        return value

    def read_sleb128(self, *, bounded: bool = True) -> int:
        """Read a signed LEB128 integer."""
        value, consumed = leb128.decode_signed(
            self._view, self._position, max_bytes=self._max_leb128_bytes if bounded else None
        )
        self._position += consumed
        return value

    def read_uint(self, num_bytes: int) -> int:
        return int.from_bytes(self.read_bytes(num_bytes), "little", signed=False)

    def read_int(self, num_bytes: int) -> int:
        return int.from_bytes(self.read_bytes(num_bytes), "little", signed=True)

    def read_float(self, num_bytes: int) -> float:
        (value,) = struct.unpack("<f" if num_bytes == 4 else "<d", self.read_bytes(num_bytes))
        return float(value)

    def read_length(self) -> int:
        """Read a LEB128 length and check it against the remaining input.

        Raises:
            ValueDecodeError: If the length overruns the buffer
        """
        offset = self._position
        length = self.read_leb128()
        if length > self.remaining():
            raise ValueDecodeError(
                f"length {length} exceeds remaining {self.remaining()} bytes",
                kind="length",
                offset=offset,
            )
        return length

    def read_text(self) -> str:
        """Read a length-prefixed UTF-8 string.

        Raises:
            ValueDecodeError: If the bytes are not valid UTF-8
        """
        offset = self._position
        data = self.read_bytes(self.read_length())
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValueDecodeError(f"invalid UTF-8 encoding: {e}", kind="utf8", offset=offset) from e
