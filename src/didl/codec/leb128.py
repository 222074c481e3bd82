"""LEB128 variable-length integers.

LEB128 (Little Endian Base 128) stores an integer in 7-bit groups, lowest group
first, with the high bit of every byte except the last set as a continuation
flag. The signed flavour uses two's complement and stops as soon as the remaining
bits are pure sign extension of bit 6 of the last group.

Lengths, counts, variant indices and type-table references all use this
encoding, as do the unbounded ``nat`` and ``int`` value types.

>>> encode_unsigned(624485).hex()
'e58e26'
>>> encode_signed(-123456).hex()
'c0bb78'
>>> decode_unsigned(bytes.fromhex('e58e26ff'))
(624485, 3)
>>> decode_signed(bytes.fromhex('00c0bb78'), 1)
(-123456, 3)
"""

from __future__ import annotations

from ..exceptions import MalformedVarint

DEFAULT_MAX_BYTES = 10


def encode_unsigned(value: int) -> bytes:
    """Encode a non-negative integer as ULEB128.

    Raises:
        ValueError: If value is negative
    """
    if value < 0:
        raise ValueError(f"cannot encode negative value {value} as unsigned LEB128")
    result = bytearray()
    while True:
        byte = value & 0b0111_1111
        value >>= 7
        if value == 0:
            result.append(byte)
            return bytes(result)
        result.append(byte | 0b1000_0000)


def encode_signed(value: int) -> bytes:
    """Encode an integer as SLEB128."""
    result = bytearray()
    while True:
        byte = value & 0b0111_1111
        value >>= 7
        done = (value == 0 and not byte & 0b0100_0000) or (value == -1 and byte & 0b0100_0000)
        if done:
            result.append(byte)
            return bytes(result)
        result.append(byte | 0b1000_0000)


def decode_unsigned(
    data: bytes | bytearray | memoryview, offset: int = 0, *, max_bytes: int | None = None
) -> tuple[int, int]:
    """Decode a ULEB128 integer starting at ``offset``.

    Args:
        data: Buffer to read from
        offset: Position of the first byte
        max_bytes: Maximum encoded width, or None for unbounded

    Returns:
        Tuple of (value, number of bytes consumed)

    Raises:
        MalformedVarint: If the input ends mid-sequence or exceeds max_bytes
    """
    value, consumed, _ = _decode(data, offset, max_bytes)
    return value, consumed


def decode_signed(
    data: bytes | bytearray | memoryview, offset: int = 0, *, max_bytes: int | None = None
) -> tuple[int, int]:
    """Decode a SLEB128 integer starting at ``offset``.

    Same contract as :func:`decode_unsigned`.
    """
    value, consumed, last = _decode(data, offset, max_bytes)
    if last & 0b0100_0000:
        value |= -(1 << (7 * consumed))
    return value, consumed


def _decode(
    data: bytes | bytearray | memoryview, offset: int, max_bytes: int | None
) -> tuple[int, int, int]:
    result = 0
    shift = 0
    position = offset
    while True:
        if max_bytes is not None and position - offset >= max_bytes:
            raise MalformedVarint(f"LEB128 value longer than {max_bytes} bytes", offset=offset)
        if position >= len(data):
            raise MalformedVarint("input exhausted inside LEB128 value", offset=position)
        byte = data[position]
        position += 1
        result |= (byte & 0b0111_1111) << shift
        shift += 7
        if not byte & 0b1000_0000:
            return result, position - offset, byte
