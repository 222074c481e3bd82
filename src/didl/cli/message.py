"""Message inspection CLI command."""

from __future__ import annotations

from ..codec.buffer import ByteReader
from ..codec.config import DEFAULT_CONFIG
from ..codec.decoder import decode
from ..codec.table import MAGIC, parse_table
from ..exceptions import UnsupportedVersion


def inspect_message(data: bytes) -> list[str]:
    """Describe a message: its type table, argument types and values.

    Values are decoded against the sender's own argument types.

    Raises:
        DecodeError: If the message is malformed
    """
    reader = ByteReader(data, max_leb128_bytes=DEFAULT_CONFIG.max_leb128_bytes)
    if reader.remaining() < len(MAGIC) or reader.read_bytes(len(MAGIC)) != MAGIC:
        raise UnsupportedVersion(f"message does not start with {MAGIC!r}")
    wire = parse_table(reader, DEFAULT_CONFIG)

    lines = [f"{len(data)} bytes, {len(wire.entries)} table entries, {len(wire.arg_types)} arguments"]
    for index, t in enumerate(wire.types):
        lines.append(f"  type {index}: {t.inner.name}")
    values = decode(wire.arg_types, data)
    for index, (t, value) in enumerate(zip(wire.arg_types, values)):
        lines.append(f"  arg {index}: {t.name} = {value!r}")
    return lines
