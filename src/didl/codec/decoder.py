"""Message decoder.

This module provides the decode() function that converts a self-describing
message back into values shaped by the caller's expected types.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from structlog import get_logger

from ..exceptions import ArityMismatch, ConstructionError, UnsupportedVersion, ValueDecodeError
from .buffer import ByteReader
from .config import DEFAULT_CONFIG, DecoderConfig
from .table import MAGIC, WireTable, parse_table
from .types import Type, absent_value, is_optional_like

logger = get_logger()


class Decoder:
    """Decodes messages under a fixed configuration.

    Example:
        >>> Decoder().decode([Nat, Text], bytes.fromhex('4449444c00027d712a026869'))
        [42, 'hi']
    """

    def __init__(self, config: DecoderConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG

    def decode(self, expected_types: Sequence[Type], data: bytes) -> list[Any]:
        """Decode ``data`` against ``expected_types``.

        See :func:`decode` for the full contract.
        """
        expected = list(expected_types)
        for t in expected:
            if not isinstance(t, Type):
                raise ConstructionError(f"expected a type descriptor, got {t!r}")

        reader = ByteReader(data, max_leb128_bytes=self.config.max_leb128_bytes)
        self._read_magic(reader)
        wire = parse_table(reader, self.config)

        try:
            values = self._decode_values(reader, wire, expected)
        except RecursionError as e:
            raise ValueDecodeError("value nesting too deep to decode", kind="depth", offset=reader.position) from e

        if not reader.is_empty():
            raise ValueDecodeError(
                f"{reader.remaining()} trailing bytes after last value",
                kind="trailing",
                offset=reader.position,
            )
        return values

    @staticmethod
    def _read_magic(reader: ByteReader) -> None:
        if reader.remaining() < len(MAGIC) or reader.read_bytes(len(MAGIC)) != MAGIC:
            raise UnsupportedVersion(f"message does not start with {MAGIC!r}")

    def _decode_values(self, reader: ByteReader, wire: WireTable, expected: list[Type]) -> list[Any]:
        values: list[Any] = []
        for i, wire_type in enumerate(wire.arg_types):
            if i < len(expected):
                values.append(expected[i].decode_value(reader, wire_type, self.config))
            else:
                wire_type.skip_value(reader, self.config)

        if len(wire.arg_types) > len(expected):
            logger.debug(
                "skipped extra arguments",
                received=len(wire.arg_types),
                expected=len(expected),
            )

        for t in expected[len(wire.arg_types) :]:
            if not is_optional_like(t):
                raise ArityMismatch(
                    f"message has {len(wire.arg_types)} arguments, expected {len(expected)}; "
                    f"missing argument of type {t.name} is not optional"
                )
            values.append(absent_value(t))
        return values


def decode(
    expected_types: Sequence[Type], data: bytes, *, config: DecoderConfig | None = None
) -> list[Any]:
    """Decode a message against the caller's expected argument types.

    The type table is parsed and validated completely before any value byte
    is interpreted. Each value is then read with the sender's type and coerced
    into the expected one under the subtyping rules: extra record fields and
    extra trailing arguments are skipped, missing optional record fields and
    missing optional trailing arguments come back absent.

    Args:
        expected_types: Type the caller expects for each argument
        data: Encoded message
        config: Decoding limits; defaults to DecoderConfig()

    Returns:
        One value per expected type

    Raises:
        UnsupportedVersion: If the magic prefix is missing
        MalformedTable: If the type table is truncated or invalid
        TypeMismatch: If a sender type is not a subtype of the expected type
        ArityMismatch: If a missing trailing argument is not optional
        ValueDecodeError: On byte-level corruption (with kind and offset)

    Examples:
        ```python
        from didl import Nat, Opt, Text, decode, encode

        data = encode([Nat, Text], [42, "hi"])

        decode([Nat, Text], data)             # [42, 'hi']
        decode([Nat], data)                   # [42]
        decode([Nat, Text, Opt(Nat)], data)   # [42, 'hi', []]
        ```
    """
    values = Decoder(config).decode(expected_types, data)
    logger.debug("message decoded", args=len(values), size=len(data))
    return values
