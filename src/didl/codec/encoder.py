"""Message encoder.

This module provides the encode() function that serializes a list of values
against their declared types into a self-describing message.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from structlog import get_logger

from ..exceptions import EncodeError, TypeMismatch
from .buffer import ByteWriter
from .table import MAGIC, TypeTable
from .types import Type

logger = get_logger()


class Encoder:
    """Encodes argument values for a prebuilt type table.

    The table can be built once per function signature and reused; it is
    never modified by encoding.

    Example:
        >>> encoder = Encoder(TypeTable.build([Nat, Text]))
        >>> encoder.encode([42, "hi"]).hex()
        '4449444c00027d712a026869'
    """

    def __init__(self, table: TypeTable) -> None:
        self.table = table
        self._header = MAGIC + table.to_bytes()

    def encode(self, values: Sequence[Any]) -> bytes:
        """Encode one value per argument type of the table.

        Every value is validated before any byte is written.

        Raises:
            TypeMismatch: If the number of values differs from the number of
                argument types, or a value doesn't match its type
            EncodeError: If values are nested too deeply to walk
        """
        arg_types = self.table.arg_types
        values = list(values)
        if len(values) != len(arg_types):
            raise TypeMismatch(f"expected {len(arg_types)} values, got {len(values)}")

        try:
            for i, (t, value) in enumerate(zip(arg_types, values)):
                t.check_value(value, f"arg{i}")

            writer = ByteWriter()
            writer.write_bytes(self._header)
            for t, value in zip(arg_types, values):
                t.encode_value(writer, value)
        except RecursionError as e:
            raise EncodeError("value nesting too deep to encode") from e

        return writer.to_bytes()


def encode(arg_types: Sequence[Type], values: Sequence[Any]) -> bytes:
    """Encode values against their types into a self-describing message.

    The message consists of the magic prefix ``DIDL``, the type table, one
    type reference per argument, and the values in argument order.

    Args:
        arg_types: Declared type of each argument
        values: One value per argument

    Returns:
        Encoded message

    Raises:
        ConstructionError: If a type is ill-formed (e.g. an unfilled Rec)
        TypeMismatch: If a value doesn't match its declared type
        EncodeError: If values are nested too deeply to walk

    Examples:
        ```python
        from didl import Nat, Opt, Record, Text, encode

        Person = Record({"name": Text, "age": Opt(Nat)})

        data = encode([Person, Nat], [{"name": "ada", "age": [36]}, 7])
        ```
    """
    encoder = Encoder(TypeTable.build(arg_types))
    data = encoder.encode(values)
    logger.debug("message encoded", args=len(arg_types), size=len(data))
    return data
