"""Exception hierarchy for didl.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from DidlError for easy catching of any didl-specific error.
"""

from __future__ import annotations


class DidlError(Exception):
    """Base exception for all didl errors."""

    pass


class ConstructionError(DidlError):
    """Raised when a type descriptor is ill-formed.

    Examples:
        - Two record fields (or variant tags) hash to the same id
        - A recursive type expands into itself by value
        - A Rec placeholder is filled twice or never filled
        - A oneway function declares return types
    """

    pass


class EncodeError(DidlError):
    """Raised when encoding a message fails.

    Examples:
        - Value nesting exceeds the interpreter recursion limit
    """

    pass


class DecodeError(DidlError):
    """Raised when decoding binary data fails.

    Examples:
        - Truncated data (insufficient bytes)
        - Corrupted type table
        - Wire type incompatible with the expected type
    """

    pass


class TypeMismatch(EncodeError, DecodeError):
    """Raised when a value or a wire type disagrees with a declared descriptor.

    On encode this means the application value has the wrong shape (a str
    where a vec is declared, a missing record field, a wrong argument count).
    On decode it means the sender's type is not a subtype of the expected one.
    """

    pass


class ArityMismatch(DecodeError):
    """Raised when the sender provides fewer arguments than expected and the
    missing trailing ones are not optional."""

    pass


class UnsupportedVersion(DecodeError):
    """Raised when a message does not start with the expected magic prefix."""

    pass


class MalformedTable(DecodeError):
    """Raised when the type table embedded in a message is invalid.

    Examples:
        - Table or argument list truncated
        - Reference to a table index that does not exist
        - Record/variant ids not strictly ascending
        - Unknown type opcode
    """

    pass


class ValueDecodeError(DecodeError):
    """Raised on byte-level corruption while parsing values.

    Attributes:
        kind: Short classifier (``eof``, ``varint``, ``utf8``, ``tag``, ...)
        offset: Byte offset in the message where the fault was detected
    """

    def __init__(self, message: str, *, kind: str, offset: int) -> None:
        super().__init__(f"{message} (kind={kind}, offset={offset})")
        self.kind = kind
        self.offset = offset


class MalformedVarint(ValueDecodeError):
    """Raised when a LEB128 sequence is truncated or longer than allowed."""

    def __init__(self, message: str, *, offset: int) -> None:
        super().__init__(message, kind="varint", offset=offset)


class MethodNotFound(DidlError, KeyError):
    """Raised when an actor interface has no method with the requested name.

    The method name is the first argument, as for KeyError.
    """

    def __str__(self) -> str:
        return f"no method {self.args[0]!r} in actor interface" if self.args else "method not found"
