"""Type descriptors.

This module defines the closed set of descriptors that describe the shape of a
value: primitive scalars, text, vectors, options, records, tuples, variants,
function and service references, and ``Rec`` placeholders used to tie
recursive knots.

Every descriptor knows how to:

- validate an application value (``check_value``),
- register itself and its children in a type table (``build_type_table``),
- write a reference to itself inside a table entry (``encode_type``),
- write a value (``encode_value``),
- read a value that was written with a (possibly different) wire type and
  coerce it into its own shape (``decode_value``), or skip it (``skip_value``).

Descriptors are immutable once constructed; a ``Rec`` is immutable once filled.

Example:
    >>> Node = Rec()
    >>> Node.fill(Record({"value": Nat, "next": Opt(Node)}))
    >>> data = Node.encode({"value": 1, "next": [{"value": 2, "next": []}]})
    >>> Node.decode(data)
    {'value': 1, 'next': [{'value': 2, 'next': []}]}
"""

from __future__ import annotations

import enum
import itertools
import math
import struct
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Hashable, Iterable

from pydantic import BaseModel

from ..exceptions import ConstructionError, TypeMismatch, ValueDecodeError
from ..utils.hashing import idl_hash
from .buffer import ByteReader, ByteWriter

if TYPE_CHECKING:
    from .config import DecoderConfig
    from .table import TypeTable


class Opcode(enum.IntEnum):
    """Wire opcodes of the type constructors."""

    NULL = -1
    BOOL = -2
    NAT = -3
    INT = -4
    NAT8 = -5
    NAT16 = -6
    NAT32 = -7
    NAT64 = -8
    INT8 = -9
    INT16 = -10
    INT32 = -11
    INT64 = -12
    FLOAT32 = -13
    FLOAT64 = -14
    TEXT = -15
    RESERVED = -16
    EMPTY = -17
    OPT = -18
    VEC = -19
    RECORD = -20
    VARIANT = -21
    FUNC = -22
    SERVICE = -23


class Type(ABC):
    """Base class of all type descriptors."""

    opcode: int

    @property
    @abstractmethod
    def name(self) -> str:
        """Canonical display name."""

    @property
    def key(self) -> Hashable:
        """Structural identity; descriptors with equal keys share a type table entry."""
        return self.opcode

    @abstractmethod
    def check_value(self, value: Any, path: str = "value") -> None:
        """Validate that ``value`` inhabits this type.

        Raises:
            TypeMismatch: If the value has the wrong shape
        """

    @abstractmethod
    def build_type_table(self, table: TypeTable) -> None:
        """Register this type and everything it references in ``table``."""

    @abstractmethod
    def encode_type(self, table: TypeTable) -> int:
        """Return the signed reference written wherever this type is used."""

    @abstractmethod
    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        """Write a value previously accepted by :meth:`check_value`."""

    @abstractmethod
    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> Any:
        """Read a value written with type ``wire`` and return it shaped as this type.

        Raises:
            TypeMismatch: If ``wire`` is not compatible with this type
            ValueDecodeError: If the bytes are corrupt
        """

    @abstractmethod
    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        """Consume one value of this (wire) type without building it."""

    def covariant(self, value: Any) -> bool:
        """Return True if ``value`` inhabits this type."""
        try:
            self.check_value(value)
        except TypeMismatch:
            return False
        return True

    def encode(self, value: Any) -> bytes:
        """Encode a single value as a complete message."""
        from .encoder import encode

        return encode([self], [value])

    def decode(self, data: bytes, *, config: DecoderConfig | None = None) -> Any:
        """Decode a complete single-value message against this type."""
        from .decoder import decode

        return decode([self], data, config=config)[0]

    def is_subtype_of(self, other: Type) -> bool:
        """Return True if values of this type can be decoded as ``other``."""
        from .subtype import is_subtype

        return is_subtype(self, other)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Type):
            return NotImplemented
        from .subtype import equal

        return equal(self, other)

    def __hash__(self) -> int:
        return hash(_kind(self))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def unwrap(t: Type) -> Type:
    """Follow ``Rec`` placeholders to the descriptor they stand for."""
    while isinstance(t, Rec):
        t = t.inner
    return t


def _kind(t: Type) -> int | str:
    if isinstance(t, Rec):
        return _kind(t.inner) if t.is_filled else "rec"
    return t.opcode


def is_optional_like(t: Type) -> bool:
    """Return True if a missing value of this type can be defaulted."""
    return unwrap(t).opcode in (Opcode.OPT, Opcode.NULL, Opcode.RESERVED)


def absent_value(t: Type) -> Any:
    """Return the value used when an optional-like field or argument is missing."""
    return [] if unwrap(t).opcode == Opcode.OPT else None


def _mismatch(expected: Type, wire: Type) -> TypeMismatch:
    return TypeMismatch(f"type mismatch: expected {expected.name}, got {wire.name}")


def _value_error(path: str, expected: str, value: Any) -> TypeMismatch:
    return TypeMismatch(f"{path}: expected {expected}, got {type(value).__name__} {value!r:.60}")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# Primitive types


class PrimitiveType(Type):
    """A scalar type written inline by its negative opcode."""

    _display: str

    @property
    def name(self) -> str:
        return self._display

    def build_type_table(self, table: TypeTable) -> None:
        return None

    def encode_type(self, table: TypeTable) -> int:
        return self.opcode

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> Any:
        wire = unwrap(wire)
        if wire.opcode != self.opcode:
            raise _mismatch(self, wire)
        return self._read(reader)

    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        self._read(reader)

    @abstractmethod
    def _read(self, reader: ByteReader) -> Any:
        """Read one value of exactly this type."""


class NullClass(PrimitiveType):
    opcode = Opcode.NULL
    _display = "null"

    def check_value(self, value: Any, path: str = "value") -> None:
        if value is not None:
            raise _value_error(path, "None", value)

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        return None

    def _read(self, reader: ByteReader) -> None:
        return None


class BoolClass(PrimitiveType):
    opcode = Opcode.BOOL
    _display = "bool"

    def check_value(self, value: Any, path: str = "value") -> None:
        if not isinstance(value, bool):
            raise _value_error(path, "bool", value)

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        writer.write_bool(value)

    def _read(self, reader: ByteReader) -> bool:
        return reader.read_bool()


class NatClass(PrimitiveType):
    """Unbounded natural number, ULEB128 on the wire."""

    opcode = Opcode.NAT
    _display = "nat"

    def check_value(self, value: Any, path: str = "value") -> None:
        if not _is_int(value) or value < 0:
            raise _value_error(path, "non-negative int", value)

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        writer.write_leb128(value)

    def _read(self, reader: ByteReader) -> int:
        return reader.read_leb128(bounded=False)


class IntClass(PrimitiveType):
    """Unbounded signed integer, SLEB128 on the wire."""

    opcode = Opcode.INT
    _display = "int"

    def check_value(self, value: Any, path: str = "value") -> None:
        if not _is_int(value):
            raise _value_error(path, "int", value)

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        writer.write_sleb128(value)

    def _read(self, reader: ByteReader) -> int:
        return reader.read_sleb128(bounded=False)


class FixedNatClass(PrimitiveType):
    """Natural number of 8, 16, 32 or 64 bits, little-endian."""

    _opcodes = {8: Opcode.NAT8, 16: Opcode.NAT16, 32: Opcode.NAT32, 64: Opcode.NAT64}

    def __init__(self, bits: int) -> None:
        if bits not in self._opcodes:
            raise ConstructionError(f"unsupported nat width {bits}")
        self.bits = bits
        self.opcode = self._opcodes[bits]
        self._display = f"nat{bits}"

    def check_value(self, value: Any, path: str = "value") -> None:
        if not _is_int(value) or not 0 <= value < (1 << self.bits):
            raise _value_error(path, f"int in [0, 2**{self.bits})", value)

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        writer.write_uint(value, self.bits // 8)

    def _read(self, reader: ByteReader) -> int:
        return reader.read_uint(self.bits // 8)


class FixedIntClass(PrimitiveType):
    """Signed integer of 8, 16, 32 or 64 bits, little-endian two's complement."""

    _opcodes = {8: Opcode.INT8, 16: Opcode.INT16, 32: Opcode.INT32, 64: Opcode.INT64}

    def __init__(self, bits: int) -> None:
        if bits not in self._opcodes:
            raise ConstructionError(f"unsupported int width {bits}")
        self.bits = bits
        self.opcode = self._opcodes[bits]
        self._display = f"int{bits}"

    def check_value(self, value: Any, path: str = "value") -> None:
        bound = 1 << (self.bits - 1)
        if not _is_int(value) or not -bound <= value < bound:
            raise _value_error(path, f"int in [-2**{self.bits - 1}, 2**{self.bits - 1})", value)

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        writer.write_int(value, self.bits // 8)

    def _read(self, reader: ByteReader) -> int:
        return reader.read_int(self.bits // 8)


class FloatClass(PrimitiveType):
    """IEEE-754 binary32 or binary64."""

    _opcodes = {32: Opcode.FLOAT32, 64: Opcode.FLOAT64}

    def __init__(self, bits: int) -> None:
        if bits not in self._opcodes:
            raise ConstructionError(f"unsupported float width {bits}")
        self.bits = bits
        self.opcode = self._opcodes[bits]
        self._display = f"float{bits}"

    def check_value(self, value: Any, path: str = "value") -> None:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise _value_error(path, "float", value)
        try:
            converted = float(value)
            if self.bits == 32 and math.isfinite(converted):
                struct.pack("<f", converted)
        except OverflowError as e:
            raise TypeMismatch(f"{path}: {type(value).__name__} out of float{self.bits} range") from e

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        writer.write_float(float(value), self.bits // 8)

    def _read(self, reader: ByteReader) -> float:
        return reader.read_float(self.bits // 8)


class TextClass(PrimitiveType):
    opcode = Opcode.TEXT
    _display = "text"

    def check_value(self, value: Any, path: str = "value") -> None:
        if not isinstance(value, str):
            raise _value_error(path, "str", value)
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise TypeMismatch(f"{path}: string is not encodable as UTF-8: {e}") from e

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        writer.write_text(value)

    def _read(self, reader: ByteReader) -> str:
        return reader.read_text()


class ReservedClass(PrimitiveType):
    """Supertype of every type; values are discarded."""

    opcode = Opcode.RESERVED
    _display = "reserved"

    def check_value(self, value: Any, path: str = "value") -> None:
        return None

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        return None

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> None:
        wire.skip_value(reader, config)
        return None

    def _read(self, reader: ByteReader) -> None:
        return None


class EmptyClass(PrimitiveType):
    """Uninhabited type."""

    opcode = Opcode.EMPTY
    _display = "empty"

    def check_value(self, value: Any, path: str = "value") -> None:
        raise TypeMismatch(f"{path}: type empty has no values")

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        raise TypeMismatch("type empty has no values")

    def _read(self, reader: ByteReader) -> Any:
        raise TypeMismatch("type empty has no values")


Null = NullClass()
Bool = BoolClass()
Nat = NatClass()
Int = IntClass()
Nat8 = FixedNatClass(8)
Nat16 = FixedNatClass(16)
Nat32 = FixedNatClass(32)
Nat64 = FixedNatClass(64)
Int8 = FixedIntClass(8)
Int16 = FixedIntClass(16)
Int32 = FixedIntClass(32)
Int64 = FixedIntClass(64)
Float32 = FloatClass(32)
Float64 = FloatClass(64)
Text = TextClass()
Reserved = ReservedClass()
Empty = EmptyClass()

PRIMITIVES: dict[int, PrimitiveType] = {
    t.opcode: t
    for t in (
        Null, Bool, Nat, Int, Nat8, Nat16, Nat32, Nat64,
        Int8, Int16, Int32, Int64, Float32, Float64, Text, Reserved, Empty,
    )
}


# Constructed types


def _require_type(t: Any, where: str) -> Type:
    if not isinstance(t, Type):
        raise ConstructionError(f"{where}: expected a type descriptor, got {t!r}")
    return t


class ConstructType(Type):
    """A type that occupies an entry of the type table."""

    _key: Hashable

    @property
    def key(self) -> Hashable:
        return self._key

    def build_type_table(self, table: TypeTable) -> None:
        if table.has(self):
            return
        index = table.reserve(self)
        self._build_children(table)
        table.fill(index, self._type_entry(table))

    def encode_type(self, table: TypeTable) -> int:
        return table.index_of(self)

    @abstractmethod
    def _build_children(self, table: TypeTable) -> None:
        """Register the types this entry refers to."""

    @abstractmethod
    def _type_entry(self, table: TypeTable) -> bytes:
        """Serialize this type's table entry."""


class Vec(ConstructType):
    """Homogeneous sequence. ``Vec(Nat8)`` accepts and produces ``bytes``."""

    opcode = Opcode.VEC

    def __init__(self, element: Type) -> None:
        self._type = _require_type(element, "vec")
        self._name = f"vec {element.name}"
        self._key = (self.opcode, element.key)

    @property
    def name(self) -> str:
        return self._name

    @property
    def element(self) -> Type:
        return self._type

    def _is_blob(self) -> bool:
        return unwrap(self._type).opcode == Opcode.NAT8

    def check_value(self, value: Any, path: str = "value") -> None:
        if isinstance(value, (bytes, bytearray)) and self._is_blob():
            return
        if not isinstance(value, (list, tuple)):
            raise _value_error(path, self.name, value)
        for i, item in enumerate(value):
            self._type.check_value(item, f"{path}[{i}]")

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        writer.write_leb128(len(value))
        if isinstance(value, (bytes, bytearray)):
            writer.write_bytes(bytes(value))
            return
        for item in value:
            self._type.encode_value(writer, item)

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> Any:
        from .subtype import is_subtype

        wire = unwrap(wire)
        if not isinstance(wire, Vec) or not is_subtype(wire.element, self._type):
            raise _mismatch(self, wire)
        length = _read_vec_length(reader, wire, config)
        if self._is_blob():
            if unwrap(wire.element).opcode == Opcode.NAT8:
                return reader.read_bytes(length)
            return bytes(self._type.decode_value(reader, wire.element, config) for _ in range(length))
        return [self._type.decode_value(reader, wire.element, config) for _ in range(length)]

    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        length = _read_vec_length(reader, self, config)
        if length and _zero_sized(self._type, set()):
            # Elements occupy no bytes; one skip validates them all
            length = 1
        for _ in range(length):
            self._type.skip_value(reader, config)

    def _build_children(self, table: TypeTable) -> None:
        self._type.build_type_table(table)

    def _type_entry(self, table: TypeTable) -> bytes:
        writer = ByteWriter()
        writer.write_sleb128(self.opcode)
        writer.write_sleb128(self._type.encode_type(table))
        return writer.to_bytes()


def _read_vec_length(reader: ByteReader, wire: Vec, config: DecoderConfig) -> int:
    if not _zero_sized(wire.element, set()):
        return reader.read_length()
    offset = reader.position
    length = reader.read_leb128()
    if length > config.max_zero_sized_elements:
        raise ValueDecodeError(
            f"vector of {length} zero-sized elements exceeds limit {config.max_zero_sized_elements}",
            kind="length",
            offset=offset,
        )
    return length


def _zero_sized(t: Type, seen: set[int]) -> bool:
    t = unwrap(t)
    if id(t) in seen:
        return True
    if t.opcode in (Opcode.NULL, Opcode.RESERVED, Opcode.EMPTY):
        return True
    if isinstance(t, Record):
        seen.add(id(t))
        return all(_zero_sized(ft, seen) for _, _, ft in t.entries)
    return False


class Opt(ConstructType):
    """Optional value: ``[]`` when absent, ``[v]`` when present.

    ``None`` is also accepted on encode as absent.
    """

    opcode = Opcode.OPT

    def __init__(self, inner: Type) -> None:
        self._type = _require_type(inner, "opt")
        self._name = f"opt {inner.name}"
        self._key = (self.opcode, inner.key)

    @property
    def name(self) -> str:
        return self._name

    @property
    def inner(self) -> Type:
        return self._type

    def check_value(self, value: Any, path: str = "value") -> None:
        if value is None:
            return
        if not isinstance(value, (list, tuple)) or len(value) > 1:
            raise _value_error(path, f"[] or [value] for {self.name}", value)
        if value:
            self._type.check_value(value[0], f"{path}[0]")

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        if not value:
            writer.write_byte(0)
            return
        writer.write_byte(1)
        self._type.encode_value(writer, value[0])

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> list[Any]:
        from .subtype import is_subtype

        wire = unwrap(wire)
        if wire.opcode in (Opcode.NULL, Opcode.RESERVED):
            return []
        if isinstance(wire, Opt):
            if not is_subtype(wire.inner, self._type):
                raise _mismatch(self, wire)
            if not reader.read_bool():
                return []
            return [self._type.decode_value(reader, wire.inner, config)]
        if not is_subtype(wire, self._type):
            raise _mismatch(self, wire)
        return [self._type.decode_value(reader, wire, config)]

    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        if reader.read_bool():
            self._type.skip_value(reader, config)

    def _build_children(self, table: TypeTable) -> None:
        self._type.build_type_table(table)

    def _type_entry(self, table: TypeTable) -> bytes:
        writer = ByteWriter()
        writer.write_sleb128(self.opcode)
        writer.write_sleb128(self._type.encode_type(table))
        return writer.to_bytes()


def _hashed_entries(kind: str, fields: Mapping[str, Type]) -> tuple[tuple[str, int, Type], ...]:
    if not isinstance(fields, Mapping):
        raise ConstructionError(f"{kind}: expected a mapping of names to types, got {fields!r}")
    entries: list[tuple[str, int, Type]] = []
    seen: dict[int, str] = {}
    for name, t in fields.items():
        if not isinstance(name, str):
            raise ConstructionError(f"{kind}: field names must be str, got {name!r}")
        field_id = idl_hash(name)
        if field_id in seen:
            raise ConstructionError(
                f"{kind}: fields {seen[field_id]!r} and {name!r} both map to id {field_id}"
            )
        seen[field_id] = name
        entries.append((name, field_id, _require_type(t, f"{kind} field {name!r}")))
    entries.sort(key=lambda entry: entry[1])
    return tuple(entries)


def _fields_entry(opcode: int, entries: Iterable[tuple[str, int, Type]], table: TypeTable) -> bytes:
    entries = tuple(entries)
    writer = ByteWriter()
    writer.write_sleb128(opcode)
    writer.write_leb128(len(entries))
    for _, field_id, t in entries:
        writer.write_leb128(field_id)
        writer.write_sleb128(t.encode_type(table))
    return writer.to_bytes()


class Record(ConstructType):
    """Record of named fields, written in ascending field-id order.

    Values are mappings keyed by field name; pydantic model instances are
    accepted too. Missing optional fields encode as absent.
    """

    opcode = Opcode.RECORD

    def __init__(self, fields: Mapping[str, Type] | None = None) -> None:
        self._entries = _hashed_entries("record", fields or {})
        self._by_id = {field_id: (name, t) for name, field_id, t in self._entries}
        body = "; ".join(f"{name}:{t.name}" for name, _, t in self._entries)
        self._name = f"record {{{body}}}"
        self._key = (self.opcode, tuple((field_id, t.key) for _, field_id, t in self._entries))

    @property
    def name(self) -> str:
        return self._name

    @property
    def entries(self) -> tuple[tuple[str, int, Type], ...]:
        """``(name, id, type)`` triples in canonical order."""
        return self._entries

    @property
    def fields(self) -> dict[str, Type]:
        return {name: t for name, _, t in self._entries}

    def _normalize(self, value: Any) -> Any:
        if isinstance(value, BaseModel):
            from .schema import idl_value

            return idl_value(type(value), value)
        return value

    def check_value(self, value: Any, path: str = "value") -> None:
        value = self._normalize(value)
        if not isinstance(value, Mapping):
            raise _value_error(path, self.name, value)
        names = {name for name, _, _ in self._entries}
        unknown = [key for key in value if key not in names]
        if unknown:
            raise TypeMismatch(f"{path}: unknown record field(s) {sorted(map(str, unknown))}")
        for name, _, t in self._entries:
            if name in value:
                t.check_value(value[name], f"{path}.{name}")
            elif not is_optional_like(t):
                raise TypeMismatch(f"{path}: missing record field {name!r}")

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        value = self._normalize(value)
        for name, _, t in self._entries:
            t.encode_value(writer, value.get(name))

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> Any:
        wire = unwrap(wire)
        if not isinstance(wire, Record):
            raise _mismatch(self, wire)
        missing = [
            (name, t) for name, field_id, t in self._entries if field_id not in wire._by_id
        ]
        for name, t in missing:
            if not is_optional_like(t):
                raise TypeMismatch(f"record field {name!r} of {self.name} missing from {wire.name}")
        decoded: dict[str, Any] = {name: absent_value(t) for name, t in missing}
        for _, field_id, wire_type in wire.entries:
            if field_id in self._by_id:
                name, t = self._by_id[field_id]
                decoded[name] = t.decode_value(reader, wire_type, config)
            else:
                wire_type.skip_value(reader, config)
        return {name: decoded[name] for name, _, _ in self._entries}

    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        for _, _, t in self._entries:
            t.skip_value(reader, config)

    def _build_children(self, table: TypeTable) -> None:
        for _, _, t in self._entries:
            t.build_type_table(table)

    def _type_entry(self, table: TypeTable) -> bytes:
        return _fields_entry(self.opcode, self._entries, table)


class Tuple(Record):
    """Record with fields ``"0"``, ``"1"``, ...; values are tuples."""

    def __init__(self, *components: Type) -> None:
        super().__init__({str(i): t for i, t in enumerate(components)})
        self._components = tuple(components)

    @property
    def components(self) -> tuple[Type, ...]:
        return self._components

    def _normalize(self, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if len(value) != len(self._components):
                return value
            return {str(i): item for i, item in enumerate(value)}
        return value

    def check_value(self, value: Any, path: str = "value") -> None:
        if not isinstance(value, (list, tuple)) or len(value) != len(self._components):
            raise _value_error(path, f"tuple of {len(self._components)} for {self.name}", value)
        super().check_value(value, path)

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> tuple[Any, ...]:
        decoded = super().decode_value(reader, wire, config)
        return tuple(decoded[str(i)] for i in range(len(self._components)))


class Variant(ConstructType):
    """Tagged union. Values are single-entry mappings ``{tag: value}``.

    An ``enum.Enum`` member is accepted for a tag whose type is ``Null``.
    """

    opcode = Opcode.VARIANT

    def __init__(self, fields: Mapping[str, Type] | None = None) -> None:
        self._entries = _hashed_entries("variant", fields or {})
        self._by_id = {field_id: (name, t) for name, field_id, t in self._entries}
        self._index = {name: i for i, (name, _, _) in enumerate(self._entries)}
        body = "; ".join(f"{name}:{t.name}" for name, _, t in self._entries)
        self._name = f"variant {{{body}}}"
        self._key = (self.opcode, tuple((field_id, t.key) for _, field_id, t in self._entries))

    @property
    def name(self) -> str:
        return self._name

    @property
    def entries(self) -> tuple[tuple[str, int, Type], ...]:
        """``(name, id, type)`` triples in canonical order."""
        return self._entries

    @property
    def fields(self) -> dict[str, Type]:
        return {name: t for name, _, t in self._entries}

    @staticmethod
    def _normalize(value: Any) -> Any:
        if isinstance(value, enum.Enum):
            return {value.name: None}
        return value

    def check_value(self, value: Any, path: str = "value") -> None:
        value = self._normalize(value)
        if not isinstance(value, Mapping) or len(value) != 1:
            raise _value_error(path, f"single-entry mapping for {self.name}", value)
        ((tag, item),) = value.items()
        if tag not in self._index:
            raise TypeMismatch(f"{path}: unknown variant tag {tag!r} for {self.name}")
        self._entries[self._index[tag]][2].check_value(item, f"{path}.{tag}")

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        ((tag, item),) = self._normalize(value).items()
        index = self._index[tag]
        writer.write_leb128(index)
        self._entries[index][2].encode_value(writer, item)

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> dict[str, Any]:
        wire = unwrap(wire)
        if not isinstance(wire, Variant):
            raise _mismatch(self, wire)
        offset = reader.position
        index = reader.read_leb128()
        if index >= len(wire.entries):
            raise ValueDecodeError(
                f"variant index {index} out of range for {len(wire.entries)} alternatives",
                kind="tag",
                offset=offset,
            )
        _, field_id, wire_type = wire.entries[index]
        if field_id not in self._by_id:
            raise TypeMismatch(f"variant tag {field_id} not present in {self.name}")
        name, t = self._by_id[field_id]
        return {name: t.decode_value(reader, wire_type, config)}

    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        offset = reader.position
        index = reader.read_leb128()
        if index >= len(self._entries):
            raise ValueDecodeError(
                f"variant index {index} out of range for {len(self._entries)} alternatives",
                kind="tag",
                offset=offset,
            )
        self._entries[index][2].skip_value(reader, config)

    def _build_children(self, table: TypeTable) -> None:
        for _, _, t in self._entries:
            t.build_type_table(table)

    def _type_entry(self, table: TypeTable) -> bytes:
        return _fields_entry(self.opcode, self._entries, table)


def _check_reference(value: Any, path: str) -> None:
    if not isinstance(value, (bytes, bytearray)):
        raise _value_error(path, "bytes reference", value)


def _write_reference(writer: ByteWriter, value: bytes) -> None:
    writer.write_byte(1)
    writer.write_leb128(len(value))
    writer.write_bytes(bytes(value))


def _read_reference(reader: ByteReader) -> bytes:
    offset = reader.position
    flag = reader.read_byte()
    if flag != 1:
        raise ValueDecodeError(f"unsupported reference flag {flag:#04x}", kind="reference", offset=offset)
    return reader.read_bytes(reader.read_length())


class Func(ConstructType):
    """Function signature: argument types, return types and annotations.

    As a value type, a function is a reference ``(service_id, method)``.
    Instances also serve as the signature of an actor method; see
    :func:`didl.actor.Fn`.
    """

    opcode = Opcode.FUNC
    ANNOTATIONS = {"query": 1, "oneway": 2, "composite_query": 3}

    def __init__(
        self,
        arg_types: Sequence[Type] | None = None,
        ret_types: Sequence[Type] | None = None,
        annotations: Sequence[str] = (),
    ) -> None:
        self._args = tuple(_require_type(t, "func argument") for t in arg_types or ())
        self._rets = tuple(_require_type(t, "func result") for t in ret_types or ())
        for annotation in annotations:
            if annotation not in self.ANNOTATIONS:
                raise ConstructionError(f"unknown function annotation {annotation!r}")
        self._annotations = tuple(dict.fromkeys(annotations))
        if "oneway" in self._annotations and self._rets:
            raise ConstructionError("oneway functions cannot declare return types")
        args = ", ".join(t.name for t in self._args)
        rets = ", ".join(t.name for t in self._rets)
        suffix = "".join(f" {annotation}" for annotation in self._annotations)
        self._name = f"func ({args}) -> ({rets}){suffix}"
        self._key = (
            self.opcode,
            tuple(t.key for t in self._args),
            tuple(t.key for t in self._rets),
            self._annotations,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def arg_types(self) -> tuple[Type, ...]:
        return self._args

    @property
    def ret_types(self) -> tuple[Type, ...]:
        return self._rets

    @property
    def annotations(self) -> tuple[str, ...]:
        return self._annotations

    def check_value(self, value: Any, path: str = "value") -> None:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise _value_error(path, "(service_id, method) pair", value)
        _check_reference(value[0], f"{path}[0]")
        Text.check_value(value[1], f"{path}[1]")

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        _write_reference(writer, value[0])
        writer.write_text(value[1])

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> tuple[bytes, str]:
        from .subtype import is_subtype

        wire = unwrap(wire)
        if not isinstance(wire, Func) or not is_subtype(wire, self):
            raise _mismatch(self, wire)
        return self._read(reader)

    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        self._read(reader)

    @staticmethod
    def _read(reader: ByteReader) -> tuple[bytes, str]:
        service_id = _read_reference(reader)
        return service_id, reader.read_text()

    def _build_children(self, table: TypeTable) -> None:
        for t in self._args + self._rets:
            t.build_type_table(table)

    def _type_entry(self, table: TypeTable) -> bytes:
        writer = ByteWriter()
        writer.write_sleb128(self.opcode)
        for types in (self._args, self._rets):
            writer.write_leb128(len(types))
            for t in types:
                writer.write_sleb128(t.encode_type(table))
        writer.write_leb128(len(self._annotations))
        for annotation in self._annotations:
            writer.write_byte(self.ANNOTATIONS[annotation])
        return writer.to_bytes()

    def encode_args(self, values: Sequence[Any]) -> bytes:
        """Encode a call's arguments against this signature."""
        from .encoder import encode

        return encode(self._args, values)

    def decode_args(self, data: bytes, *, config: DecoderConfig | None = None) -> list[Any]:
        """Decode a call's arguments against this signature."""
        from .decoder import decode

        return decode(self._args, data, config=config)

    def encode_rets(self, values: Sequence[Any]) -> bytes:
        """Encode a reply's results against this signature."""
        from .encoder import encode

        return encode(self._rets, values)

    def decode_rets(self, data: bytes, *, config: DecoderConfig | None = None) -> list[Any]:
        """Decode a reply's results against this signature."""
        from .decoder import decode

        return decode(self._rets, data, config=config)


class Service(ConstructType):
    """Service interface: method name to function type.

    As a value type, a service is a ``bytes`` reference.
    """

    opcode = Opcode.SERVICE

    def __init__(self, methods: Mapping[str, Type] | None = None) -> None:
        methods = methods or {}
        if not isinstance(methods, Mapping):
            raise ConstructionError(f"service: expected a mapping of names to functions, got {methods!r}")
        for method, t in methods.items():
            if not isinstance(method, str):
                raise ConstructionError(f"service: method names must be str, got {method!r}")
            _require_type(t, f"service method {method!r}")
            if not isinstance(t, (Func, Rec)):
                raise ConstructionError(f"service method {method!r} must be a function type, got {t.name}")
        self._methods = tuple(sorted(methods.items(), key=lambda item: item[0].encode("utf-8")))
        body = "; ".join(f"{method}:{t.name}" for method, t in self._methods)
        self._name = f"service {{{body}}}"
        self._key = (self.opcode, tuple((method, t.key) for method, t in self._methods))

    @property
    def name(self) -> str:
        return self._name

    @property
    def methods(self) -> dict[str, Type]:
        return dict(self._methods)

    def check_value(self, value: Any, path: str = "value") -> None:
        _check_reference(value, path)

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        _write_reference(writer, value)

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> bytes:
        from .subtype import is_subtype

        wire = unwrap(wire)
        if not isinstance(wire, Service) or not is_subtype(wire, self):
            raise _mismatch(self, wire)
        return _read_reference(reader)

    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        _read_reference(reader)

    def _build_children(self, table: TypeTable) -> None:
        for _, t in self._methods:
            t.build_type_table(table)

    def _type_entry(self, table: TypeTable) -> bytes:
        writer = ByteWriter()
        writer.write_sleb128(self.opcode)
        writer.write_leb128(len(self._methods))
        for method, t in self._methods:
            writer.write_text(method)
            writer.write_sleb128(t.encode_type(table))
        return writer.to_bytes()


_rec_ids = itertools.count()


class Rec(Type):
    """Placeholder for a recursive type, filled once after construction.

    Example:
        >>> List = Rec()
        >>> List.fill(Opt(Record({"head": Int, "tail": List})))
    """

    def __init__(self) -> None:
        self._id = next(_rec_ids)
        self._type: Type | None = None

    @property
    def name(self) -> str:
        return f"rec_{self._id}"

    @property
    def key(self) -> Hashable:
        return ("rec", self._id)

    @property
    def is_filled(self) -> bool:
        return self._type is not None

    @property
    def inner(self) -> Type:
        """The descriptor this placeholder stands for.

        Raises:
            ConstructionError: If the placeholder was never filled
        """
        if self._type is None:
            raise ConstructionError(f"recursive type {self.name} was never filled")
        return self._type

    def fill(self, t: Type, *, check_cycles: bool = True) -> None:
        """Tie the knot.

        Args:
            t: The descriptor this placeholder stands for
            check_cycles: Reject ``t`` if it contains this placeholder by value.
                Only disable for graphs already validated as a whole.

        Raises:
            ConstructionError: If already filled, or if ``t`` would contain
                itself by value (through records only)
        """
        if self._type is not None:
            raise ConstructionError(f"recursive type {self.name} is already filled")
        _require_type(t, "rec")
        if check_cycles and _reaches_by_value(t, self):
            raise ConstructionError(f"recursive type {self.name} contains itself by value: {t.name}")
        self._type = t

    def check_value(self, value: Any, path: str = "value") -> None:
        self.inner.check_value(value, path)

    def build_type_table(self, table: TypeTable) -> None:
        inner = self.inner
        if not isinstance(inner, ConstructType):
            inner.build_type_table(table)
            return
        if table.has(self):
            return
        index = table.reserve(self)
        inner._build_children(table)
        table.fill(index, inner._type_entry(table))

    def encode_type(self, table: TypeTable) -> int:
        if not isinstance(self.inner, ConstructType):
            return self.inner.encode_type(table)
        return table.index_of(self)

    def encode_value(self, writer: ByteWriter, value: Any) -> None:
        self.inner.encode_value(writer, value)

    def decode_value(self, reader: ByteReader, wire: Type, config: DecoderConfig) -> Any:
        return self.inner.decode_value(reader, wire, config)

    def skip_value(self, reader: ByteReader, config: DecoderConfig) -> None:
        self.inner.skip_value(reader, config)

    def __repr__(self) -> str:
        if self._type is None:
            return f"<Rec {self.name} (unfilled)>"
        return f"<Rec {self.name}={self._type.name}>"


def _reaches_by_value(t: Type, target: Rec) -> bool:
    seen: set[int] = set()
    stack = [t]
    while stack:
        t = stack.pop()
        if t is target:
            return True
        if id(t) in seen:
            continue
        seen.add(id(t))
        if isinstance(t, Rec):
            if t.is_filled:
                stack.append(t.inner)
        elif isinstance(t, Record):
            stack.extend(ft for _, _, ft in t.entries)
    return False
