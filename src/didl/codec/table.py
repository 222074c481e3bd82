"""Type table construction and parsing.

Every message carries the types of its arguments in a table so that a reader
can decode it without knowing the sender's schema in advance. Composite types
are table entries that refer to each other by index, which is how recursion is
expressed; primitive types are referred to inline by their negative opcode.

Wire layout of the table region::

    leb128(entry count)
    entry*                       sleb128(opcode) + opcode-specific payload
    leb128(argument count)
    sleb128(type reference)*     entry index, or negative primitive opcode

Entry payloads:

    opt / vec        reference
    record / variant leb128(n), then n x (leb128(id), reference), ids ascending
    func             leb128(n) references, leb128(m) references, leb128(k) annotation bytes
    service          leb128(n), then n x (text name, reference), names ascending
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field

from structlog import get_logger

from ..exceptions import ConstructionError, MalformedTable, ValueDecodeError
from .buffer import ByteReader, ByteWriter
from .config import DecoderConfig
from .types import (
    PRIMITIVES,
    Func,
    Opcode,
    Opt,
    Rec,
    Record,
    Service,
    Type,
    Variant,
    Vec,
)

logger = get_logger()

MAGIC = b"DIDL"

_MAX_ID = (1 << 32) - 1
_ANNOTATION_NAMES = {code: name for name, code in Func.ANNOTATIONS.items()}


class TypeTable:
    """Deduplicated, index-addressed table of the types used by a message.

    Indices are assigned in pre-order, depth first, starting from the argument
    list, so building the same argument types always yields the same bytes.
    Structurally identical types share one entry.

    Example:
        >>> table = TypeTable.build([Vec(Nat), Text])
        >>> table.arg_refs
        [0, -15]
        >>> table.to_bytes().hex()
        '016d7d020071'
    """

    def __init__(self) -> None:
        self._entries: list[bytes | None] = []
        self._index: dict[Hashable, int] = {}
        self._arg_types: list[Type] = []

    @classmethod
    def build(cls, arg_types: Sequence[Type]) -> TypeTable:
        """Build the table for a list of argument types.

        Raises:
            ConstructionError: If a type is not a descriptor or a Rec was never filled
        """
        table = cls()
        for t in arg_types:
            table.add(t)
        logger.debug("type table built", entries=len(table), args=len(table.arg_types))
        return table

    def add(self, t: Type) -> None:
        """Append an argument type and register everything it references."""
        if not isinstance(t, Type):
            raise ConstructionError(f"expected a type descriptor, got {t!r}")
        t.build_type_table(self)
        self._arg_types.append(t)

    def has(self, t: Type) -> bool:
        return t.key in self._index

    def reserve(self, t: Type) -> int:
        """Claim the next index for ``t``; its entry is supplied by :meth:`fill`."""
        index = len(self._entries)
        self._index[t.key] = index
        self._entries.append(None)
        return index

    def fill(self, index: int, entry: bytes) -> None:
        self._entries[index] = entry

    def index_of(self, t: Type) -> int:
        """Return the entry index of a registered type.

        Raises:
            ConstructionError: If the type was never registered
        """
        try:
            return self._index[t.key]
        except KeyError as e:
            raise ConstructionError(f"type {t.name} is not in the type table") from e

    @property
    def arg_types(self) -> list[Type]:
        return list(self._arg_types)

    @property
    def arg_refs(self) -> list[int]:
        """One signed reference per argument."""
        return [t.encode_type(self) for t in self._arg_types]

    @property
    def entries(self) -> list[bytes]:
        """Serialized entries in index order."""
        return [entry for entry in self._entries if entry is not None]

    def __len__(self) -> int:
        return len(self._entries)

    def to_bytes(self) -> bytes:
        """Serialize the table and the argument references."""
        if any(entry is None for entry in self._entries):
            raise ConstructionError("type table has unfilled entries")
        writer = ByteWriter()
        writer.write_leb128(len(self._entries))
        for entry in self.entries:
            writer.write_bytes(entry)
        writer.write_leb128(len(self._arg_types))
        for ref in self.arg_refs:
            writer.write_sleb128(ref)
        return writer.to_bytes()


@dataclass(frozen=True)
class TableEntry:
    """One parsed table entry, before references are resolved."""

    opcode: int
    ref: int | None = None
    fields: tuple[tuple[int, int], ...] = ()
    args: tuple[int, ...] = ()
    rets: tuple[int, ...] = ()
    annotations: tuple[str, ...] = ()
    methods: tuple[tuple[str, int], ...] = ()

    def references(self) -> list[int]:
        refs = [] if self.ref is None else [self.ref]
        refs.extend(ref for _, ref in self.fields)
        refs.extend(self.args)
        refs.extend(self.rets)
        refs.extend(ref for _, ref in self.methods)
        return refs


@dataclass
class WireTable:
    """The sender's types, reconstructed from a message.

    Attributes:
        entries: Parsed entries in index order
        types: One filled ``Rec`` per entry
        arg_types: Type of each argument in the message
    """

    entries: list[TableEntry]
    types: list[Rec] = field(default_factory=list)
    arg_types: list[Type] = field(default_factory=list)


def parse_table(reader: ByteReader, config: DecoderConfig) -> WireTable:
    """Parse the type table and argument references at the reader's position.

    Raises:
        MalformedTable: If the table is truncated or structurally invalid
    """
    try:
        count = reader.read_leb128()
        if count > config.max_table_entries:
            raise MalformedTable(f"type table has {count} entries, limit is {config.max_table_entries}")
        entries = [_read_entry(reader) for _ in range(count)]
        arg_refs = [reader.read_sleb128() for _ in range(reader.read_leb128())]
    except ValueDecodeError as e:
        raise MalformedTable(f"truncated or corrupt type table: {e}") from e

    for index, entry in enumerate(entries):
        for ref in entry.references():
            _check_ref(ref, len(entries))
        for _, ref in entry.methods:
            if ref < 0 or entries[ref].opcode != Opcode.FUNC:
                raise MalformedTable(f"service method in entry {index} does not refer to a function type")
    for ref in arg_refs:
        _check_ref(ref, len(entries))

    checked: set[int] = set()
    for index in range(len(entries)):
        typecheck(entries, index, checked)

    wire = WireTable(entries=entries)
    wire.types = [Rec() for _ in entries]
    try:
        for rec, entry in zip(wire.types, entries):
            # Cycles were rejected by typecheck above
            rec.fill(_build_type(entry, wire.types), check_cycles=False)
    except ConstructionError as e:
        raise MalformedTable(f"invalid type table: {e}") from e
    except RecursionError as e:
        raise MalformedTable("type table nested too deeply") from e
    wire.arg_types = [_resolve(ref, wire.types) for ref in arg_refs]
    logger.debug("type table parsed", entries=len(entries), args=len(arg_refs))
    return wire


def typecheck(entries: Sequence[TableEntry], index: int, checked: set[int] | None = None) -> None:
    """Reject an entry whose expansion contains itself by value.

    A cycle is only well-formed if it passes through a constructor that can
    terminate (opt, vec, variant, func, service). A cycle made of records alone
    would need an infinite value.

    Args:
        entries: Parsed table entries
        index: Entry to check
        checked: Indices already known to be well-formed; updated in place

    Raises:
        MalformedTable: On an ill-formed cycle
    """
    if checked is None:
        checked = set()
    if index in checked:
        return
    on_path = {index}
    stack = [(index, iter(_by_value_refs(entries[index])))]
    while stack:
        node, children = stack[-1]
        for child in children:
            if child in on_path:
                raise MalformedTable(f"type table entry {child} contains itself by value")
            if child not in checked:
                on_path.add(child)
                stack.append((child, iter(_by_value_refs(entries[child]))))
                break
        else:
            stack.pop()
            on_path.discard(node)
            checked.add(node)


def _by_value_refs(entry: TableEntry) -> list[int]:
    if entry.opcode != Opcode.RECORD:
        return []
    return [ref for _, ref in entry.fields if ref >= 0]


def _check_ref(ref: int, count: int) -> None:
    if ref >= 0:
        if ref >= count:
            raise MalformedTable(f"type reference {ref} outside table of {count} entries")
    elif ref not in PRIMITIVES:
        raise MalformedTable(f"unknown primitive type opcode {ref}")


def _read_entry(reader: ByteReader) -> TableEntry:
    offset = reader.position
    opcode = reader.read_sleb128()
    if opcode in (Opcode.OPT, Opcode.VEC):
        return TableEntry(opcode, ref=reader.read_sleb128())
    if opcode in (Opcode.RECORD, Opcode.VARIANT):
        fields: list[tuple[int, int]] = []
        previous = -1
        for _ in range(reader.read_leb128()):
            field_id = reader.read_leb128()
            if field_id > _MAX_ID:
                raise MalformedTable(f"field id {field_id} at offset {offset} exceeds 32 bits")
            if field_id <= previous:
                raise MalformedTable(f"field ids not strictly ascending at offset {offset}")
            previous = field_id
            fields.append((field_id, reader.read_sleb128()))
        return TableEntry(opcode, fields=tuple(fields))
    if opcode == Opcode.FUNC:
        args = tuple(reader.read_sleb128() for _ in range(reader.read_leb128()))
        rets = tuple(reader.read_sleb128() for _ in range(reader.read_leb128()))
        annotations = []
        for _ in range(reader.read_leb128()):
            code = reader.read_byte()
            if code not in _ANNOTATION_NAMES:
                raise MalformedTable(f"unknown function annotation {code} at offset {offset}")
            annotations.append(_ANNOTATION_NAMES[code])
        return TableEntry(opcode, args=args, rets=rets, annotations=tuple(annotations))
    if opcode == Opcode.SERVICE:
        methods: list[tuple[str, int]] = []
        for _ in range(reader.read_leb128()):
            name = reader.read_text()
            if methods and name.encode("utf-8") <= methods[-1][0].encode("utf-8"):
                raise MalformedTable(f"service method names not strictly ascending at offset {offset}")
            methods.append((name, reader.read_sleb128()))
        return TableEntry(opcode, methods=tuple(methods))
    raise MalformedTable(f"invalid type table opcode {opcode} at offset {offset}")


def _resolve(ref: int, types: list[Rec]) -> Type:
    return types[ref] if ref >= 0 else PRIMITIVES[ref]


def _build_type(entry: TableEntry, types: list[Rec]) -> Type:
    if entry.opcode in (Opcode.OPT, Opcode.VEC):
        if entry.ref is None:
            raise MalformedTable(f"{Opcode(entry.opcode).name.lower()} entry has no element type")
        constructor = Opt if entry.opcode == Opcode.OPT else Vec
        return constructor(_resolve(entry.ref, types))
    if entry.opcode == Opcode.RECORD:
        return Record({str(field_id): _resolve(ref, types) for field_id, ref in entry.fields})
    if entry.opcode == Opcode.VARIANT:
        return Variant({str(field_id): _resolve(ref, types) for field_id, ref in entry.fields})
    if entry.opcode == Opcode.FUNC:
        return Func(
            [_resolve(ref, types) for ref in entry.args],
            [_resolve(ref, types) for ref in entry.rets],
            entry.annotations,
        )
    return Service({name: _resolve(ref, types) for name, ref in entry.methods})
