"""didl: Self-describing Interface Definition Language codec

A Python library for encoding typed values into compact, self-describing
binary messages and decoding them back. Every message carries a type table,
so a reader can decode it against its own (possibly older or newer) view of
the interface: extra record fields are skipped, missing optional ones come
back absent, and trailing optional arguments may be dropped.

Key Features:
- Structural types: records, variants, options, vectors, tuples, recursion
- Subtyping-based decoding for interface evolution
- Actor interfaces for encoding calls and replies
- Pydantic-based record modeling

Quick Start:
    >>> from didl import Nat, Opt, Record, Text, decode, encode
    >>>
    >>> Person = Record({"name": Text, "age": Opt(Nat)})
    >>>
    >>> data = encode([Person], [{"name": "ada", "age": [36]}])
    >>> decode([Person], data)
    [{'age': [36], 'name': 'ada'}]
    >>>
    >>> # A reader that only knows about the name
    >>> decode([Record({"name": Text})], data)
    [{'name': 'ada'}]
"""

from __future__ import annotations

from .actor import ActorInterface, Fn, FunctionSignature
from .codec import (
    DEFAULT_CONFIG,
    Bool,
    DecoderConfig,
    Empty,
    Float32,
    Float64,
    Func,
    Int,
    Int8,
    Int16,
    Int32,
    Int64,
    Nat,
    Nat8,
    Nat16,
    Nat32,
    Nat64,
    Null,
    Opt,
    Rec,
    Record,
    Reserved,
    Service,
    Text,
    Tuple,
    Type,
    Variant,
    Vec,
    decode,
    encode,
    equal,
    is_subtype,
)
from .exceptions import (
    ArityMismatch,
    ConstructionError,
    DecodeError,
    DidlError,
    EncodeError,
    MalformedTable,
    MalformedVarint,
    MethodNotFound,
    TypeMismatch,
    UnsupportedVersion,
    ValueDecodeError,
)
from .models import FixedFloat, FixedInt, IDLModel, Natural
from .utils import idl_hash

__version__ = "0.1.0"

__all__ = [
    # Core API
    "encode",
    "decode",
    "DecoderConfig",
    "DEFAULT_CONFIG",
    "is_subtype",
    "equal",
    "idl_hash",
    # Types
    "Type",
    "Null",
    "Bool",
    "Nat",
    "Int",
    "Nat8",
    "Nat16",
    "Nat32",
    "Nat64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "Float32",
    "Float64",
    "Text",
    "Reserved",
    "Empty",
    "Vec",
    "Opt",
    "Record",
    "Tuple",
    "Variant",
    "Func",
    "Service",
    "Rec",
    # Actors
    "ActorInterface",
    "Fn",
    "FunctionSignature",
    # Models
    "IDLModel",
    "FixedInt",
    "FixedFloat",
    "Natural",
    # Exceptions
    "DidlError",
    "ConstructionError",
    "EncodeError",
    "DecodeError",
    "TypeMismatch",
    "ArityMismatch",
    "UnsupportedVersion",
    "MalformedTable",
    "ValueDecodeError",
    "MalformedVarint",
    "MethodNotFound",
    # Version
    "__version__",
]
