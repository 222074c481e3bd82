"""Self-describing binary codec.

This module provides the type descriptors and the encode/decode functions
for messages that carry their own type table.
"""

from __future__ import annotations

from .config import DEFAULT_CONFIG, DecoderConfig
from .decoder import Decoder, decode
from .encoder import Encoder, encode
from .schema import FieldSchema, ModelSchema, type_for_annotation
from .subtype import equal, is_subtype
from .table import MAGIC, TypeTable, parse_table
from .types import (
    Bool,
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
    Opcode,
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
)

__all__ = [
    "encode",
    "decode",
    "Encoder",
    "Decoder",
    "DecoderConfig",
    "DEFAULT_CONFIG",
    "MAGIC",
    "TypeTable",
    "parse_table",
    "equal",
    "is_subtype",
    "ModelSchema",
    "FieldSchema",
    "type_for_annotation",
    "Opcode",
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
]
