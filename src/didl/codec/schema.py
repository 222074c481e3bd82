"""Schema introspection for Pydantic models.

This module maps Python type annotations, and the fields of Pydantic models,
to type descriptors. It also converts decoded values back into the Python
shapes those annotations describe (``opt`` lists to ``None``/value, variant
mappings to enum members).
"""

from __future__ import annotations

import enum
import types as _pytypes
from dataclasses import dataclass
from typing import Annotated, Any, List, Optional, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from ..exceptions import ConstructionError
from .types import (
    Bool,
    FixedIntClass,
    FixedNatClass,
    Float32,
    Float64,
    Int,
    Nat,
    Nat8,
    Null,
    Opt,
    Rec,
    Record,
    Text,
    Tuple,
    Type,
    Variant,
    Vec,
)

_UNION_TYPES = (Union, _pytypes.UnionType)


@dataclass(frozen=True)
class FieldSchema:
    """Schema information for a single model field.

    Attributes:
        name: Field name (also the record field name)
        annotation: Python type annotation
        required: Whether the field has no default
        idl_type: Descriptor the field maps to
    """

    name: str
    annotation: Any
    required: bool
    idl_type: Type


class ModelSchema:
    """Record descriptor derived from a Pydantic model.

    Self-referential and mutually recursive models are tied with ``Rec``.

    Example:
        >>> schema = ModelSchema.from_model(StatusReport)
        >>> for field in schema.fields:
        ...     print(f"{field.name}: {field.idl_type.name}")
    """

    def __init__(self, model_class: type[BaseModel], _in_progress: dict[type, Rec] | None = None) -> None:
        """Initialize schema from a Pydantic model.

        Args:
            model_class: Pydantic model class to introspect
        """
        self.model_class = model_class
        self.fields: List[FieldSchema] = []
        self._in_progress = {} if _in_progress is None else _in_progress
        self.idl_type = self._introspect()

    @classmethod
    def from_model(cls, model_class: type[BaseModel]) -> ModelSchema:
        """Create a schema from a Pydantic model."""
        return cls(model_class)

    def _introspect(self) -> Type:
        rec = Rec()
        self._in_progress[self.model_class] = rec
        try:
            for field_name, field_info in self.model_class.model_fields.items():
                self.fields.append(self._extract_field_schema(field_name, field_info))
        finally:
            del self._in_progress[self.model_class]

        record = Record({f.name: f.idl_type for f in self.fields})
        if _mentions(record, rec):
            rec.fill(record)
            return rec
        return record

    def _extract_field_schema(self, name: str, field_info: FieldInfo) -> FieldSchema:
        annotation = field_info.annotation
        if annotation is None:
            raise ConstructionError(f"Field {name} has no type annotation")

        extra = field_info.json_schema_extra if isinstance(field_info.json_schema_extra, dict) else {}
        non_negative = _is_non_negative(field_info.metadata)

        try:
            idl_type = type_for_annotation(
                annotation,
                bits=extra.get("bits"),
                signed=extra.get("signed"),
                non_negative=non_negative,
                _in_progress=self._in_progress,
            )
        except ConstructionError as e:
            raise ConstructionError(f"Field {name}: {e}") from e

        return FieldSchema(
            name=name,
            annotation=annotation,
            required=field_info.is_required(),
            idl_type=idl_type,
        )


def type_for_annotation(
    annotation: Any,
    *,
    bits: Any = None,
    signed: Any = None,
    non_negative: bool = False,
    _in_progress: dict[type, Rec] | None = None,
) -> Type:
    """Map a Python annotation to a type descriptor.

    Args:
        annotation: The annotation (``int``, ``list[str]``, ``Optional[Model]``...)
        bits: Fixed width for ``int``/``float`` fields (from FixedInt/FixedFloat)
        signed: Signedness for fixed-width ``int`` fields
        non_negative: Map plain ``int`` to ``nat`` (field constrained with ge>=0)

    Raises:
        ConstructionError: If the annotation has no descriptor
    """
    in_progress = {} if _in_progress is None else _in_progress
    if isinstance(annotation, Type):
        return annotation
    if annotation is None or annotation is type(None):
        return Null

    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        # Field helpers nested inside Optional/list keep their FieldInfo here
        for meta in args[1:]:
            if isinstance(meta, FieldInfo):
                extra = meta.json_schema_extra if isinstance(meta.json_schema_extra, dict) else {}
                bits = extra.get("bits", bits)
                signed = extra.get("signed", signed)
                non_negative = non_negative or _is_non_negative(meta.metadata)
        return type_for_annotation(
            args[0], bits=bits, signed=signed, non_negative=non_negative, _in_progress=in_progress
        )
    if origin in _UNION_TYPES:
        non_none = [arg for arg in args if arg is not type(None)]
        if len(non_none) != 1 or len(non_none) == len(args):
            raise ConstructionError(f"complex Union types not supported: {annotation}")
        return Opt(
            type_for_annotation(
                non_none[0], bits=bits, signed=signed, non_negative=non_negative, _in_progress=in_progress
            )
        )
    if origin is list:
        return Vec(type_for_annotation(args[0], _in_progress=in_progress) if args else Null)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return Vec(type_for_annotation(args[0], _in_progress=in_progress))
        return Tuple(*(type_for_annotation(arg, _in_progress=in_progress) for arg in args))
    if origin is not None:
        raise ConstructionError(f"unsupported generic type {annotation}")

    if annotation is bool:
        return Bool
    if annotation is int:
        if bits is not None:
            return FixedIntClass(bits) if signed else FixedNatClass(bits)
        return Nat if non_negative else Int
    if annotation is float:
        return Float32 if bits == 32 else Float64
    if annotation is str:
        return Text
    if annotation in (bytes, bytearray):
        return Vec(Nat8)
    if isinstance(annotation, type) and issubclass(annotation, enum.Enum):
        if not len(annotation):
            raise ConstructionError(f"Enum {annotation} has no values")
        return Variant({member.name: Null for member in annotation})
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        if annotation in in_progress:
            return in_progress[annotation]
        return ModelSchema(annotation, in_progress).idl_type

    raise ConstructionError(
        f"unsupported type {annotation}. Supported: None, bool, int, float, str, bytes, "
        f"list, tuple, Optional, Enum and Pydantic models."
    )


def idl_value(annotation: Any, value: Any) -> Any:
    """Convert a Python value into the shape its descriptor accepts.

    The inverse of :func:`python_value`: ``None`` in an optional position
    becomes ``[]``, a present value ``v`` becomes ``[v]``, and models become
    mappings.
    """
    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        return idl_value(args[0], value)
    if origin in _UNION_TYPES:
        if value is None:
            return []
        inner = next(arg for arg in args if arg is not type(None))
        return [idl_value(inner, value)]
    if origin is list and args:
        return [idl_value(args[0], item) for item in value]
    if origin is tuple and args:
        if len(args) == 2 and args[1] is Ellipsis:
            return [idl_value(args[0], item) for item in value]
        return tuple(idl_value(arg, item) for arg, item in zip(args, value))
    if isinstance(value, enum.Enum):
        return {value.name: None}
    if isinstance(value, BaseModel):
        return {
            name: idl_value(field_info.annotation, getattr(value, name))
            for name, field_info in type(value).model_fields.items()
        }
    return value


def python_value(annotation: Any, value: Any) -> Any:
    """Convert a decoded value into the shape ``annotation`` describes.

    Option values (``[]``/``[v]``) become ``None``/``v``, variant mappings
    become enum members, and nested records become model instances.
    """
    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        return python_value(args[0], value)
    if origin in _UNION_TYPES:
        inner = next(arg for arg in args if arg is not type(None))
        return python_value(inner, value[0]) if value else None
    if origin is list:
        return [python_value(args[0], item) for item in value] if args else list(value)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(python_value(args[0], item) for item in value)
        return tuple(python_value(arg, item) for arg, item in zip(args, value))
    if isinstance(annotation, type) and issubclass(annotation, enum.Enum):
        ((tag, _),) = value.items()
        return annotation[tag]
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation(
            **{
                name: python_value(field_info.annotation, value[name])
                for name, field_info in annotation.model_fields.items()
                if name in value
            }
        )
    return value


def _mentions(t: Type, target: Rec, seen: Optional[set[int]] = None) -> bool:
    seen = set() if seen is None else seen
    if t is target:
        return True
    if id(t) in seen or isinstance(t, Rec):
        return False
    seen.add(id(t))
    if isinstance(t, (Record, Variant)):
        return any(_mentions(ft, target, seen) for _, _, ft in t.entries)
    if isinstance(t, Vec):
        return _mentions(t.element, target, seen)
    if isinstance(t, Opt):
        return _mentions(t.inner, target, seen)
    return False


def _is_non_negative(metadata: List[Any]) -> bool:
    for constraint in metadata:
        ge = getattr(constraint, "ge", None)
        gt = getattr(constraint, "gt", None)
        if (ge is not None and ge >= 0) or (gt is not None and gt >= -1):
            return True
    return False
