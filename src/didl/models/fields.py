"""Field type helpers.

This module provides convenience functions for declaring model fields that
map to fixed-width wire types.
"""

from __future__ import annotations

from typing import Any, cast

from pydantic import Field
from pydantic.fields import FieldInfo

_INT_WIDTHS = (8, 16, 32, 64)


def FixedInt(*, bits: int, signed: bool = False, **kwargs: Any) -> FieldInfo:
    """Create a fixed-width integer field.

    The field maps to ``nat{bits}`` or ``int{bits}``; Pydantic enforces the
    matching range on validation.

    Args:
        bits: Width in bits (8, 16, 32 or 64)
        signed: Whether the integer is signed (default False)
        **kwargs: Additional Field() arguments

    Returns:
        Pydantic FieldInfo suitable for use as a field default/metadata.

    Example:
        >>> class Reading(IDLModel):
        ...     sensor: Annotated[int, FixedInt(bits=8)]
        ...     temperature: Annotated[int, FixedInt(bits=16, signed=True)]
    """
    if bits not in _INT_WIDTHS:
        raise ValueError(f"bits must be one of {_INT_WIDTHS}")
    if signed:
        ge, le = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        ge, le = 0, (1 << bits) - 1
    return cast(
        FieldInfo,
        Field(ge=ge, le=le, json_schema_extra={"bits": bits, "signed": signed}, **kwargs),
    )


def FixedFloat(*, bits: int = 64, **kwargs: Any) -> FieldInfo:
    """Create a float field of the given width (32 or 64 bits).

    Example:
        >>> class Reading(IDLModel):
        ...     voltage: Annotated[float, FixedFloat(bits=32)]
    """
    if bits not in (32, 64):
        raise ValueError("bits must be 32 or 64")
    return cast(FieldInfo, Field(json_schema_extra={"bits": bits}, **kwargs))


def Natural(**kwargs: Any) -> FieldInfo:
    """Create an unbounded non-negative integer field (``nat``)."""
    return cast(FieldInfo, Field(ge=0, **kwargs))
