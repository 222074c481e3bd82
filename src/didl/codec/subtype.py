"""Structural equality and subtyping between type descriptors.

Both relations are coinductive: a pair of descriptors already under
comparison is assumed to hold, which makes recursive types terminate.
``Rec`` placeholders are transparent.

Subtyping decides whether a value written with one type can be decoded as
another, which is what lets interfaces evolve:

- a record may gain fields (the reader skips them) or lose optional ones,
- a variant may be read by a type with more alternatives,
- ``opt T`` accepts ``null``, ``opt S`` or ``S`` whenever ``S <: T``,
- integer kinds never widen: ``nat8`` is not ``nat``, ``nat`` is not ``int``.
"""

from __future__ import annotations

from .types import (
    Func,
    Opcode,
    Opt,
    PrimitiveType,
    Record,
    Service,
    Type,
    Variant,
    Vec,
    is_optional_like,
    unwrap,
)


def equal(a: Type, b: Type, assumptions: set[tuple[int, int]] | None = None) -> bool:
    """Return True if ``a`` and ``b`` describe the same shape.

    Records and variants compare as sets keyed by id.
    """
    if assumptions is None:
        assumptions = set()
    key = (id(a), id(b))
    if a is b or key in assumptions:
        return True
    assumptions.add(key)
    a, b = unwrap(a), unwrap(b)

    if a.opcode != b.opcode:
        return False
    if isinstance(a, PrimitiveType):
        return True
    if isinstance(a, Vec):
        assert isinstance(b, Vec)
        return equal(a.element, b.element, assumptions)
    if isinstance(a, Opt):
        assert isinstance(b, Opt)
        return equal(a.inner, b.inner, assumptions)
    if isinstance(a, (Record, Variant)):
        assert isinstance(b, (Record, Variant))
        fields_b = {field_id: t for _, field_id, t in b.entries}
        if len(a.entries) != len(fields_b):
            return False
        return all(
            field_id in fields_b and equal(t, fields_b[field_id], assumptions)
            for _, field_id, t in a.entries
        )
    if isinstance(a, Func):
        assert isinstance(b, Func)
        return (
            set(a.annotations) == set(b.annotations)
            and len(a.arg_types) == len(b.arg_types)
            and len(a.ret_types) == len(b.ret_types)
            and all(equal(x, y, assumptions) for x, y in zip(a.arg_types, b.arg_types))
            and all(equal(x, y, assumptions) for x, y in zip(a.ret_types, b.ret_types))
        )
    if isinstance(a, Service):
        assert isinstance(b, Service)
        methods_a, methods_b = a.methods, b.methods
        return methods_a.keys() == methods_b.keys() and all(
            equal(methods_a[name], methods_b[name], assumptions) for name in methods_a
        )
    raise TypeError(f"unhandled type {a!r}")


def is_subtype(sub: Type, sup: Type, assumptions: set[tuple[int, int]] | None = None) -> bool:
    """Return True if a value of type ``sub`` can be decoded as ``sup``."""
    if assumptions is None:
        assumptions = set()
    key = (id(sub), id(sup))
    if sub is sup or key in assumptions:
        return True
    assumptions.add(key)
    sub, sup = unwrap(sub), unwrap(sup)

    if sup.opcode == Opcode.RESERVED or sub.opcode == Opcode.EMPTY:
        return True
    if isinstance(sup, Opt):
        if sub.opcode in (Opcode.NULL, Opcode.RESERVED):
            return True
        if isinstance(sub, Opt):
            return is_subtype(sub.inner, sup.inner, assumptions)
        return is_subtype(sub, sup.inner, assumptions)
    if sub.opcode != sup.opcode:
        return False
    if isinstance(sup, PrimitiveType):
        return True
    if isinstance(sup, Vec):
        assert isinstance(sub, Vec)
        return is_subtype(sub.element, sup.element, assumptions)
    if isinstance(sup, Record):
        assert isinstance(sub, Record)
        sub_fields = {field_id: t for _, field_id, t in sub.entries}
        for _, field_id, t in sup.entries:
            if field_id in sub_fields:
                if not is_subtype(sub_fields[field_id], t, assumptions):
                    return False
            elif not is_optional_like(t):
                return False
        return True
    if isinstance(sup, Variant):
        assert isinstance(sub, Variant)
        sup_fields = {field_id: t for _, field_id, t in sup.entries}
        return all(
            field_id in sup_fields and is_subtype(t, sup_fields[field_id], assumptions)
            for _, field_id, t in sub.entries
        )
    if isinstance(sup, Func):
        assert isinstance(sub, Func)
        return _func_subtype(sub, sup, assumptions)
    if isinstance(sup, Service):
        assert isinstance(sub, Service)
        sub_methods = sub.methods
        return all(
            name in sub_methods and is_subtype(sub_methods[name], t, assumptions)
            for name, t in sup.methods.items()
        )
    raise TypeError(f"unhandled type {sup!r}")


def _func_subtype(sub: Func, sup: Func, assumptions: set[tuple[int, int]]) -> bool:
    if set(sub.annotations) != set(sup.annotations):
        return False
    # Arguments are contravariant: callers of ``sup`` must satisfy ``sub``.
    for i, t in enumerate(sub.arg_types):
        if i < len(sup.arg_types):
            if not is_subtype(sup.arg_types[i], t, assumptions):
                return False
        elif not is_optional_like(t):
            return False
    for i, t in enumerate(sup.ret_types):
        if i < len(sub.ret_types):
            if not is_subtype(sub.ret_types[i], t, assumptions):
                return False
        elif not is_optional_like(t):
            return False
    return True
