"""Field and variant tag hashing.

Record fields and variant alternatives are identified on the wire by a 32-bit
id instead of their name. The id is derived from the name with a polynomial
rolling hash over its UTF-8 bytes; the multiplier is part of the wire format and
must not change.
"""

from __future__ import annotations

from ..exceptions import ConstructionError

HASH_MULTIPLIER = 223
HASH_MODULUS = 1 << 32


def idl_hash(name: str) -> int:
    """Map a field or tag name to its 32-bit wire id.

    Names consisting only of ASCII digits are taken literally, which lets
    protocol authors pin explicit ids (``"0"``, ``"1"``, ... for tuples).

    Args:
        name: Field or tag name

    Returns:
        Unsigned 32-bit id

    Raises:
        ConstructionError: If a numeric name does not fit in 32 bits

    Example:
        >>> idl_hash("a")
        97
        >>> idl_hash("42")
        42
    """
    if name.isascii() and name.isdigit():
        value = int(name)
        if value >= HASH_MODULUS:
            raise ConstructionError(f"numeric field id {name} does not fit in 32 bits")
        return value

    acc = 0
    for byte in name.encode("utf-8"):
        acc = (acc * HASH_MULTIPLIER + byte) % HASH_MODULUS
    return acc
