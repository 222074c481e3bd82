"""Limits applied while decoding untrusted messages.

This module provides the configuration dataclass consulted by the decoder.
Nothing here is read from the environment; callers pass a config explicitly or
get the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DecoderConfig:
    """Configuration for decoding.

    Attributes:
        max_leb128_bytes: Maximum encoded width of lengths, counts, variant
            indices and type references (default 10, enough for any 64-bit
            value). ``nat`` and ``int`` values are never bounded.

        max_table_entries: Maximum number of entries accepted in a message's
            type table (default 10000).

        max_zero_sized_elements: Maximum length of a vector whose elements
            occupy no bytes on the wire (``vec null``, ``vec record {}``),
            default 2**20. Other vectors are bounded by the input length.

    Examples:
        ```python
        from didl import DecoderConfig, decode, Nat

        strict = DecoderConfig(max_table_entries=64, max_zero_sized_elements=1024)
        values = decode([Nat], data, config=strict)
        ```
    """

    max_leb128_bytes: int = 10
    max_table_entries: int = 10_000
    max_zero_sized_elements: int = 1 << 20

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.max_leb128_bytes <= 0:
            raise ValueError(f"max_leb128_bytes must be > 0, got {self.max_leb128_bytes}")

        if self.max_table_entries < 0:
            raise ValueError(f"max_table_entries must be >= 0, got {self.max_table_entries}")

        if self.max_zero_sized_elements < 0:
            raise ValueError(
                f"max_zero_sized_elements must be >= 0, got {self.max_zero_sized_elements}"
            )


DEFAULT_CONFIG = DecoderConfig()
