"""Utility functions for didl.

This module provides the field-name hash used for record and variant ids.
"""

from __future__ import annotations

from .hashing import idl_hash

__all__ = [
    "idl_hash",
]
