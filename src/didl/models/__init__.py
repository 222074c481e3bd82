"""Pydantic models for didl.

This module provides the IDLModel class and field utilities for describing
record types with Pydantic.
"""

from __future__ import annotations

from .base import IDLModel
from .fields import FixedFloat, FixedInt, Natural

__all__ = [
    "IDLModel",
    "FixedFloat",
    "FixedInt",
    "Natural",
]
