"""Base model class bridging Pydantic models and the wire format.

This module provides the IDLModel class. A subclass describes a record type
with ordinary annotations; its descriptor is derived from the fields, so the
same class validates application data and encodes or decodes it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from ..codec.config import DecoderConfig
from ..codec.schema import ModelSchema, idl_value, python_value
from ..codec.types import Type


class IDLModel(BaseModel):
    """Base class for models that encode as records.

    Field names become record field names; annotations map to descriptors
    (see :func:`didl.codec.schema.type_for_annotation`).

    Example:
        >>> from typing import Optional
        >>> class Person(IDLModel):
        ...     name: str
        ...     age: Optional[int] = None
        >>> Person.idl_type().name
        'record {age:opt int; name:text}'
        >>> Person.decode(Person(name="ada", age=36).encode())
        Person(name='ada', age=36)
    """

    model_config = ConfigDict(
        # Validate on assignment
        validate_assignment=True,
        # Forbid extra fields not defined in schema
        extra="forbid",
    )

    @classmethod
    def idl_type(cls) -> Type:
        """Return the record descriptor for this model.

        Raises:
            ConstructionError: If a field annotation has no descriptor
        """
        return ModelSchema.from_model(cls).idl_type

    def to_idl(self) -> dict[str, Any]:
        """Return this instance as a value accepted by :meth:`idl_type`."""
        return idl_value(type(self), self)

    @classmethod
    def from_idl(cls, value: dict[str, Any]) -> Any:
        """Build an instance from a decoded record value."""
        return python_value(cls, value)

    def encode(self) -> bytes:
        """Encode this instance as a single-value message."""
        return self.idl_type().encode(self.to_idl())

    @classmethod
    def decode(cls, data: bytes, *, config: DecoderConfig | None = None) -> Any:
        """Decode a single-value message into an instance of this model.

        The sender's record may have extra fields (skipped) or lack optional
        ones (left at ``None``).
        """
        return cls.from_idl(cls.idl_type().decode(data, config=config))
