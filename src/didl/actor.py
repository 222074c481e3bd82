"""Actor interfaces.

An actor interface is a named set of function signatures. It is what a client
needs to encode calls to a service and decode its replies, and it can be
turned into the ``Service`` descriptor that references to that service carry.

Example:
    >>> Counter = ActorInterface({
    ...     "get": Fn([], [Nat], ["query"]),
    ...     "add": Fn([Nat], [Nat]),
    ... })
    >>> data = Counter.encode_call("add", [5])
    >>> Counter.decode_call("add", data)
    [5]
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any

from structlog import get_logger

from .codec.config import DecoderConfig
from .codec.types import Func, Service, Type
from .exceptions import ConstructionError, MethodNotFound

logger = get_logger()

FunctionSignature = Func


def Fn(
    arg_types: Sequence[Type] | None = None,
    ret_types: Sequence[Type] | None = None,
    annotations: Sequence[str] = (),
) -> Func:
    """Build a function signature.

    Args:
        arg_types: Argument types, in order
        ret_types: Result types, in order
        annotations: Any of ``"query"``, ``"oneway"``, ``"composite_query"``

    Raises:
        ConstructionError: On an unknown annotation, or a oneway function
            with results
    """
    return Func(arg_types, ret_types, annotations)


class ActorInterface:
    """Immutable mapping of method names to function signatures.

    Methods can be given as a mapping, or as an object whose public
    attributes are ``Func`` instances.
    """

    __slots__ = ("_fields",)

    def __init__(self, methods: Mapping[str, Func] | Any) -> None:
        if not isinstance(methods, Mapping):
            methods = {
                name: value
                for name, value in vars(methods).items()
                if not name.startswith("_") and isinstance(value, Func)
            }
        for name, signature in methods.items():
            if not isinstance(name, str):
                raise ConstructionError(f"method names must be str, got {name!r}")
            if not isinstance(signature, Func):
                raise ConstructionError(f"method {name!r} must be a function signature, got {signature!r}")
        object.__setattr__(self, "_fields", MappingProxyType(dict(methods)))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def fields(self) -> Mapping[str, Func]:
        """Read-only view of method name to signature."""
        return self._fields

    def methods(self) -> list[str]:
        """Method names in canonical (UTF-8 byte) order."""
        return sorted(self._fields, key=lambda name: name.encode("utf-8"))

    def __getitem__(self, method: str) -> Func:
        try:
            return self._fields[method]
        except KeyError:
            raise MethodNotFound(method) from None

    def __contains__(self, method: object) -> bool:
        return method in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self.methods())

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"<ActorInterface {', '.join(self.methods())}>"

    def service_type(self) -> Service:
        """Return the ``Service`` descriptor for references to this actor."""
        return Service(dict(self._fields))

    def encode_call(self, method: str, args: Sequence[Any]) -> bytes:
        """Encode the arguments of a call to ``method``.

        Raises:
            MethodNotFound: If the interface has no such method
            TypeMismatch: If the arguments don't match the signature
        """
        signature = self[method]
        data = signature.encode_args(args)
        logger.debug("call encoded", method=method, size=len(data))
        return data

    def decode_call(self, method: str, data: bytes, *, config: DecoderConfig | None = None) -> list[Any]:
        """Decode the arguments of a call to ``method``."""
        return self[method].decode_args(data, config=config)

    def encode_reply(self, method: str, results: Sequence[Any]) -> bytes:
        """Encode the results of ``method``."""
        signature = self[method]
        data = signature.encode_rets(results)
        logger.debug("reply encoded", method=method, size=len(data))
        return data

    def decode_reply(self, method: str, data: bytes, *, config: DecoderConfig | None = None) -> list[Any]:
        """Decode the results of ``method``."""
        return self[method].decode_rets(data, config=config)
