#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Value-preserving wire codec shared by the caller and the child interpreter.

JSON is the carrier because every CPython release can read it. Values JSON
cannot express natively are wrapped in ``{"__type__": ..., ...}`` records and
re-created on the other side, so a round trip preserves structural equality
(not identity). Callables cross the boundary as opaque ``FunctionPlaceholder``
values.

Standard library only: this module is imported by ``child.py`` under the
target interpreter.
"""

import base64
import datetime
import decimal
import json
import pathlib
import traceback
import uuid
from typing import Any, Dict, List, Optional
from urllib.parse import ParseResult, SplitResult, urlparse, urlsplit

from ..core.utils.exceptions import SerializationError, WorkerError

TYPE_TAG = "__type__"


class FunctionPlaceholder:
    """
    Stand-in for a callable that was passed across the process boundary.

    Placeholders compare equal by qualified name and cannot be invoked.
    """

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        raise TypeError(
            "'{0}' was passed across an interpreter boundary and cannot be called".format(
                self.name
            )
        )

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, FunctionPlaceholder) and other.name == self.name

    def __hash__(self) -> int:
        return hash(("FunctionPlaceholder", self.name))

    def __repr__(self) -> str:
        return "FunctionPlaceholder({0!r})".format(self.name)


def _callable_name(obj: Any) -> str:
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    if name is None:
        name = type(obj).__name__
    return str(name)


class JSONBackend:
    """JSON-based serialization backend with extended type support"""

    def _encode_recursive(self, obj: Any) -> Any:
        """
        Recursively encode values so extended types are preserved.

        ``json.dumps(..., default=...)`` never sees tuples or namedtuples
        because they are natively converted to arrays, so everything is
        pre-encoded here instead.
        """
        if obj is None or isinstance(obj, (bool, int, float, str)):
            return obj
        if isinstance(obj, FunctionPlaceholder):
            return {TYPE_TAG: "function", "name": obj.name}
        if isinstance(obj, dict):
            if all(isinstance(k, str) for k in obj) and TYPE_TAG not in obj:
                return {k: self._encode_recursive(v) for k, v in obj.items()}
            return {
                TYPE_TAG: "map",
                "data": [
                    [self._encode_recursive(k), self._encode_recursive(v)]
                    for k, v in obj.items()
                ],
            }
        if isinstance(obj, list):
            return [self._encode_recursive(item) for item in obj]
        # URL records are namedtuples, check them before plain tuples.
        if isinstance(obj, SplitResult):
            return {TYPE_TAG: "url", "kind": "split", "data": obj.geturl()}
        if isinstance(obj, ParseResult):
            return {TYPE_TAG: "url", "kind": "parse", "data": obj.geturl()}
        if isinstance(obj, tuple):
            return {TYPE_TAG: "tuple", "data": [self._encode_recursive(i) for i in obj]}
        if isinstance(obj, frozenset):
            return {TYPE_TAG: "frozenset", "data": [self._encode_recursive(i) for i in obj]}
        if isinstance(obj, set):
            return {TYPE_TAG: "set", "data": [self._encode_recursive(i) for i in obj]}
        if isinstance(obj, complex):
            return {TYPE_TAG: "complex", "real": obj.real, "imag": obj.imag}
        if isinstance(obj, (bytes, bytearray)):
            return {
                TYPE_TAG: "bytes",
                "data": base64.b64encode(bytes(obj)).decode("ascii"),
            }
        if isinstance(obj, datetime.datetime):
            return {TYPE_TAG: "datetime", "data": obj.isoformat()}
        if isinstance(obj, datetime.date):
            return {TYPE_TAG: "date", "data": obj.isoformat()}
        if isinstance(obj, datetime.time):
            return {TYPE_TAG: "time", "data": obj.isoformat()}
        if isinstance(obj, datetime.timedelta):
            return {
                TYPE_TAG: "timedelta",
                "days": obj.days,
                "seconds": obj.seconds,
                "microseconds": obj.microseconds,
            }
        if isinstance(obj, decimal.Decimal):
            return {TYPE_TAG: "decimal", "data": str(obj)}
        if isinstance(obj, uuid.UUID):
            return {TYPE_TAG: "uuid", "data": str(obj)}
        if isinstance(obj, pathlib.PurePath):
            flavour = "windows" if isinstance(obj, pathlib.PureWindowsPath) else "posix"
            return {TYPE_TAG: "path", "flavour": flavour, "data": str(obj)}
        if callable(obj):
            return {TYPE_TAG: "function", "name": _callable_name(obj)}
        raise TypeError("Object of type {0} is not serializable".format(type(obj).__name__))

    def _custom_decoder(self, obj: Dict[str, Any]) -> Any:
        """Re-create one tagged value; nested values are already decoded."""
        type_name = obj[TYPE_TAG]
        if type_name == "tuple":
            return tuple(obj["data"])
        if type_name == "set":
            return set(obj["data"])
        if type_name == "frozenset":
            return frozenset(obj["data"])
        if type_name == "map":
            return {_hashable(k): v for k, v in obj["data"]}
        if type_name == "complex":
            return complex(obj["real"], obj["imag"])
        if type_name == "bytes":
            return base64.b64decode(obj["data"].encode("ascii"))
        if type_name == "datetime":
            return datetime.datetime.fromisoformat(obj["data"])
        if type_name == "date":
            return datetime.date.fromisoformat(obj["data"])
        if type_name == "time":
            return datetime.time.fromisoformat(obj["data"])
        if type_name == "timedelta":
            return datetime.timedelta(
                days=obj["days"], seconds=obj["seconds"], microseconds=obj["microseconds"]
            )
        if type_name == "decimal":
            return decimal.Decimal(obj["data"])
        if type_name == "uuid":
            return uuid.UUID(obj["data"])
        if type_name == "path":
            if obj["flavour"] == "windows":
                return pathlib.PureWindowsPath(obj["data"])
            return pathlib.PurePosixPath(obj["data"])
        if type_name == "url":
            if obj["kind"] == "parse":
                return urlparse(obj["data"])
            return urlsplit(obj["data"])
        if type_name == "function":
            return FunctionPlaceholder(obj["name"])
        raise ValueError("Unknown wire type tag: {0}".format(type_name))

    def _decode_recursive(self, obj: Any) -> Any:
        if isinstance(obj, list):
            return [self._decode_recursive(item) for item in obj]
        if not isinstance(obj, dict):
            return obj
        if TYPE_TAG in obj:
            decoded = {
                k: (v if k == TYPE_TAG else self._decode_recursive(v))
                for k, v in obj.items()
            }
            return self._custom_decoder(decoded)
        return {k: self._decode_recursive(v) for k, v in obj.items()}

    def serialize(self, obj: Any) -> bytes:
        try:
            encoded_obj = self._encode_recursive(obj)
            return json.dumps(encoded_obj, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(
                operation="serialize",
                message="JSON serialization failed: {0}".format(e),
                data_type=type(obj).__name__,
                cause=e,
            ) from e

    def deserialize(self, data: bytes) -> Any:
        if not data:
            return None
        try:
            return self._decode_recursive(json.loads(data.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as e:
            raise SerializationError(
                operation="deserialize",
                message="JSON deserialization failed: {0}".format(e),
                cause=e,
            ) from e


def _hashable(value: Any) -> Any:
    """Map keys decoded from lists must be hashable again."""
    if isinstance(value, list):
        return tuple(_hashable(v) for v in value)
    if isinstance(value, dict):
        return tuple(sorted((k, _hashable(v)) for k, v in value.items()))
    if isinstance(value, set):
        return frozenset(value)
    return value


_default_backend = JSONBackend()


def dumps(obj: Any) -> bytes:
    return _default_backend.serialize(obj)


def loads(data: bytes) -> Any:
    return _default_backend.deserialize(data)


def _plain_args(args: tuple) -> Optional[List[Any]]:
    """Exception args worth sending, or None when any of them is not a scalar."""
    plain: List[Any] = []
    for arg in args:
        if arg is not None and not isinstance(arg, (bool, int, float, str)):
            return None
        plain.append(arg)
    return plain


def encode_error(exc: BaseException) -> Dict[str, Any]:
    """Describe an exception raised by a worker for the trip back to the caller."""
    record: Dict[str, Any] = {
        "type": type(exc).__name__,
        "module": type(exc).__module__,
        "message": str(exc),
        "traceback": "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ),
    }
    args = _plain_args(exc.args)
    if args is not None:
        record["args"] = args
    return record


def decode_error(record: Dict[str, Any]) -> BaseException:
    """
    Re-create a worker exception on the caller side.

    Built-in exception types come back as themselves with the same args;
    everything else becomes a ``WorkerError`` carrying the same message.
    """
    type_name = record.get("type", "Exception")
    message = record.get("message", "")
    remote_traceback = record.get("traceback")

    if record.get("module") == "builtins":
        import builtins

        exc_type = getattr(builtins, type_name, None)
        if isinstance(exc_type, type) and issubclass(exc_type, Exception):
            args = record.get("args")
            try:
                exc = exc_type(*args) if args is not None else exc_type(message)
            except TypeError:
                exc = None
            if exc is not None and str(exc) == message:
                setattr(exc, "remote_traceback", remote_traceback)
                return exc

    return WorkerError(
        message,
        remote_type=type_name,
        remote_module=record.get("module"),
        remote_traceback=remote_traceback,
    )


__all__ = [
    "TYPE_TAG",
    "FunctionPlaceholder",
    "JSONBackend",
    "dumps",
    "loads",
    "encode_error",
    "decode_error",
]
