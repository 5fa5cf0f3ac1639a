#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exception hierarchy for versioncall.

This module only depends on the standard library: it is imported by the child
bootstrap running inside whichever interpreter the call was routed to.

Taxonomy:
- ``InvalidConstraintError``: the version constraint could not be parsed
- ``VersionNotFoundError``: no interpreter on the search path satisfies it
- ``MissingRequiredEnvironmentError``: a caller supplied environment lacks
  the executable search path variable needed to spawn the current interpreter
- ``TransportError`` / ``SerializationError``: the subprocess round trip failed
- ``WorkerError``: the worker raised an exception whose type cannot be
  re-created on the caller side
"""

import traceback
from typing import Any, Dict, List, Optional


class VersionCallError(Exception):
    """
    Base class for all versioncall errors.

    ``str(error)`` is always the bare message so callers can compare it
    verbatim; structured context lives in ``details``.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.cause = cause

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON friendly description of the error."""
        payload: Dict[str, Any] = {
            "type": type(self).__name__,
            "message": self.message,
        }
        if self.details:
            payload["details"] = dict(self.details)
        if self.cause is not None:
            payload["cause"] = "{0}: {1}".format(type(self.cause).__name__, self.cause)
        return payload


class InvalidConstraintError(VersionCallError, ValueError):
    """The version constraint is not a version tag or range expression."""

    def __init__(self, constraint: str, reason: Optional[str] = None) -> None:
        message = 'Invalid version constraint "{0}"'.format(constraint)
        if reason:
            message = "{0}: {1}".format(message, reason)
        super().__init__(message, details={"constraint": constraint})
        self.constraint = constraint


class VersionNotFoundError(VersionCallError, LookupError):
    """No interpreter on the search path satisfies the constraint."""

    def __init__(self, constraint: str, path_key: str = "PATH") -> None:
        super().__init__(
            'No Python matching "{0}" found in {1}'.format(constraint, path_key),
            details={"constraint": constraint, "path_key": path_key},
        )
        self.constraint = constraint
        self.path_key = path_key


class MissingRequiredEnvironmentError(VersionCallError, KeyError):
    """A caller supplied environment is missing a variable the call needs."""

    def __init__(self, variable: str) -> None:
        super().__init__(
            "options.env missing required {0}".format(variable),
            details={"variable": variable},
        )
        self.variable = variable


class TransportError(VersionCallError):
    """Spawning, feeding or reading the child interpreter failed."""

    def __init__(
        self,
        message: str,
        exec_path: Optional[str] = None,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if exec_path is not None:
            details["exec_path"] = exec_path
        if exit_code is not None:
            details["exit_code"] = exit_code
        super().__init__(message, details=details, cause=cause)
        self.exec_path = exec_path
        self.exit_code = exit_code
        self.stderr = stderr


class SerializationError(TransportError):
    """A value could not be encoded for, or decoded from, the wire."""

    def __init__(
        self,
        operation: str,
        message: str,
        data_type: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.operation = operation
        self.data_type = data_type
        self.details["operation"] = operation
        if data_type is not None:
            self.details["data_type"] = data_type


class WorkerError(VersionCallError):
    """
    Exception raised by a worker in another interpreter.

    Used when the original exception type is not importable on the caller
    side. The message is kept verbatim; the original type is exposed through
    ``remote_type`` and ``remote_module``.
    """

    def __init__(
        self,
        message: str,
        remote_type: Optional[str] = None,
        remote_module: Optional[str] = None,
        remote_traceback: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            details={"remote_type": remote_type, "remote_module": remote_module},
        )
        self.remote_type = remote_type
        self.remote_module = remote_module
        self.remote_traceback = remote_traceback


class ExceptionFormatter:
    """Helpers to render exceptions for logs and CLI output."""

    @staticmethod
    def format_exception_summary(exc: BaseException) -> str:
        return "{0}: {1}".format(type(exc).__name__, exc)

    @staticmethod
    def format_exception_chain(exc: BaseException) -> List[str]:
        chain: List[str] = []
        seen = set()
        current: Optional[BaseException] = exc
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            chain.append(ExceptionFormatter.format_exception_summary(current))
            current = current.__cause__ or current.__context__
        return chain

    @staticmethod
    def format_exception(exc: BaseException) -> str:
        text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        remote_traceback = getattr(exc, "remote_traceback", None)
        if remote_traceback:
            text = "{0}\nRemote traceback:\n{1}".format(text, remote_traceback)
        return text


__all__ = [
    "VersionCallError",
    "InvalidConstraintError",
    "VersionNotFoundError",
    "MissingRequiredEnvironmentError",
    "TransportError",
    "SerializationError",
    "WorkerError",
    "ExceptionFormatter",
]
