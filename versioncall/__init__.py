#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
versioncall public API with lazy imports.

Call a function defined in a Python file under an interpreter that satisfies
a version constraint: in this process when it already qualifies, otherwise in
a freshly spawned interpreter found on the search path.

    >>> from versioncall import call_sync, bind
    >>> call_sync(">=3.9", "tasks/report.py:build", None, "2024-Q4")
    >>> build = bind("3.8", "tasks/report.py:build")
    >>> build("2024-Q4").result()

Lazy loading keeps ``import versioncall`` free of third-party imports, which
matters because child interpreters import parts of this package too.
"""

from importlib import import_module
from typing import Any, Dict, Tuple

from ._version import __version__

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "call": ("versioncall.core.api", "call"),
    "call_sync": ("versioncall.core.api", "call_sync"),
    "call_async": ("versioncall.core.api", "call_async"),
    "bind": ("versioncall.core.api", "bind"),
    "bind_sync": ("versioncall.core.api", "bind_sync"),
    "BoundCaller": ("versioncall.core.api", "BoundCaller"),
    "BoundSyncCaller": ("versioncall.core.api", "BoundSyncCaller"),
    "CallOptions": ("versioncall.core.binding", "CallOptions"),
    "Resolution": ("versioncall.core.binding", "Resolution"),
    "ResolutionState": ("versioncall.core.binding", "ResolutionState"),
    "InvocationDispatcher": ("versioncall.core.dispatcher", "InvocationDispatcher"),
    "VersionLocator": ("versioncall.core.versions", "VersionLocator"),
    "VersionCallError": ("versioncall.core.utils.exceptions", "VersionCallError"),
    "VersionNotFoundError": ("versioncall.core.utils.exceptions", "VersionNotFoundError"),
    "InvalidConstraintError": ("versioncall.core.utils.exceptions", "InvalidConstraintError"),
    "MissingRequiredEnvironmentError": (
        "versioncall.core.utils.exceptions",
        "MissingRequiredEnvironmentError",
    ),
    "TransportError": ("versioncall.core.utils.exceptions", "TransportError"),
    "SerializationError": ("versioncall.core.utils.exceptions", "SerializationError"),
    "WorkerError": ("versioncall.core.utils.exceptions", "WorkerError"),
    "FunctionPlaceholder": ("versioncall.transport.codec", "FunctionPlaceholder"),
}

__all__ = ["__version__", *sorted(_EXPORT_MAP.keys())]


def __getattr__(name: str) -> Any:
    """
    Resolve public API symbols lazily.
    """
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'versioncall' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
