#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Cross-interpreter transport (lazy-loaded).

``codec`` and ``loader`` are standard library only and are imported by the
child bootstrap; the executor pulls in logging and is only loaded on demand.
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "ExecOptions": ("versioncall.transport.executor", "ExecOptions"),
    "RemoteExecutor": ("versioncall.transport.executor", "RemoteExecutor"),
    "function_exec": ("versioncall.transport.executor", "function_exec"),
    "stage_runtime": ("versioncall.transport.executor", "stage_runtime"),
    "get_default_executor": ("versioncall.transport.executor", "get_default_executor"),
    "FunctionPlaceholder": ("versioncall.transport.codec", "FunctionPlaceholder"),
    "JSONBackend": ("versioncall.transport.codec", "JSONBackend"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError(
            "module 'versioncall.transport' has no attribute '{0}'".format(name)
        )

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
