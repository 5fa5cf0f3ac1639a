#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
versioncall core module exports (lazy-loaded).
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "call": ("versioncall.core.api", "call"),
    "call_sync": ("versioncall.core.api", "call_sync"),
    "call_async": ("versioncall.core.api", "call_async"),
    "bind": ("versioncall.core.api", "bind"),
    "bind_sync": ("versioncall.core.api", "bind_sync"),
    "BoundCaller": ("versioncall.core.api", "BoundCaller"),
    "BoundSyncCaller": ("versioncall.core.api", "BoundSyncCaller"),
    "Binding": ("versioncall.core.binding", "Binding"),
    "CallOptions": ("versioncall.core.binding", "CallOptions"),
    "Resolution": ("versioncall.core.binding", "Resolution"),
    "ResolutionState": ("versioncall.core.binding", "ResolutionState"),
    "InvocationDispatcher": ("versioncall.core.dispatcher", "InvocationDispatcher"),
    "VersionLocator": ("versioncall.core.versions", "VersionLocator"),
    "satisfies": ("versioncall.core.versions", "satisfies"),
    "spawn_options": ("versioncall.core.spawn", "spawn_options"),
    "VersionCallConfig": ("versioncall.core.config", "VersionCallConfig"),
    "get_config": ("versioncall.core.config", "get_config"),
    "create_config": ("versioncall.core.config", "create_config"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'versioncall.core' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
