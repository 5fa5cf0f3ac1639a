#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Utility exports for versioncall core (lazy-loaded).

The exceptions module is imported by child interpreters that may not have
``rich`` installed, so nothing here is imported eagerly.
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "ModernLogger": ("versioncall.core.utils.logger", "ModernLogger"),
    "ExceptionFormatter": ("versioncall.core.utils.exceptions", "ExceptionFormatter"),
    "OnceGuard": ("versioncall.core.utils.concurrency", "OnceGuard"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError(
            "module 'versioncall.core.utils' has no attribute '{0}'".format(name)
        )

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
