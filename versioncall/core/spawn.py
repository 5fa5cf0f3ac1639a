#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Spawn environment builder.

A worker routed to another interpreter often starts processes of its own
(``python -m pip``, test runners, build hooks). ``spawn_options`` rewrites the
environment so that bare ``python`` lookups made by those grandchildren find
the same installation the worker runs on.
"""

import os
from typing import Dict, List

from ..transport.executor import ExecOptions
from .versions import IS_WINDOWS, path_key

# Variables that pin an interpreter to some other installation.
_STRIPPED_VARIABLES = ("PYTHONHOME", "PYTHONEXECUTABLE", "__PYVENV_LAUNCHER__")


def script_dirs(install_path: str, windows: bool = IS_WINDOWS) -> List[str]:
    """Directories holding the installation's executables, in lookup order."""
    if windows:
        return [install_path, os.path.join(install_path, "Scripts")]
    return [os.path.join(install_path, "bin")]


def is_virtualenv(install_path: str) -> bool:
    return os.path.isfile(os.path.join(install_path, "pyvenv.cfg"))


def spawn_env(install_path: str, env: Dict[str, str], windows: bool = IS_WINDOWS) -> Dict[str, str]:
    """Return a copy of ``env`` adjusted for ``install_path``."""
    result = dict(env)
    key = path_key(result)

    prefix = script_dirs(install_path, windows)
    existing = [p for p in result.get(key, "").split(os.pathsep) if p and p not in prefix]
    result[key] = os.pathsep.join(prefix + existing)

    for variable in _STRIPPED_VARIABLES:
        result.pop(variable, None)

    if is_virtualenv(install_path):
        result["VIRTUAL_ENV"] = install_path
    else:
        result.pop("VIRTUAL_ENV", None)
    return result


def spawn_options(install_path: str, options: ExecOptions) -> ExecOptions:
    """
    Build execution options for running under ``install_path``.

    ``options.env`` is copied, never modified.
    """
    return options.with_env(spawn_env(install_path, dict(options.env)))
