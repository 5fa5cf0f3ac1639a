#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Worker loading and invocation.

A worker reference is a path to a Python source file, optionally followed by
``:attribute``. Without an attribute the module-level ``main`` is used. Shared
by in-process execution and the child bootstrap, so standard library only.
"""

import asyncio
import concurrent.futures
import importlib.util
import inspect
import os
import sys
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

DEFAULT_ATTRIBUTE = "main"

_module_cache: Dict[str, Any] = {}
_module_cache_lock = threading.Lock()


def parse_worker_ref(worker_ref: str) -> Tuple[str, str]:
    """
    Split ``path[:attribute]`` into an absolute path and an attribute name.

    Only a trailing identifier counts as an attribute, so Windows drive
    letters (``C:\\work\\job.py``) are left alone.
    """
    path, sep, attribute = str(worker_ref).rpartition(":")
    if sep and path and attribute.isidentifier():
        return os.path.abspath(path), attribute
    return os.path.abspath(str(worker_ref)), DEFAULT_ATTRIBUTE


def _module_name_for(path: str) -> str:
    stem = os.path.splitext(os.path.basename(path))[0]
    safe = "".join(ch if ch.isalnum() else "_" for ch in stem)
    return "versioncall_worker_{0}_{1:x}".format(safe, abs(hash(path)))


def load_module(path: str, use_cache: bool = True) -> Any:
    """Import a source file by path, once per process when caching."""
    if use_cache:
        with _module_cache_lock:
            cached = _module_cache.get(path)
        if cached is not None:
            return cached

    if not os.path.isfile(path):
        raise FileNotFoundError("Worker file not found: {0}".format(path))

    name = _module_name_for(path)
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError("Cannot load worker from {0}".format(path))
    module = importlib.util.module_from_spec(spec)

    # Sibling imports inside the worker resolve relative to its directory.
    # Appended, so the worker directory never shadows modules already importable.
    worker_dir = os.path.dirname(path)
    if worker_dir not in sys.path:
        sys.path.append(worker_dir)

    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise

    if use_cache:
        with _module_cache_lock:
            module = _module_cache.setdefault(path, module)
    return module


def load_worker(worker_ref: str, use_cache: bool = True) -> Any:
    """Resolve a worker reference to the object it names."""
    path, attribute = parse_worker_ref(worker_ref)
    module = load_module(path, use_cache=use_cache)
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise AttributeError(
            "Worker {0} has no attribute '{1}'".format(path, attribute)
        ) from None


def _settle(value: Any) -> Any:
    if not inspect.isawaitable(value):
        return value
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_await(value))
    # A loop is already running in this thread; drive the awaitable on a
    # private loop in a helper thread instead.
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, _await(value)).result()


async def _await(awaitable: Any) -> Any:
    return await awaitable


def invoke(target: Any, args: Sequence[Any]) -> Any:
    """
    Call a plain worker.

    Non-callable targets are returned as-is; awaitables are run to completion.
    """
    if not callable(target):
        return target
    return _settle(target(*args))


class _CallbackSlot:
    """Receives the first ``callback(error, result)`` made by a worker."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.error: Optional[BaseException] = None
        self.result: Any = None

    def __call__(self, error: Any = None, result: Any = None, *rest: Any) -> None:
        if self._event.is_set():
            return
        if error is not None and not isinstance(error, BaseException):
            error = Exception(str(error))
        self.error = error
        self.result = result
        self._event.set()

    def wait(self, poll_interval: float) -> bool:
        return self._event.wait(poll_interval)


def invoke_with_callback(
    target: Any,
    args: Sequence[Any],
    poll_interval: float = 0.06,
) -> Any:
    """
    Call a worker that reports through a trailing ``callback(error, result)``.

    Blocks until the callback fires, checking every ``poll_interval`` seconds.
    Awaitables returned by the worker are driven so that callbacks scheduled
    on an event loop still fire. There is no timeout.
    """
    if not callable(target):
        return target

    slot = _CallbackSlot()
    call_args: List[Any] = list(args)
    call_args.append(slot)
    _settle(target(*call_args))

    while not slot.wait(poll_interval):
        continue

    if slot.error is not None:
        raise slot.error
    return slot.result


__all__ = [
    "DEFAULT_ATTRIBUTE",
    "parse_worker_ref",
    "load_module",
    "load_worker",
    "invoke",
    "invoke_with_callback",
]
