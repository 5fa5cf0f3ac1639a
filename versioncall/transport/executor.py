#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Remote executor: run one worker call inside another interpreter.

Every call is its own process lifecycle. The request is written to a private
temporary directory next to a staged copy of the child runtime, the
interpreter runs ``child.py`` against it, the parent polls the process every
``poll_interval_ms`` until it exits, then reads the response and removes the
directory. There is no connection reuse and no timeout; a worker that hangs
keeps the caller waiting. If the wait itself is interrupted the child is
killed and reaped before the exception propagates.
"""

import os
import shutil
import subprocess
import sys
import tempfile
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Sequence

from ..core.config import DEFAULT_POLL_INTERVAL_MS
from ..core.utils.exceptions import SerializationError, TransportError
from ..core.utils.logger import ModernLogger
from . import codec, loader

PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CHILD_SCRIPT = os.path.join(PACKAGE_DIR, "transport", "child.py")

# Everything the child bootstrap imports. Standard library only, so any
# interpreter can load these without the caller's site-packages.
RUNTIME_MODULES = (
    "__init__.py",
    "_version.py",
    "core/__init__.py",
    "core/utils/__init__.py",
    "core/utils/exceptions.py",
    "transport/__init__.py",
    "transport/codec.py",
    "transport/loader.py",
    "transport/child.py",
)

_STDERR_TAIL_CHARS = 4000


@dataclass(frozen=True)
class ExecOptions:
    """How to spawn the child interpreter for one call."""

    exec_path: str
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    callbacks: bool = False
    env: Mapping[str, str] = field(default_factory=dict)

    def with_env(self, env: Mapping[str, str]) -> "ExecOptions":
        return replace(self, env=dict(env))


def stage_runtime(destination: str) -> str:
    """
    Copy the child-side modules into ``destination/versioncall``.

    Returns the path of the staged ``child.py``.
    """
    for relative in RUNTIME_MODULES:
        source = os.path.join(PACKAGE_DIR, *relative.split("/"))
        target = os.path.join(destination, "versioncall", *relative.split("/"))
        os.makedirs(os.path.dirname(target), exist_ok=True)
        shutil.copyfile(source, target)
    return os.path.join(destination, "versioncall", "transport", "child.py")


class RemoteExecutor(ModernLogger):
    """
    Spawn-per-call executor.

    ``spawn_count`` counts child processes started by this instance.

    The default child script is staged into each call's private directory
    together with the modules it imports (see ``stage_runtime``); a custom
    ``child_script`` is run as given.
    """

    def __init__(self, child_script: str = CHILD_SCRIPT) -> None:
        super().__init__(name="RemoteExecutor")
        self.child_script = child_script
        self.spawn_count = 0
        self._count_lock = threading.Lock()

    def _spawn(
        self,
        options: ExecOptions,
        child_script: str,
        request_path: str,
        response_path: str,
        stderr_file: Any,
    ) -> subprocess.Popen:
        argv = [options.exec_path, child_script, request_path, response_path]
        self.debug("Spawning %s for %s", options.exec_path, request_path)
        try:
            process = subprocess.Popen(  # noqa: S603
                argv,
                stdin=subprocess.DEVNULL,
                stderr=stderr_file,
                env=dict(options.env),
            )
        except OSError as exc:
            raise TransportError(
                "Failed to start {0}: {1}".format(options.exec_path, exc),
                exec_path=options.exec_path,
                cause=exc,
            ) from exc
        with self._count_lock:
            self.spawn_count += 1
        return process

    def _wait(self, process: subprocess.Popen, poll_interval_ms: int) -> int:
        interval = max(poll_interval_ms, 1) / 1000.0
        while True:
            code = process.poll()
            if code is not None:
                return code
            time.sleep(interval)

    def _reap(self, process: subprocess.Popen) -> None:
        if process.poll() is None:
            self.warning("Killing child %s after an interrupted wait", process.pid)
            process.kill()
        process.wait()

    def execute(self, options: ExecOptions, worker_ref: str, args: Sequence[Any]) -> Any:
        """
        Call ``worker_ref`` with ``args`` under ``options.exec_path``.

        Returns the worker's value. Worker exceptions are re-raised as
        themselves when they are built-in types, otherwise as ``WorkerError``
        with the same message.

        Raises:
            SerializationError: arguments or the result could not cross the wire.
            TransportError: the child could not be started or died without
                answering.
        """
        worker_path, attribute = loader.parse_worker_ref(worker_ref)
        request = {
            "worker": "{0}:{1}".format(worker_path, attribute),
            "args": list(args),
            "callbacks": bool(options.callbacks),
            "poll_interval_ms": options.poll_interval_ms,
        }
        payload = codec.dumps(request)

        workdir = tempfile.mkdtemp(prefix="versioncall-")
        try:
            request_path = os.path.join(workdir, "request.json")
            response_path = os.path.join(workdir, "response.json")
            stderr_path = os.path.join(workdir, "stderr.log")
            with open(request_path, "wb") as handle:
                handle.write(payload)

            if self.child_script == CHILD_SCRIPT:
                child_script = stage_runtime(os.path.join(workdir, "runtime"))
            else:
                child_script = self.child_script

            with open(stderr_path, "wb") as stderr_file:
                process = self._spawn(
                    options, child_script, request_path, response_path, stderr_file
                )
                try:
                    exit_code = self._wait(process, options.poll_interval_ms)
                except BaseException:
                    self._reap(process)
                    raise

            with open(stderr_path, "r", encoding="utf-8", errors="replace") as handle:
                stderr_text = handle.read()

            if not os.path.exists(response_path):
                self.error(
                    "Child %s exited with %s without a response", options.exec_path, exit_code
                )
                message = "Worker process {0} exited with code {1} without a response".format(
                    options.exec_path, exit_code
                )
                tail = stderr_text[-_STDERR_TAIL_CHARS:].strip()
                if tail:
                    message = "{0}: {1}".format(message, tail)
                raise TransportError(
                    message,
                    exec_path=options.exec_path,
                    exit_code=exit_code,
                    stderr=stderr_text,
                )

            if stderr_text:
                sys.stderr.write(stderr_text)
                sys.stderr.flush()

            with open(response_path, "rb") as handle:
                response = codec.loads(handle.read())
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        return self._unwrap(response, options)

    def _unwrap(self, response: Any, options: ExecOptions) -> Any:
        if not isinstance(response, dict) or "ok" not in response:
            raise TransportError(
                "Malformed response from {0}".format(options.exec_path),
                exec_path=options.exec_path,
            )
        if response["ok"]:
            return response.get("value")
        error = response.get("error") or {}
        if response.get("transport"):
            raise SerializationError(operation="serialize", message=error.get("message", ""))
        raise codec.decode_error(error)


_default_executor: Optional[RemoteExecutor] = None


def get_default_executor() -> RemoteExecutor:
    global _default_executor
    if _default_executor is None:
        _default_executor = RemoteExecutor()
    return _default_executor


def function_exec(options: ExecOptions, worker_ref: str, *args: Any) -> Any:
    """Module-level shortcut for ``get_default_executor().execute(...)``."""
    return get_default_executor().execute(options, worker_ref, args)
