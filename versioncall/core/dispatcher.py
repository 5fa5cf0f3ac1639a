#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Invocation dispatcher: decide where a call runs and run it there.

Resolution rules, evaluated once per binding:

1. If this interpreter satisfies the constraint, the binding is LOCAL.
2. Otherwise the version locator searches the binding's environment; the
   first qualifying interpreter makes the binding REMOTE. Nothing found
   raises ``VersionNotFoundError``.

Execution rules, evaluated per call:

- LOCAL, plain worker: import the worker here and call it directly.
- LOCAL, callback-style worker: run it through the remote executor with
  ``sys.executable``, so callback workers follow one contract everywhere.
- REMOTE: run it through the remote executor with the located interpreter,
  optionally with the spawn environment applied.

Errors from the locator, the loader, the executor and the worker propagate
unchanged.
"""

import sys
from typing import Any, Optional, Sequence

from ..transport import loader
from ..transport.executor import ExecOptions, RemoteExecutor, get_default_executor
from .binding import Binding, Resolution
from .config import VersionCallConfig, get_config
from .spawn import spawn_options
from .utils.exceptions import MissingRequiredEnvironmentError
from .utils.logger import ModernLogger
from .versions import VersionLocator, current_version, path_key, resolve_version, satisfies


class InvocationDispatcher(ModernLogger):
    """
    Routes binding invocations to the current interpreter or a located one.

    The locator and executor are shared, stateless services; all per-target
    state lives in the ``Binding``.
    """

    def __init__(
        self,
        locator: Optional[VersionLocator] = None,
        executor: Optional[RemoteExecutor] = None,
        config: Optional[VersionCallConfig] = None,
    ) -> None:
        super().__init__(name="InvocationDispatcher")
        self.locator = locator if locator is not None else VersionLocator()
        self._executor = executor
        self._config = config

    @property
    def executor(self) -> RemoteExecutor:
        if self._executor is None:
            self._executor = get_default_executor()
        return self._executor

    @property
    def config(self) -> VersionCallConfig:
        return self._config if self._config is not None else get_config()

    def _compute_resolution(self, binding: Binding) -> Resolution:
        version = current_version()
        if satisfies(version, binding.constraint):
            self.debug("%r satisfied by running interpreter %s", binding.constraint, version)
            return Resolution.local()

        resolved = resolve_version(binding.constraint, binding.env, locator=self.locator)
        self.debug(
            "%r resolved to %s (install root %s)",
            binding.constraint,
            resolved.exec_path,
            resolved.install_path,
        )
        return Resolution.remote(resolved.exec_path, resolved.install_path)

    def resolve(self, binding: Binding) -> Resolution:
        """Resolve ``binding`` on first use; later calls reuse the frozen result."""
        return binding.resolve(self._compute_resolution)

    def _exec_options(self, exec_path: str, binding: Binding) -> ExecOptions:
        return ExecOptions(
            exec_path=exec_path,
            poll_interval_ms=self.config.poll_interval_ms,
            callbacks=binding.options.callbacks,
            env=binding.env,
        )

    def execute(self, binding: Binding, args: Sequence[Any]) -> Any:
        """Run one invocation of ``binding`` and return the worker's value."""
        resolution = self.resolve(binding)
        call_args = list(args)

        if resolution.is_local:
            if not binding.options.callbacks:
                target = loader.load_worker(binding.worker_ref)
                return loader.invoke(target, call_args)

            key = path_key(binding.env)
            if binding.env_supplied and not binding.env.get(key):
                raise MissingRequiredEnvironmentError(key)
            options = self._exec_options(sys.executable, binding)
            return self.executor.execute(options, binding.worker_ref, call_args)

        options = self._exec_options(resolution.exec_path, binding)
        if binding.options.spawn_options:
            options = spawn_options(resolution.install_path, options)
        return self.executor.execute(options, binding.worker_ref, call_args)


_default_dispatcher: Optional[InvocationDispatcher] = None


def get_default_dispatcher() -> InvocationDispatcher:
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = InvocationDispatcher()
    return _default_dispatcher
