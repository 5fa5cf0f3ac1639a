#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for invocation dispatch with fake locator and executor services.
"""

import os
import sys
import threading

import pytest

from conftest import UNSATISFIABLE, FakeExecutor, FakeLocator, data_path
from versioncall.core.api import bind, bind_sync, call_sync
from versioncall.core.binding import Binding, ResolutionState
from versioncall.core.config import VersionCallConfig
from versioncall.core.dispatcher import InvocationDispatcher
from versioncall.core.utils.exceptions import (
    MissingRequiredEnvironmentError,
    TransportError,
    VersionNotFoundError,
)
from versioncall.core.versions import current_version, path_key

REMOTE_PYTHON = os.path.join(os.sep, "opt", "python", "3.99", "bin", "python3.99")
REMOTE_ROOT = os.path.dirname(os.path.dirname(REMOTE_PYTHON))


def _dispatcher(locator=None, executor=None):
    return InvocationDispatcher(
        locator=locator or FakeLocator(REMOTE_PYTHON),
        executor=executor or FakeExecutor(result="remote-value"),
        config=VersionCallConfig(poll_interval_ms=15),
    )


@pytest.mark.parametrize("constraint", [current_version(), ">0", ">=3", "{0}.{1}".format(*sys.version_info[:2])])
def test_satisfied_constraint_runs_locally_without_spawning(constraint):
    locator = FakeLocator(REMOTE_PYTHON)
    executor = FakeExecutor()
    dispatcher = _dispatcher(locator, executor)

    caller = bind_sync(constraint, data_path("return_arguments.py"), dispatcher=dispatcher)

    assert caller("a", 1) == ["a", 1]
    assert caller.resolution.state is ResolutionState.LOCAL
    assert executor.spawn_count == 0
    assert locator.calls == []


def test_local_non_callable_attribute_is_returned_as_value():
    dispatcher = _dispatcher()

    result = call_sync(">0", data_path("return_arguments.py") + ":ANSWER", None, dispatcher=dispatcher)

    assert result == 42


def test_local_async_worker_is_driven_to_completion():
    dispatcher = _dispatcher()

    assert call_sync(">0", data_path("async_worker.py"), None, 21, dispatcher=dispatcher) == 42


def test_remote_resolution_happens_once_per_binding():
    locator = FakeLocator(REMOTE_PYTHON)
    executor = FakeExecutor(result="remote-value")
    caller = bind_sync(UNSATISFIABLE, data_path("return_arguments.py"), dispatcher=_dispatcher(locator, executor))

    results = [caller(i) for i in range(3)]

    assert results == ["remote-value"] * 3
    assert len(locator.calls) == 1
    assert executor.spawn_count == 3
    assert caller.resolution.exec_path == REMOTE_PYTHON
    assert caller.resolution.install_path == REMOTE_ROOT
    assert [request[2] for request in executor.requests] == [[0], [1], [2]]


def test_separate_bindings_resolve_independently():
    locator = FakeLocator(REMOTE_PYTHON)
    dispatcher = _dispatcher(locator)

    bind_sync(UNSATISFIABLE, data_path("return_arguments.py"), dispatcher=dispatcher)()
    bind_sync(UNSATISFIABLE, data_path("return_arguments.py"), dispatcher=dispatcher)()

    assert len(locator.calls) == 2


def test_concurrent_first_use_locates_once():
    locator = FakeLocator(REMOTE_PYTHON)
    executor = FakeExecutor(result="ok")
    caller = bind(UNSATISFIABLE, data_path("return_arguments.py"), dispatcher=_dispatcher(locator, executor))
    start = threading.Barrier(6)
    futures = []

    def invoke():
        start.wait()
        futures.append(caller("x"))

    threads = [threading.Thread(target=invoke) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert [future.result() for future in futures] == ["ok"] * 6
    assert len(locator.calls) == 1
    assert executor.spawn_count == 6


def test_remote_applies_spawn_environment_by_default():
    executor = FakeExecutor()
    key = path_key()
    env = {key: "/usr/bin", "PYTHONHOME": "/elsewhere", "TEST_ENV_VAR": "passed"}

    call_sync(UNSATISFIABLE, data_path("return_arguments.py"), {"env": env}, dispatcher=_dispatcher(executor=executor))

    options, _, _ = executor.requests[0]
    assert options.exec_path == REMOTE_PYTHON
    assert options.poll_interval_ms == 15
    assert options.env[key].split(os.pathsep)[0] == os.path.join(REMOTE_ROOT, "bin") or os.name == "nt"
    assert "PYTHONHOME" not in options.env
    assert options.env["TEST_ENV_VAR"] == "passed"
    assert env["PYTHONHOME"] == "/elsewhere"


def test_remote_without_spawn_environment_passes_env_through():
    executor = FakeExecutor()
    env = {path_key(): "/usr/bin", "PYTHONHOME": "/elsewhere"}

    call_sync(
        UNSATISFIABLE,
        data_path("return_arguments.py"),
        {"env": env, "spawn_options": False},
        dispatcher=_dispatcher(executor=executor),
    )

    options, _, _ = executor.requests[0]
    assert dict(options.env) == env


def test_remote_forwards_callback_style_flag():
    executor = FakeExecutor()

    call_sync(UNSATISFIABLE, data_path("callbacks.py"), {"callbacks": True}, "v", dispatcher=_dispatcher(executor=executor))

    options, worker_ref, args = executor.requests[0]
    assert options.callbacks is True
    assert worker_ref == data_path("callbacks.py")
    assert args == ["v"]


def test_local_callback_worker_routes_through_executor_with_current_interpreter():
    executor = FakeExecutor(result="cb")
    dispatcher = _dispatcher(executor=executor)

    result = call_sync(">0", data_path("callbacks.py"), {"callbacks": True}, "v", dispatcher=dispatcher)

    assert result == "cb"
    options, _, _ = executor.requests[0]
    assert options.exec_path == sys.executable
    assert options.callbacks is True


def test_local_callback_worker_requires_search_path_in_supplied_env():
    executor = FakeExecutor()
    dispatcher = _dispatcher(executor=executor)

    with pytest.raises(MissingRequiredEnvironmentError) as excinfo:
        call_sync(">0", data_path("callbacks.py"), {"callbacks": True, "env": {"TEST_ENV_VAR": "x"}}, dispatcher=dispatcher)

    assert str(excinfo.value) == "options.env missing required {0}".format(path_key())
    assert executor.spawn_count == 0


def test_not_found_error_reaches_every_surface_with_constraint_text():
    dispatcher = _dispatcher(locator=FakeLocator(None))
    worker = data_path("return_arguments.py")

    with pytest.raises(VersionNotFoundError) as excinfo:
        call_sync(UNSATISFIABLE, worker, None, dispatcher=dispatcher)
    assert UNSATISFIABLE in str(excinfo.value)

    received = []
    bind(UNSATISFIABLE, worker, dispatcher=dispatcher)(lambda err, res=None: received.append((err, res)))
    assert isinstance(received[0][0], VersionNotFoundError)
    assert received[0][1] is None

    future = bind(UNSATISFIABLE, worker, dispatcher=dispatcher)()
    assert UNSATISFIABLE in str(future.exception())


def test_failed_resolution_is_retried_on_next_call():
    locator = FakeLocator(None)
    caller = bind_sync(UNSATISFIABLE, data_path("return_arguments.py"), dispatcher=_dispatcher(locator=locator))

    with pytest.raises(VersionNotFoundError):
        caller()
    locator.exec_path = REMOTE_PYTHON
    assert caller() == "remote-value"
    assert len(locator.calls) == 2


def test_executor_errors_propagate_unchanged():
    failure = TransportError("child crashed", exec_path=REMOTE_PYTHON, exit_code=-9)
    dispatcher = _dispatcher(executor=FakeExecutor(error=failure))

    with pytest.raises(TransportError) as excinfo:
        call_sync(UNSATISFIABLE, data_path("return_arguments.py"), None, dispatcher=dispatcher)

    assert excinfo.value is failure


def test_binding_is_not_resolved_until_first_call():
    locator = FakeLocator(REMOTE_PYTHON)
    caller = bind(UNSATISFIABLE, data_path("return_arguments.py"), dispatcher=_dispatcher(locator=locator))

    assert caller.resolution.state is ResolutionState.UNRESOLVED
    assert locator.calls == []


def test_dispatcher_resolve_is_shared_with_binding():
    dispatcher = _dispatcher()
    binding = Binding(UNSATISFIABLE, data_path("return_arguments.py"))

    resolution = dispatcher.resolve(binding)

    assert resolution is binding.resolution
    assert resolution.exec_path == REMOTE_PYTHON
