#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
End-to-end tests for the public call surfaces with real child interpreters.

The "other interpreter" is this interpreter: the remote dispatcher fixture
locates ``sys.executable`` for an unsatisfiable constraint, so every remote
call goes through a real spawn, request file and response file.
"""

import asyncio
import os
import sys

import pytest

from conftest import UNSATISFIABLE, data_path
from versioncall.core.api import bind, bind_sync, call, call_async, call_sync
from versioncall.core.dispatcher import InvocationDispatcher
from versioncall.core.utils.exceptions import (
    SerializationError,
    TransportError,
    VersionNotFoundError,
    WorkerError,
)
from versioncall.core.versions import current_version, derive_install_path
from versioncall.transport.codec import FunctionPlaceholder
from versioncall.transport.executor import ExecOptions, RemoteExecutor, function_exec

LOCAL = ">0"


def _capture():
    received = []

    def callback(error, result=None):
        received.append((error, result))

    return received, callback


@pytest.mark.parametrize("dispatcher_fixture, constraint", [
    ("local_dispatcher", LOCAL),
    ("remote_dispatcher", UNSATISFIABLE),
])
def test_arguments_round_trip(request, dispatcher_fixture, constraint):
    dispatcher = request.getfixturevalue(dispatcher_fixture)
    payload = {"name": "acme", "sizes": [1, 2.5], "tags": ("a", "b")}

    result = call_sync(constraint, data_path("return_arguments.py"), None, "x", 7, payload, dispatcher=dispatcher)

    assert result == ["x", 7, payload]


def test_remote_call_spawns_once_per_invocation(remote_dispatcher):
    caller = bind_sync(UNSATISFIABLE, data_path("return_arguments.py"), dispatcher=remote_dispatcher)

    assert caller(1) == [1]
    assert caller(2) == [2]

    assert caller.resolution.is_remote
    assert caller.resolution.exec_path == sys.executable
    assert len(remote_dispatcher.locator.calls) == 1
    assert remote_dispatcher.executor.spawn_count == 2


def test_local_call_never_spawns(local_dispatcher):
    caller = bind_sync(LOCAL, data_path("process_version.py"), dispatcher=local_dispatcher)

    assert caller() == current_version()
    assert caller.resolution.is_local
    assert local_dispatcher.executor.spawn_count == 0


@pytest.mark.parametrize("dispatcher_fixture, constraint", [
    ("local_dispatcher", LOCAL),
    ("remote_dispatcher", UNSATISFIABLE),
])
def test_worker_error_reaches_every_surface(request, dispatcher_fixture, constraint):
    dispatcher = request.getfixturevalue(dispatcher_fixture)
    worker = data_path("throw_error.py")

    received, callback = _capture()
    assert call(constraint, worker, None, callback, dispatcher=dispatcher) is None
    assert len(received) == 1
    assert str(received[0][0]) == "boom"
    assert received[0][1] is None

    future = call(constraint, worker, None, dispatcher=dispatcher)
    assert str(future.exception()) == "boom"

    with pytest.raises(Exception, match="^boom$"):
        call_sync(constraint, worker, None, dispatcher=dispatcher)

    received, callback = _capture()
    bind(constraint, worker, dispatcher=dispatcher)(callback)
    assert str(received[0][0]) == "boom"

    with pytest.raises(Exception, match="^boom$"):
        bind_sync(constraint, worker, dispatcher=dispatcher)()

    with pytest.raises(Exception, match="^boom$"):
        asyncio.run(call_async(constraint, worker, None, dispatcher=dispatcher))


def test_calling_conventions_agree_on_success(remote_dispatcher):
    worker = data_path("return_arguments.py")

    received, callback = _capture()
    call(UNSATISFIABLE, worker, None, "a", callback, dispatcher=remote_dispatcher)
    future = call(UNSATISFIABLE, worker, None, "a", dispatcher=remote_dispatcher)
    direct = call_sync(UNSATISFIABLE, worker, None, "a", dispatcher=remote_dispatcher)
    awaited = asyncio.run(call_async(UNSATISFIABLE, worker, None, "a", dispatcher=remote_dispatcher))

    assert received == [(None, ["a"])]
    assert future.result() == direct == awaited == ["a"]


def test_missing_interpreter_is_reported_with_constraint(fast_config):
    dispatcher = InvocationDispatcher(executor=RemoteExecutor(), config=fast_config)

    with pytest.raises(VersionNotFoundError) as excinfo:
        call_sync(UNSATISFIABLE, data_path("return_arguments.py"), None, dispatcher=dispatcher)

    assert 'No Python matching "{0}" found in'.format(UNSATISFIABLE) in str(excinfo.value)
    assert dispatcher.executor.spawn_count == 0


def test_remote_callback_worker(remote_dispatcher):
    result = call_sync(
        UNSATISFIABLE, data_path("callbacks.py"), {"callbacks": True}, "value", dispatcher=remote_dispatcher
    )

    assert result == "value"


def test_remote_callback_worker_error(remote_dispatcher):
    with pytest.raises(ValueError, match="bad value: v"):
        call_sync(
            UNSATISFIABLE, data_path("callbacks.py") + ":fail", {"callbacks": True}, "v", dispatcher=remote_dispatcher
        )


def test_local_callback_worker_runs_in_child_with_current_interpreter(local_dispatcher):
    result = call_sync(LOCAL, data_path("callbacks.py"), {"callbacks": True}, 5, dispatcher=local_dispatcher)

    assert result == 5
    assert local_dispatcher.executor.spawn_count == 1


@pytest.mark.parametrize("dispatcher_fixture, constraint", [
    ("local_dispatcher", LOCAL),
    ("remote_dispatcher", UNSATISFIABLE),
])
def test_supplied_environment_reaches_callback_worker(request, dispatcher_fixture, constraint):
    dispatcher = request.getfixturevalue(dispatcher_fixture)
    options = {"callbacks": True, "env": dict(os.environ, TEST_ENV_VAR="passed")}

    assert call_sync(constraint, data_path("env_check.py"), options, dispatcher=dispatcher) == "passed"


def test_remote_async_worker(remote_dispatcher):
    assert call_sync(UNSATISFIABLE, data_path("async_worker.py"), None, 4, dispatcher=remote_dispatcher) == 8


def test_remote_non_callable_attribute(remote_dispatcher):
    worker = data_path("return_arguments.py") + ":ANSWER"

    assert call_sync(UNSATISFIABLE, worker, None, dispatcher=remote_dispatcher) == 42


def test_remote_custom_error_becomes_worker_error(remote_dispatcher):
    with pytest.raises(WorkerError) as excinfo:
        call_sync(UNSATISFIABLE, data_path("custom_error.py"), None, dispatcher=remote_dispatcher)

    assert str(excinfo.value) == "quota exceeded for tenant acme"
    assert excinfo.value.remote_type == "QuotaExceeded"
    assert "QuotaExceeded" in excinfo.value.remote_traceback


def test_remote_missing_worker_file_raises_builtin_error(remote_dispatcher, tmp_path):
    with pytest.raises(FileNotFoundError):
        call_sync(UNSATISFIABLE, str(tmp_path / "absent.py"), None, dispatcher=remote_dispatcher)


def test_functions_cross_as_placeholders(remote_dispatcher):
    result = call_sync(
        UNSATISFIABLE, data_path("return_arguments.py"), None, "x", len, dispatcher=remote_dispatcher
    )

    assert result == ["x", FunctionPlaceholder("len")]


def test_callback_style_detection_applies_to_trailing_callable(remote_dispatcher):
    received, callback = _capture()

    assert call(UNSATISFIABLE, data_path("return_arguments.py"), None, "x", callback, dispatcher=remote_dispatcher) is None
    assert received == [(None, ["x"])]


def test_unserializable_argument_fails_before_spawning(remote_dispatcher):
    with pytest.raises(SerializationError):
        call_sync(UNSATISFIABLE, data_path("return_arguments.py"), None, object(), dispatcher=remote_dispatcher)

    assert remote_dispatcher.executor.spawn_count == 0


def test_executor_runs_worker_directly():
    executor = RemoteExecutor()
    options = ExecOptions(exec_path=sys.executable, poll_interval_ms=10, env=dict(os.environ))

    assert executor.execute(options, data_path("return_arguments.py"), [1, "two"]) == [1, "two"]
    assert executor.spawn_count == 1


def test_executor_reports_child_failure_as_transport_error(tmp_path):
    broken_child = tmp_path / "broken_child.py"
    broken_child.write_text("import sys\nsys.stderr.write('child blew up')\nsys.exit(3)\n", encoding="utf-8")
    executor = RemoteExecutor(child_script=str(broken_child))
    options = ExecOptions(exec_path=sys.executable, poll_interval_ms=10, env=dict(os.environ))

    with pytest.raises(TransportError) as excinfo:
        executor.execute(options, data_path("return_arguments.py"), [])

    assert excinfo.value.exit_code == 3
    assert "child blew up" in str(excinfo.value)


def test_bound_caller_can_be_awaited(remote_dispatcher):
    caller = bind(UNSATISFIABLE, data_path("return_arguments.py"), dispatcher=remote_dispatcher)

    async def run_two():
        return await asyncio.gather(caller.acall(1), caller.acall(2))

    assert asyncio.run(run_two()) == [[1], [2]]
    assert len(remote_dispatcher.locator.calls) == 1


def test_spawned_interpreter_bin_comes_first_on_child_path(remote_dispatcher):
    install_root = derive_install_path(sys.executable)
    bundled = os.path.join(install_root, "bin", "python3")
    if os.name == "nt" or not os.path.exists(bundled) or os.path.realpath(bundled) != os.path.realpath(sys.executable):
        pytest.skip("python3 in the interpreter's bin directory is a different interpreter")

    result = call_sync(UNSATISFIABLE, data_path("child_process_version.py"), None, dispatcher=remote_dispatcher)

    assert result["worker_version"] == result["child_version"]


def test_function_exec_uses_shared_executor():
    options = ExecOptions(exec_path=sys.executable, poll_interval_ms=10, env=dict(os.environ))

    assert function_exec(options, data_path("return_arguments.py") + ":main", "a", 1) == ["a", 1]
