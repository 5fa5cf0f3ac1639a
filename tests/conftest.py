#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Pytest bootstrap for local package imports and shared fakes.
"""

import os
import sys
import threading
from pathlib import Path
from typing import List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

DATA = Path(__file__).resolve().parent / "data"

from versioncall.core.config import VersionCallConfig  # noqa: E402
from versioncall.core.dispatcher import InvocationDispatcher  # noqa: E402
from versioncall.core.versions import VersionLocator  # noqa: E402
from versioncall.transport.executor import RemoteExecutor  # noqa: E402

# A constraint no interpreter satisfies, so resolution always leaves this process.
UNSATISFIABLE = ">=9999"


class FakeLocator(VersionLocator):
    """Locator returning a fixed path and counting lookups."""

    def __init__(self, exec_path: Optional[str]) -> None:
        super().__init__()
        self.exec_path = exec_path
        self.calls: List[tuple] = []
        self._calls_lock = threading.Lock()

    def locate(self, constraint, env=None):
        with self._calls_lock:
            self.calls.append((constraint, env))
        return self.exec_path


class FakeExecutor(RemoteExecutor):
    """Executor that records requests instead of spawning processes."""

    def __init__(self, result=None, error: Optional[BaseException] = None) -> None:
        super().__init__()
        self.result = result
        self.error = error
        self.requests: List[tuple] = []

    def execute(self, options, worker_ref, args):
        with self._count_lock:
            self.spawn_count += 1
        self.requests.append((options, worker_ref, list(args)))
        if self.error is not None:
            raise self.error
        return self.result


def data_path(name: str) -> str:
    return str(DATA / name)


@pytest.fixture
def fast_config() -> VersionCallConfig:
    return VersionCallConfig(poll_interval_ms=10)


@pytest.fixture
def remote_dispatcher(fast_config):
    """
    Dispatcher whose "other interpreter" is this interpreter, spawned for real.
    """
    executor = RemoteExecutor()
    locator = FakeLocator(sys.executable)
    return InvocationDispatcher(locator=locator, executor=executor, config=fast_config)


@pytest.fixture
def local_dispatcher(fast_config):
    executor = RemoteExecutor()
    return InvocationDispatcher(
        locator=FakeLocator(None), executor=executor, config=fast_config
    )


@pytest.fixture
def full_env():
    return dict(os.environ)
