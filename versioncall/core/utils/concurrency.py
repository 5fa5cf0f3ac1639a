#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Concurrency primitives for versioncall.
"""

import threading
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class OnceGuard(Generic[T]):
    """
    Compute a value at most once and share it with every caller.

    Concurrent first users block on the guard while one of them runs the
    factory, then reuse its outcome. That includes failures: callers that
    were waiting on a failed attempt receive the same exception instead of
    starting a second attempt. A later caller (one that arrives after the
    failure) tries again, since nothing was frozen.
    """

    def __init__(self, name: str = "once-guard") -> None:
        self._name = name
        self._guard = threading.Lock()
        self._done = False
        self._value: Optional[T] = None
        self._completed = 0
        self._last_error: Optional[BaseException] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def done(self) -> bool:
        return self._done

    def peek(self) -> Optional[T]:
        """Return the value if it has been computed, without blocking."""
        return self._value if self._done else None

    def get_or_init(self, factory: Callable[[], T]) -> T:
        if self._done:
            return self._value  # type: ignore[return-value]

        seen = self._completed
        with self._guard:
            if self._done:
                return self._value  # type: ignore[return-value]
            if self._completed != seen and self._last_error is not None:
                raise self._last_error

            try:
                value = factory()
            except BaseException as exc:
                self._last_error = exc
                self._completed += 1
                raise
            self._completed += 1
            self._value = value
            self._last_error = None
            self._done = True
            return value
