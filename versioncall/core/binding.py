#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Bindings and their memoized resolution.

A ``Binding`` is one pre-configured invocation target: a version constraint,
a worker reference and call options. Whether calls run in this interpreter or
in another one is decided on first use and then frozen for the life of the
binding, even if the environment changes afterwards.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .utils.concurrency import OnceGuard


@dataclass(frozen=True)
class CallOptions:
    """
    Per-binding call options.

    Attributes:
        callbacks: The worker takes a trailing ``callback(error, result)``
            instead of returning its value.
        spawn_options: Adjust the child environment so processes started by
            the worker resolve the same interpreter.
        env: Environment for child interpreters. ``None`` means a copy of
            ``os.environ`` taken when the binding is created.
    """

    callbacks: bool = False
    spawn_options: bool = True
    env: Optional[Mapping[str, str]] = None

    @classmethod
    def coerce(cls, options: Union["CallOptions", Mapping[str, Any], None]) -> "CallOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, Mapping):
            unknown = set(options) - {"callbacks", "spawn_options", "env"}
            if unknown:
                raise TypeError("Unknown call options: {0}".format(", ".join(sorted(unknown))))
            return cls(**dict(options))
        raise TypeError(
            "options must be CallOptions, a mapping or None, not {0}".format(
                type(options).__name__
            )
        )


class ResolutionState(Enum):
    UNRESOLVED = "unresolved"
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class Resolution:
    state: ResolutionState
    exec_path: Optional[str] = None
    install_path: Optional[str] = None

    @classmethod
    def local(cls) -> "Resolution":
        return cls(ResolutionState.LOCAL)

    @classmethod
    def remote(cls, exec_path: str, install_path: str) -> "Resolution":
        return cls(ResolutionState.REMOTE, exec_path=exec_path, install_path=install_path)

    @property
    def is_local(self) -> bool:
        return self.state is ResolutionState.LOCAL

    @property
    def is_remote(self) -> bool:
        return self.state is ResolutionState.REMOTE


UNRESOLVED = Resolution(ResolutionState.UNRESOLVED)


class Binding:
    """
    Constraint, worker and options plus a resolution slot.

    Creating a binding does no I/O. ``resolve`` runs the resolver at most once
    successfully; concurrent first calls wait for the one in flight.
    """

    def __init__(
        self,
        constraint: str,
        worker_ref: str,
        options: Union[CallOptions, Mapping[str, Any], None] = None,
    ) -> None:
        self.constraint = constraint
        self.worker_ref = os.fspath(worker_ref)
        self.options = CallOptions.coerce(options)
        self.env_supplied = self.options.env is not None
        self.env: Dict[str, str] = dict(
            self.options.env if self.options.env is not None else os.environ
        )
        self._resolution: OnceGuard[Resolution] = OnceGuard(
            name="resolution:{0}".format(constraint)
        )

    @property
    def resolution(self) -> Resolution:
        return self._resolution.peek() or UNRESOLVED

    def resolve(self, resolver: Callable[["Binding"], Resolution]) -> Resolution:
        return self._resolution.get_or_init(lambda: resolver(self))

    def __repr__(self) -> str:
        return "Binding(constraint={0!r}, worker_ref={1!r}, resolution={2})".format(
            self.constraint, self.worker_ref, self.resolution.state.value
        )
