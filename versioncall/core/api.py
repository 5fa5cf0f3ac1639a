#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Public call surfaces.

=================  ==============================================  =================
Entry point        Shape                                           Errors
=================  ==============================================  =================
``call``           ``call(c, worker, options, *args[, cb])``       future or callback
``call_sync``      ``call_sync(c, worker, options, *args)``        raised
``call_async``     ``await call_async(c, worker, options, *args)`` raised
``bind``           ``bind(c, worker, options)(*args[, cb])``       future or callback
``bind_sync``      ``bind_sync(c, worker, options)(*args)``        raised
=================  ==============================================  =================

The unbound calls create a fresh binding every time, so they resolve on every
call. Keep a bound caller around to resolve once.
"""

import functools
from concurrent.futures import Future
from typing import Any, Mapping, Optional, Union

from .binding import Binding, CallOptions, Resolution
from .conventions import deliver_async, deliver_to_callback, deliver_to_future, split_callback
from .dispatcher import InvocationDispatcher, get_default_dispatcher

OptionsLike = Union[CallOptions, Mapping[str, Any], None]


class _BoundBase:
    def __init__(self, binding: Binding, dispatcher: Optional[InvocationDispatcher] = None) -> None:
        self.binding = binding
        self.dispatcher = dispatcher if dispatcher is not None else get_default_dispatcher()

    @property
    def resolution(self) -> Resolution:
        return self.binding.resolution

    def __repr__(self) -> str:
        return "{0}({1!r})".format(type(self).__name__, self.binding)


class BoundCaller(_BoundBase):
    """
    Bound caller with callback or future delivery.

    ``caller(*args, callback)`` runs the worker, invokes
    ``callback(error, result)`` once and returns ``None``.
    ``caller(*args)`` returns a settled ``concurrent.futures.Future``.
    ``await caller.acall(*args)`` is the event-loop friendly variant.
    """

    def __call__(self, *args: Any) -> Optional["Future[Any]"]:
        call_args, callback = split_callback(args)
        execute = functools.partial(self.dispatcher.execute, self.binding, call_args)
        if callback is not None:
            return deliver_to_callback(execute, callback)
        return deliver_to_future(execute)

    async def acall(self, *args: Any) -> Any:
        execute = functools.partial(self.dispatcher.execute, self.binding, list(args))
        return await deliver_async(execute)


class BoundSyncCaller(_BoundBase):
    """Bound caller that returns the worker's value or raises its error."""

    def __call__(self, *args: Any) -> Any:
        return self.dispatcher.execute(self.binding, args)


def bind(
    constraint: str,
    worker_ref: str,
    options: OptionsLike = None,
    *,
    dispatcher: Optional[InvocationDispatcher] = None,
) -> BoundCaller:
    """
    Create a caller bound to ``constraint`` and ``worker_ref``.

    No I/O happens here. The interpreter is chosen on the first call and
    reused for every later call through the returned caller.
    """
    return BoundCaller(Binding(constraint, worker_ref, options), dispatcher)


def bind_sync(
    constraint: str,
    worker_ref: str,
    options: OptionsLike = None,
    *,
    dispatcher: Optional[InvocationDispatcher] = None,
) -> BoundSyncCaller:
    """Synchronous counterpart of :func:`bind`."""
    return BoundSyncCaller(Binding(constraint, worker_ref, options), dispatcher)


def call(
    constraint: str,
    worker_ref: str,
    options: OptionsLike = None,
    *args: Any,
    dispatcher: Optional[InvocationDispatcher] = None,
) -> Optional["Future[Any]"]:
    """
    Call a worker in an interpreter matching ``constraint``.

    A trailing callable in ``args`` is the completion callback; without one
    a settled future is returned.
    """
    return bind(constraint, worker_ref, options, dispatcher=dispatcher)(*args)


def call_sync(
    constraint: str,
    worker_ref: str,
    options: OptionsLike = None,
    *args: Any,
    dispatcher: Optional[InvocationDispatcher] = None,
) -> Any:
    """Call a worker and return its value, raising whatever it raised."""
    return bind_sync(constraint, worker_ref, options, dispatcher=dispatcher)(*args)


async def call_async(
    constraint: str,
    worker_ref: str,
    options: OptionsLike = None,
    *args: Any,
    dispatcher: Optional[InvocationDispatcher] = None,
) -> Any:
    """Coroutine counterpart of :func:`call_sync`."""
    caller = bind(constraint, worker_ref, options, dispatcher=dispatcher)
    return await caller.acall(*args)
