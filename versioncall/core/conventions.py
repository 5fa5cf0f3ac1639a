#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Result delivery for the three calling conventions.

Every public entry point funnels into one ``execute`` callable; the helpers
here only decide how its outcome reaches the caller:

- raise-directly: the synchronous surfaces call ``execute`` themselves
- callback: ``callback(error, result)`` is invoked exactly once
- deferred: a ``concurrent.futures.Future`` that is settled exactly once,
  or a coroutine for callers inside an event loop
"""

import asyncio
from concurrent.futures import Future
from typing import Any, Callable, List, Optional, Sequence, Tuple

CallerCallback = Callable[..., Any]


def split_callback(args: Sequence[Any]) -> Tuple[List[Any], Optional[CallerCallback]]:
    """
    Detect callback style: a trailing callable argument is the completion
    callback and is removed from the worker arguments.

    Any callable counts, classes included. To pass a function as the last
    worker argument, use the synchronous surfaces, which never apply this
    rule.
    """
    if args and callable(args[-1]):
        return list(args[:-1]), args[-1]
    return list(args), None


def deliver_to_callback(execute: Callable[[], Any], callback: CallerCallback) -> None:
    """
    Run ``execute`` to completion, then report through ``callback``.

    Runs synchronously: the callback has been invoked by the time this
    returns. Errors raised by the callback itself propagate to the caller.
    """
    try:
        result = execute()
    except Exception as exc:
        callback(exc, None)
        return None
    callback(None, result)
    return None


def deliver_to_future(execute: Callable[[], Any]) -> "Future[Any]":
    """Run ``execute`` and return a future already settled with its outcome."""
    future: "Future[Any]" = Future()
    future.set_running_or_notify_cancel()
    try:
        result = execute()
    except Exception as exc:
        future.set_exception(exc)
    else:
        future.set_result(result)
    return future


async def deliver_async(execute: Callable[[], Any]) -> Any:
    """
    Await ``execute`` from inside an event loop.

    The blocking work runs in a thread so the loop keeps serving other tasks.
    """
    return await asyncio.to_thread(execute)
