#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Child bootstrap executed by the target interpreter.

Usage (spawned by ``RemoteExecutor``, not meant to be run by hand)::

    <python> child.py <request-file> <response-file>

The request holds the worker reference, its arguments and the calling
convention. The response is written to a temporary name and moved into place
once complete, so the parent never reads a partial file.

``RemoteExecutor`` runs a staged copy of this file from a per-call directory
that holds only the stdlib-only parts of ``versioncall``. That directory is
the only path added for the child, so the target interpreter resolves every
other import from its own installation.
"""

import os
import sys


def _bootstrap_path() -> None:
    here = os.path.dirname(os.path.abspath(__file__))
    package_root = os.path.dirname(os.path.dirname(here))
    # Running as a script puts this directory first on sys.path; drop it so
    # module names here never shadow a worker's imports.
    if sys.path and os.path.abspath(sys.path[0] or os.curdir) == here:
        sys.path.pop(0)
    if package_root not in sys.path:
        sys.path.insert(0, package_root)


def _write_response(path: str, data: bytes) -> None:
    partial = path + ".partial"
    with open(partial, "wb") as handle:
        handle.write(data)
    os.replace(partial, path)


def main(argv: list) -> int:
    if len(argv) != 3:
        sys.stderr.write("usage: child.py <request-file> <response-file>\n")
        return 2

    _bootstrap_path()
    from versioncall.core.utils.exceptions import SerializationError
    from versioncall.transport import codec, loader

    request_path, response_path = argv[1], argv[2]
    with open(request_path, "rb") as handle:
        request = codec.loads(handle.read())

    try:
        target = loader.load_worker(request["worker"], use_cache=False)
        if request.get("callbacks"):
            value = loader.invoke_with_callback(
                target,
                request.get("args", []),
                poll_interval=request.get("poll_interval_ms", 60) / 1000.0,
            )
        else:
            value = loader.invoke(target, request.get("args", []))
        response = {"ok": True, "value": value}
    except Exception as exc:
        response = {"ok": False, "error": codec.encode_error(exc)}

    try:
        data = codec.dumps(response)
    except SerializationError as exc:
        data = codec.dumps(
            {"ok": False, "transport": True, "error": {"message": exc.message}}
        )

    _write_response(response_path, data)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
