#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Command line entry point.

    versioncall run ">=3.9" tasks/report.py:build 2024 '{"draft": true}'
    versioncall which "3.8"

Exit codes: 0 success, 1 call or lookup failure, 2 usage error.
"""

import argparse
import json
import sys
from typing import Any, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from ._version import __version__
from .core.api import call_sync
from .core.binding import Binding, CallOptions
from .core.dispatcher import get_default_dispatcher
from .core.utils.exceptions import ExceptionFormatter, VersionCallError
from .core.utils.logger import stderr_console
from .transport.codec import JSONBackend


def _parse_argument(raw: str) -> Any:
    """Arguments that parse as JSON are passed as values, anything else as text."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="versioncall",
        description="Call a Python function under an interpreter matching a version constraint.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="call a worker and print its result")
    run.add_argument("constraint", help="version tag or range, e.g. '3.12' or '>=3.9,<4'")
    run.add_argument("worker", help="path to a Python file, optionally 'path.py:function'")
    run.add_argument("args", nargs="*", help="worker arguments (JSON values or plain strings)")
    run.add_argument("--json", action="store_true", help="print the result as JSON")
    run.add_argument(
        "--callbacks",
        action="store_true",
        help="the worker reports through a trailing callback(error, result)",
    )
    run.add_argument(
        "--no-spawn-options",
        action="store_true",
        help="do not adjust the child environment for the selected interpreter",
    )

    which = subparsers.add_parser("which", help="print the interpreter a constraint resolves to")
    which.add_argument("constraint")
    return parser


def _run(namespace: argparse.Namespace, console: Console) -> int:
    options = CallOptions(
        callbacks=namespace.callbacks,
        spawn_options=not namespace.no_spawn_options,
    )
    args: List[Any] = [_parse_argument(raw) for raw in namespace.args]
    result = call_sync(namespace.constraint, namespace.worker, options, *args)
    if namespace.json:
        sys.stdout.write(JSONBackend().serialize(result).decode("utf-8") + "\n")
    else:
        console.print(result)
    return 0


def _which(namespace: argparse.Namespace, console: Console) -> int:
    binding = Binding(namespace.constraint, "")
    resolution = get_default_dispatcher().resolve(binding)
    console.print(resolution.exec_path if resolution.is_remote else sys.executable)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    namespace = parser.parse_args(argv)
    console = Console()
    errors = stderr_console()

    handlers = {"run": _run, "which": _which}
    try:
        return handlers[namespace.command](namespace, console)
    except VersionCallError as exc:
        errors.print("[red]error:[/red] {0}".format(escape(str(exc))), markup=True, highlight=False)
        return 1
    except Exception as exc:
        errors.print(
            "[red]worker failed:[/red] {0}".format(
                escape(ExceptionFormatter.format_exception_summary(exc))
            ),
            markup=True,
            highlight=False,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
