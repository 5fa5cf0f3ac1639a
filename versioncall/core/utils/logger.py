#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logging base class for versioncall components.

Components inherit from ``ModernLogger`` and call ``self.debug(...)``,
``self.info(...)`` and friends directly. Output goes to stderr through a
``rich`` handler so it never mixes with worker results printed on stdout.
"""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

_console = Console(stderr=True)


def _coerce_level(level: Union[int, str, None]) -> int:
    if level is None:
        from ..config import get_config

        level = get_config().log_level
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.WARNING


class ModernLogger(logging.Logger):
    """
    ``logging.Logger`` subclass with a single rich handler per instance.

    Args:
        name: Logger name, usually the component class name.
        level: Level name or number; defaults to the configured log level.
        log_file: Optional file that receives plain-text records as well.
    """

    def __init__(
        self,
        name: str,
        level: Union[int, str, None] = None,
        log_file: Optional[str] = None,
    ) -> None:
        super().__init__(name="versioncall.{0}".format(name), level=_coerce_level(level))
        self.propagate = False

        handler = RichHandler(
            console=_console,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        self.addHandler(handler)

        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )
            self.addHandler(file_handler)

    def set_level(self, level: Union[int, str]) -> None:
        """Change the level of this logger and all of its handlers."""
        resolved = _coerce_level(level)
        self.setLevel(resolved)
        for handler in self.handlers:
            handler.setLevel(resolved)


def stderr_console() -> Console:
    """Console shared by log output and CLI error reporting."""
    return _console
