#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Process-wide configuration for versioncall.

Per-call behaviour lives in ``CallOptions``; this module only holds knobs
that apply to every call (poll interval, logging, interpreter probing).
Values are read once from the environment on first use:

- ``VERSIONCALL_POLL_INTERVAL_MS``: child process poll interval (default 60)
- ``VERSIONCALL_LOG_LEVEL``: log level for versioncall loggers (default WARNING)
- ``VERSIONCALL_PROBE_TIMEOUT``: seconds allowed for one interpreter version
  probe (default 10)
"""

import os
import threading
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

DEFAULT_POLL_INTERVAL_MS = 60


@dataclass(frozen=True)
class VersionCallConfig:
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    log_level: str = "WARNING"
    probe_timeout_s: float = 10.0

    def __post_init__(self) -> None:
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        if self.probe_timeout_s <= 0:
            raise ValueError("probe_timeout_s must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VersionCallConfig":
        environ = os.environ if environ is None else environ
        values: dict = {}
        raw_poll = environ.get("VERSIONCALL_POLL_INTERVAL_MS")
        if raw_poll:
            values["poll_interval_ms"] = int(raw_poll)
        raw_level = environ.get("VERSIONCALL_LOG_LEVEL")
        if raw_level:
            values["log_level"] = raw_level.upper()
        raw_timeout = environ.get("VERSIONCALL_PROBE_TIMEOUT")
        if raw_timeout:
            values["probe_timeout_s"] = float(raw_timeout)
        return cls(**values)


_config: Optional[VersionCallConfig] = None
_config_lock = threading.Lock()


def get_config() -> VersionCallConfig:
    """Return the process-wide configuration, reading the environment once."""
    global _config
    with _config_lock:
        if _config is None:
            _config = VersionCallConfig.from_env()
        return _config


def set_config(config: Optional[VersionCallConfig]) -> None:
    """Replace the process-wide configuration; ``None`` re-reads the environment."""
    global _config
    with _config_lock:
        _config = config


def create_config(**overrides: Any) -> VersionCallConfig:
    """Build a configuration from the current one with some fields replaced."""
    known = {f.name for f in fields(VersionCallConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError("Unknown config fields: {0}".format(", ".join(sorted(unknown))))
    return replace(get_config(), **overrides)
