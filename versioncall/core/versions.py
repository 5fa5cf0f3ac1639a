#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Version constraints and interpreter discovery.

Constraints are either an exact version tag (``3.12.1``, ``v3.12.1``), a
partial tag naming a release line (``3``, ``3.12``) or a range expression.
Ranges accept PEP 440 specifier sets (``>=3.9,<4``, ``~=3.11``) as well as
the npm-style spellings people carry over from other toolchains: whitespace
separated comparators (``>=3.9 <4``), caret and tilde ranges (``^3.9``,
``~3.11``), inclusive hyphen ranges (``3.9 - 3.12``), ``x`` wildcards
(``3.x``) and ``||`` alternatives. Everything is
normalised into ``packaging`` specifier sets.

``VersionLocator`` walks the executable search path of an environment and
asks each ``python*`` executable for its version until one satisfies the
constraint.
"""

import os
import re
import subprocess
import sys
import threading
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from .config import get_config
from .utils.exceptions import InvalidConstraintError, VersionNotFoundError
from .utils.logger import ModernLogger

IS_WINDOWS = os.name == "nt"

_RELEASE_LEVELS = {"alpha": "a", "beta": "b", "candidate": "rc"}

# Prints the interpreter version in the same format as current_version().
PROBE_SCRIPT = (
    "import sys;v=sys.version_info;"
    "l={'alpha':'a','beta':'b','candidate':'rc'}.get(v.releaselevel);"
    "print('%d.%d.%d' % v[:3] + ('%s%d' % (l, v.serial) if l else ''))"
)

_CANDIDATE_NAME = re.compile(r"^python(?P<version>\d+(?:\.\d+)?)?(?:\.exe)?$", re.IGNORECASE)
_TOKEN = re.compile(
    r"\s*(?P<op>===|==|!=|~=|<=|>=|<|>|=|\^|~)?\s*v?(?P<version>[0-9][0-9A-Za-z.*+!-]*|[xX*])\s*"
)
_HYPHEN = re.compile(r"^v?(?P<low>[0-9][0-9.xX*]*)\s+-\s+v?(?P<high>[0-9][0-9.xX*]*)$")
_WILDCARDS = {"x", "X", "*"}


def current_version() -> str:
    """Version of the running interpreter, e.g. ``3.12.1`` or ``3.13.0rc2``."""
    info = sys.version_info
    text = "{0}.{1}.{2}".format(info.major, info.minor, info.micro)
    level = _RELEASE_LEVELS.get(info.releaselevel)
    if level:
        text += "{0}{1}".format(level, info.serial)
    return text


def _release_parts(text: str) -> List[str]:
    parts = text.split(".")
    while parts and parts[-1] in _WILDCARDS:
        parts.pop()
    return parts


def _bare_to_specifiers(text: str) -> List[str]:
    """Turn an operator-less tag into specifiers: partial tags mean a release line."""
    parts = _release_parts(text)
    if not parts:
        return [">=0"]
    if len(parts) < 3 and all(p.isdigit() for p in parts):
        return ["=={0}.*".format(".".join(parts))]
    return ["=={0}".format(text)]


def _bump(parts: List[str], index: int) -> str:
    numbers = [int(p) for p in parts[: index + 1]]
    numbers[index] += 1
    return ".".join(str(n) for n in numbers)


def _caret(version: str) -> List[str]:
    parts = _release_parts(version)
    if not parts or not all(p.isdigit() for p in parts):
        raise ValueError("caret ranges need a numeric version")
    padded = parts + ["0"] * (3 - len(parts))
    # ^X.Y.Z allows changes that keep the left-most non-zero component.
    index = 0
    while index < len(parts) - 1 and int(padded[index]) == 0:
        index += 1
    return [">={0}".format(".".join(padded)), "<{0}".format(_bump(padded, index))]


def _tilde(version: str) -> List[str]:
    parts = _release_parts(version)
    if not parts or not all(p.isdigit() for p in parts):
        raise ValueError("tilde ranges need a numeric version")
    padded = parts + ["0"] * (3 - len(parts))
    index = 0 if len(parts) == 1 else 1
    return [">={0}".format(".".join(padded)), "<{0}".format(_bump(padded, index))]


def _hyphen(low: str, high: str) -> List[str]:
    """``A - B`` is inclusive; a partial upper bound covers its whole release line."""
    low_parts = _release_parts(low)
    high_parts = _release_parts(high)
    if not low_parts or not high_parts or not all(p.isdigit() for p in low_parts + high_parts):
        raise ValueError("hyphen ranges need numeric versions")
    lower = ">={0}".format(".".join(low_parts + ["0"] * (3 - len(low_parts))))
    if len(high_parts) >= 3:
        return [lower, "<={0}".format(".".join(high_parts))]
    return [lower, "<{0}".format(_bump(high_parts, len(high_parts) - 1))]


def _alternative_to_specifier_set(text: str) -> SpecifierSet:
    flattened = text.replace(",", " ").strip()
    if not flattened:
        raise ValueError("empty range")

    hyphen = _HYPHEN.match(flattened)
    if hyphen is not None:
        return SpecifierSet(",".join(_hyphen(hyphen.group("low"), hyphen.group("high"))))

    specifiers: List[str] = []
    position = 0
    while position < len(flattened):
        match = _TOKEN.match(flattened, position)
        if match is None or match.end() == position:
            raise ValueError("unexpected text at '{0}'".format(flattened[position:]))
        position = match.end()

        op = match.group("op")
        version = match.group("version")
        if op == "^":
            specifiers.extend(_caret(version))
        elif op == "~":
            specifiers.extend(_tilde(version))
        elif op is None or op == "=":
            specifiers.extend(_bare_to_specifiers(version))
        elif version in _WILDCARDS:
            specifiers.append(">=0")
        else:
            specifiers.append("{0}{1}".format(op, version))

    return SpecifierSet(",".join(specifiers))


def parse_constraint(constraint: str) -> List[SpecifierSet]:
    """
    Parse a constraint into alternatives (any one of them may match).

    Raises:
        InvalidConstraintError: the constraint is empty or malformed.
    """
    if not isinstance(constraint, str) or not constraint.strip():
        raise InvalidConstraintError(str(constraint), "constraint must be a non-empty string")

    alternatives: List[SpecifierSet] = []
    for alternative in constraint.split("||"):
        try:
            alternatives.append(_alternative_to_specifier_set(alternative))
        except (ValueError, InvalidSpecifier) as exc:
            raise InvalidConstraintError(constraint, str(exc)) from exc
    return alternatives


def _matches(version: str, alternatives: List[SpecifierSet]) -> bool:
    try:
        parsed = Version(version)
    except InvalidVersion:
        return False
    return any(spec.contains(parsed, prereleases=True) for spec in alternatives)


def satisfies(version: str, constraint: str) -> bool:
    """
    Whether ``version`` satisfies ``constraint``.

    An exact string match short-circuits. Malformed constraints never match;
    reporting them is left to ``VersionLocator.locate``.
    """
    if version == constraint or "v" + version == constraint:
        return True
    try:
        alternatives = parse_constraint(constraint)
    except InvalidConstraintError:
        return False
    return _matches(version, alternatives)


def path_key(env: Optional[Mapping[str, str]] = None) -> str:
    """Name of the executable search path variable in ``env``."""
    env = os.environ if env is None else env
    if not IS_WINDOWS:
        return "PATH"
    # Windows keys are case-insensitive; reuse whatever spelling is present.
    for key in reversed(list(env.keys())):
        if key.upper() == "PATH":
            return key
    return "Path"


def derive_install_path(exec_path: str, windows: Optional[bool] = None) -> str:
    """
    Installation root of an interpreter.

    Windows installs keep ``python.exe`` in the root; everywhere else the
    executable lives in ``<root>/bin``.
    """
    windows = IS_WINDOWS if windows is None else windows
    if windows:
        return os.path.dirname(exec_path)
    return os.path.dirname(os.path.dirname(exec_path))


def _candidate_sort_key(name: str) -> Tuple[int, Tuple[int, ...], str]:
    match = _CANDIDATE_NAME.match(name)
    version = match.group("version") if match else None
    if not version:
        return (1, (), name)
    # More specific names first, newest first within a directory.
    return (0, tuple(-int(p) for p in version.split(".")), name)


@dataclass(frozen=True)
class ResolvedVersion:
    exec_path: str
    install_path: str


class VersionLocator(ModernLogger):
    """
    Find a Python interpreter on the search path that satisfies a constraint.

    Directories are visited in search path order; the first qualifying
    interpreter wins. Versions reported by successful probes are remembered
    per locator; executables that failed to answer are asked again next time.
    """

    def __init__(self, probe_timeout_s: Optional[float] = None) -> None:
        super().__init__(name="VersionLocator")
        self.probe_timeout_s = probe_timeout_s
        self._versions: Dict[str, str] = {}
        self._versions_lock = threading.Lock()

    def candidates(self, env: Optional[Mapping[str, str]] = None) -> Iterator[str]:
        """Yield interpreter executables on the search path, without duplicates."""
        env = os.environ if env is None else env
        search_path = env.get(path_key(env), "")
        seen = set()
        for directory in search_path.split(os.pathsep):
            if not directory or not os.path.isdir(directory):
                continue
            try:
                names = os.listdir(directory)
            except OSError as exc:
                self.debug("Skipping unreadable directory %s: %s", directory, exc)
                continue
            for name in sorted(names, key=_candidate_sort_key):
                if not _CANDIDATE_NAME.match(name):
                    continue
                candidate = os.path.join(directory, name)
                if not os.path.isfile(candidate) or not os.access(candidate, os.X_OK):
                    continue
                real = os.path.realpath(candidate)
                if real in seen:
                    continue
                seen.add(real)
                yield candidate

    def probe(self, exec_path: str, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """Ask an interpreter for its version; ``None`` when it cannot answer."""
        with self._versions_lock:
            if exec_path in self._versions:
                return self._versions[exec_path]

        timeout = self.probe_timeout_s or get_config().probe_timeout_s
        version: Optional[str] = None
        try:
            completed = subprocess.run(
                [exec_path, "-c", PROBE_SCRIPT],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                universal_newlines=True,
                env=dict(env) if env is not None else None,
                timeout=timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            self.debug("Probe of %s failed: %s", exec_path, exc)
        else:
            if completed.returncode == 0:
                version = completed.stdout.strip() or None
            else:
                self.debug("Probe of %s exited with %s", exec_path, completed.returncode)

        # Failures are not remembered so a later lookup can try again.
        if version is not None:
            with self._versions_lock:
                self._versions[exec_path] = version
        self.debug("Probed %s -> %s", exec_path, version)
        return version

    def locate(self, constraint: str, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """
        Return the path of the first interpreter satisfying ``constraint``.

        Raises:
            InvalidConstraintError: the constraint is malformed.
        """
        alternatives = parse_constraint(constraint)
        for candidate in self.candidates(env):
            version = self.probe(candidate, env)
            if version is None:
                continue
            if version == constraint or _matches(version, alternatives):
                self.debug("Constraint %r satisfied by %s (%s)", constraint, candidate, version)
                return candidate
        self.debug("No interpreter satisfies %r", constraint)
        return None


def resolve_version(
    constraint: str,
    env: Optional[Mapping[str, str]] = None,
    locator: Optional[VersionLocator] = None,
) -> ResolvedVersion:
    """
    Locate an interpreter for ``constraint`` and derive its installation root.

    Raises:
        VersionNotFoundError: nothing on the search path qualifies. The
            message embeds the constraint verbatim.
    """
    locator = locator if locator is not None else VersionLocator()
    exec_path = locator.locate(constraint, env)
    if not exec_path:
        raise VersionNotFoundError(constraint, path_key(env))
    return ResolvedVersion(exec_path=exec_path, install_path=derive_install_path(exec_path))
