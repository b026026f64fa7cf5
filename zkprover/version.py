"""
Version helpers for zkprover.

- __version__: base semantic version of this package.
- git_describe() / version_with_git(): diagnostics for logs and /version.
- Trace/circuit compatibility gate:
    normalize_version("v0.5.1-unstable") -> "0.5.1"
    check_trace_version(...)   per-request, against SUPPORTED_TRACE_VERSIONS
    check_circuit_version(...) at startup, against SUPPORTED_CIRCUIT_VERSIONS

Trace format and circuit semantics evolve independently, so both lists are
pinned separately.
"""
from __future__ import annotations

import re
import subprocess
from functools import lru_cache
from typing import Iterable, Optional

from .errors import VersionParseError

__version__ = "0.1.0"

# Circuit build versions (MAJOR.MINOR.PATCH) this control plane can drive.
CIRCUIT_MAJOR = 0
CIRCUIT_MINOR = 1
CIRCUIT_PATCH = 5
CIRCUIT_VERSION = f"{CIRCUIT_MAJOR}.{CIRCUIT_MINOR}.{CIRCUIT_PATCH}"

SUPPORTED_TRACE_VERSIONS: tuple[str, ...] = ("0.5.1",)
SUPPORTED_CIRCUIT_VERSIONS: tuple[str, ...] = (CIRCUIT_VERSION,)

# optional "v", MAJOR.MINOR.PATCH, then anything (e.g. "-unstable", "+abc")
_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)(?:[^\d].*)?$")


def normalize_version(version: str) -> str:
    """
    Reduce a version string to its MAJOR.MINOR.PATCH core.

    >>> normalize_version("v0.5.1-unstable")
    '0.5.1'
    """
    if not isinstance(version, str):
        raise VersionParseError(f"version must be a string, got {type(version).__name__}")
    m = _VERSION_RE.match(version.strip())
    if m is None:
        raise VersionParseError(f"malformed version string: {version!r}")
    major, minor, patch = (int(g) for g in m.groups())
    return f"{major}.{minor}.{patch}"


def check_trace_version(
    version: str, supported: Iterable[str] = SUPPORTED_TRACE_VERSIONS
) -> bool:
    """True when the trace format version is allow-listed. Raises VersionParseError when malformed."""
    return normalize_version(version) in tuple(supported)


def check_circuit_version(
    reported: str = CIRCUIT_VERSION, supported: Iterable[str] = SUPPORTED_CIRCUIT_VERSIONS
) -> bool:
    """True when the linked circuit build reports an allow-listed version."""
    try:
        return normalize_version(reported) in tuple(supported)
    except VersionParseError:
        return False


@lru_cache(maxsize=1)
def git_describe() -> Optional[str]:
    """
    Best-effort: return something like 'v0.1.0-12-gabcdef1-dirty'
    or None if we're not in a git repo or git is missing.
    """
    try:
        out = subprocess.check_output(
            ["git", "describe", "--tags", "--dirty", "--always"],
            stderr=subprocess.DEVNULL,
        )
        return out.decode("utf-8").strip()
    except (OSError, subprocess.SubprocessError):
        return None


def version_with_git() -> str:
    """
    Return a helpful version string for logs, e.g. '0.1.0+v0.1.0-12-gabcdef1'
    or just '0.1.0' if git is not present.
    """
    desc = git_describe()
    return f"{__version__}+{desc}" if desc else __version__


__all__ = [
    "__version__",
    "CIRCUIT_VERSION",
    "SUPPORTED_TRACE_VERSIONS",
    "SUPPORTED_CIRCUIT_VERSIONS",
    "normalize_version",
    "check_trace_version",
    "check_circuit_version",
    "git_describe",
    "version_with_git",
]
