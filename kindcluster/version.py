"""The CLI version."""

from __future__ import annotations

import platform
import sys

__all__ = [
    "VERSION_CORE",
    "VERSION_PRE_RELEASE",
    "GIT_COMMIT",
    "version",
    "display_version",
    "truncate",
]

VERSION_CORE = "0.6.0"
"""The core part of the semantic version."""

VERSION_PRE_RELEASE = "alpha"
"""The pre-release part of the semantic version."""

GIT_COMMIT = ""
"""The commit the package was built from, if known; set at build time."""


def version() -> str:
    """Return the semantic version, with build metadata for pre-releases."""
    result = VERSION_CORE
    if VERSION_PRE_RELEASE:
        result += "-" + VERSION_PRE_RELEASE
        if GIT_COMMIT:
            # a 14 character short hash, like Kubernetes
            result += "+" + truncate(GIT_COMMIT, 14)
    return result


def display_version() -> str:
    """Return the version as the version command shows it."""
    runtime = "python" + platform.python_version()
    return f"kind v{version()} {runtime} {sys.platform}/{platform.machine().lower()}"


def truncate(s: str, max_len: int) -> str:
    """Return s cut to at most max_len characters."""
    if len(s) < max_len:
        return s
    return s[:max_len]