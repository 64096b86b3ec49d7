"""Host filesystem helpers that behave well with container bind mounts."""

from __future__ import annotations

import os
import shutil
import stat
import sys
import tempfile

__all__ = ["temp_dir", "copy", "copy_file"]


def temp_dir(dir: str | None = None, prefix: str | None = None) -> str:
    """Create a temporary directory whose path can be mounted into containers."""
    name = tempfile.mkdtemp(prefix=prefix or None, dir=dir or None)
    # on macOS the temp dir usually lives under /var, which is not mountable;
    # /private/var is the mountable equivalent
    if sys.platform == "darwin" and name.startswith("/var/"):
        name = os.path.join("/private", name.lstrip("/"))
    return name


def copy(src: str, dst: str) -> None:
    """Copy src to dst recursively, keeping modes and dereferencing symlinks."""
    info = os.lstat(src)
    parent = os.path.dirname(dst)
    if parent:
        os.makedirs(parent, exist_ok=True)
    _copy(src, dst, info)


def copy_file(src: str, dst: str) -> None:
    """Copy the regular file src to dst, keeping its mode."""
    _copy_file(src, dst, os.stat(src))


def _copy(src: str, dst: str, info: os.stat_result) -> None:
    if stat.S_ISLNK(info.st_mode):
        _copy_symlink(src, dst)
    elif stat.S_ISDIR(info.st_mode):
        _copy_dir(src, dst, info)
    else:
        _copy_file(src, dst, info)


def _copy_file(src: str, dst: str, info: os.stat_result) -> None:
    with open(src, "rb") as source:
        fd = os.open(dst, os.O_RDWR | os.O_CREAT | os.O_TRUNC, stat.S_IMODE(info.st_mode))
        with os.fdopen(fd, "wb") as target:
            shutil.copyfileobj(source, target)
            target.flush()
            os.fsync(target.fileno())


def _copy_symlink(src: str, dst: str) -> None:
    real_src = os.path.realpath(src, strict=True)
    _copy(real_src, dst, os.lstat(real_src))


def _copy_dir(src: str, dst: str, info: os.stat_result) -> None:
    os.makedirs(dst, mode=stat.S_IMODE(info.st_mode), exist_ok=True)
    for name in sorted(os.listdir(src)):
        entry_src = os.path.join(src, name)
        _copy(entry_src, os.path.join(dst, name), os.lstat(entry_src))