# pnpgen/fs.py
"""
fs.py - filesystem operations used by the map generator

- create_alias: relative symlink standing in for a virtual package instance
- canonicalize: realpath of the project root
- atomic_write_text: write the generated artifact without ever leaving a partial file
"""

from __future__ import annotations

import os
import tempfile
from typing import Union

from pnpgen.errors import AliasCreationError
from pnpgen.logging import get_logger

logger = get_logger("fs")

PathLike = Union[str, "os.PathLike[str]"]


def alias_path(real_location: str, digest: str, prefix: str = "pnp-") -> str:
    real_location = real_location.rstrip("/\\") or real_location
    return os.path.join(os.path.dirname(real_location), f"{prefix}{digest}")


def create_alias(real_location: str, digest: str, prefix: str = "pnp-") -> str:
    """
    Create (or keep) dirname(real_location)/<prefix><digest> as a symlink to
    real_location and return the alias path.
    """
    real_location = real_location.rstrip("/\\") or real_location
    alias = alias_path(real_location, digest, prefix)
    target = os.path.relpath(real_location, os.path.dirname(alias))

    try:
        if os.path.islink(alias):
            if os.readlink(alias) == target:
                return alias
            os.unlink(alias)
        elif os.path.isdir(alias):
            raise AliasCreationError(f"cannot alias {real_location}: {alias} is a directory")
        elif os.path.lexists(alias):
            os.unlink(alias)
        os.symlink(target, alias, target_is_directory=True)
    except OSError as e:
        raise AliasCreationError(f"cannot alias {real_location} as {alias}: {e}") from e

    logger.debug("fs: aliased %s -> %s", alias, target)
    return alias


def canonicalize(path: PathLike) -> str:
    return os.path.realpath(os.fspath(path))


def atomic_write_text(path: PathLike, text: str) -> None:
    path = os.fspath(path)
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".pnpgen-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
