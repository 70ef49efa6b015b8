"""Path canonicalization.

Every path the session stores or compares is canonical: absolute, forward
slashes only, no duplicate slashes and no trailing slash except for the root.
"""

import posixpath
import re
from typing import Optional

from core.errors import InvalidPathError

ROOT = "/"

_SLASHES = re.compile(r"/+")


def to_canonical(path: Optional[str]) -> str:
    """
    Convert a path to canonical form.

    Empty input and "." both resolve to the root.

    Args:
        path: Raw path, possibly relative or using backslashes.

    Returns:
        Canonical absolute path.
    """
    if not path or path == ".":
        return ROOT
    path = path.replace("\\", "/")
    if not path.startswith("/"):
        path = "/" + path
    path = _SLASHES.sub("/", path)
    path = posixpath.normpath(path)
    # normpath keeps a leading double slash
    path = _SLASHES.sub("/", path)
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def normalize_path(path: Optional[str], cwd: str = ROOT) -> str:
    """
    Resolve a user supplied path against a working directory.

    Args:
        path: Path typed by the user or passed on the command line.
        cwd: Canonical working directory used for relative paths.

    Returns:
        Canonical absolute path.

    Raises:
        InvalidPathError: If the path is empty or contains a null byte.
    """
    if path is None or not path.strip():
        raise InvalidPathError("Invalid path")
    if "\x00" in path:
        raise InvalidPathError("Invalid path", path=path)
    path = path.strip().replace("\\", "/")
    if not path.startswith("/"):
        path = posixpath.join(to_canonical(cwd), path)
    return to_canonical(path)


def parent_dir(path: Optional[str]) -> str:
    """Return the canonical parent directory, the root for root or empty input."""
    if not path:
        return ROOT
    path = to_canonical(path)
    if path == ROOT:
        return ROOT
    return to_canonical(posixpath.dirname(path))


def base_name(path: str) -> str:
    """Return the final component of a canonical path."""
    return posixpath.basename(to_canonical(path))


def join(directory: str, name: str) -> str:
    """Join a directory and a child name into a canonical path."""
    return to_canonical(posixpath.join(to_canonical(directory), name))
