"""Mapping between real absolute paths and store-relative paths.

The store mirrors the real filesystem beneath its root: ``/home/u/a.txt``
lives at ``<store>/home/u/a.txt``. Only normalized paths are mapped, so
every store file has exactly one absolute name.
"""

from __future__ import annotations

import os
import posixpath
from pathlib import Path
from urllib.parse import quote

from git_backup.core import NotAbsolutePathError, StorePathError

SEPARATOR = "/"


def is_absolute(path: str) -> bool:
    """True iff the first character of ``path`` is the path separator."""
    return path[:1] == SEPARATOR


def is_normalized(abs_path: str) -> bool:
    """Whether ``abs_path`` names a file in its one canonical spelling.

    Rejects ``.``/``..`` segments, repeated or trailing separators, and the
    root itself.
    """
    if abs_path == SEPARATOR or abs_path.startswith(SEPARATOR * 2):
        return False
    return posixpath.normpath(abs_path) == abs_path


def to_store_relative(abs_path: str) -> str:
    """Strip exactly one leading separator from ``abs_path``.

    Raises:
        NotAbsolutePathError: ``abs_path`` is empty, relative or not
            normalized.
    """
    if not is_absolute(abs_path) or not is_normalized(abs_path):
        raise NotAbsolutePathError(abs_path)
    return abs_path[1:]


def to_absolute(rel_path: str) -> str:
    """Inverse of :func:`to_store_relative`."""
    return SEPARATOR + rel_path


def trailer_value(rel_path: str) -> str:
    """Percent-encoded form of ``rel_path`` for commit trailers.

    Works on the raw filesystem bytes, so names that are not valid UTF-8
    or that end in whitespace survive the commit message unchanged.
    Plain ASCII names without special characters encode to themselves.
    """
    return quote(os.fsencode(rel_path), safe="/")


def store_file(store_root: Path, rel_path: str) -> Path:
    """Location of ``rel_path`` inside ``store_root``.

    Raises:
        StorePathError: The path is not normalized or would resolve outside
            the store.
    """
    root = store_root.resolve()
    candidate = (root / rel_path).resolve()
    if (
        posixpath.normpath(rel_path) != rel_path
        or rel_path.startswith(SEPARATOR)
        or not candidate.is_relative_to(root)
        or candidate == root
    ):
        raise StorePathError(f"Path escapes backup store: {to_absolute(rel_path)}")
    return root / rel_path
