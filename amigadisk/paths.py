"""Path names on Amiga volumes: lookup modes, name checks and splitting.

A path may start with a volume name followed by ``:``; the rest is a
list of entry names separated by ``/``.
"""

from __future__ import annotations

from enum import IntFlag


class PathError(ValueError):
    """Raised for invalid names or paths that cannot be resolved."""


class LookupMode(IntFlag):
    """Flags controlling how a path is resolved to an entry."""

    NONE = 0
    EXPECT_FILE = 0b1
    EXPECT_DIR = 0b10
    THROW_ERROR = 0b100
    WARN = 0b1000
    EXPECT_EXIST = 0b10000
    EXPECT_VALID_CHECKSUM = 0b100000


def check_name(name: str) -> str:
    """Return ``name`` if it is usable as an entry or volume name.

    Raises PathError when it contains ``/`` or ``:``.
    """
    if ":" in name or "/" in name:
        raise PathError("File, directory or volume names cannot contain `/` or `:`.")
    return name


def split_path(path: str) -> tuple[str | None, list[str]]:
    """Split ``path`` into its volume name and its entry names.

    The volume is the text before the first ``:``, or None when the path
    has no ``:``.  The remainder is split on ``/``; a single trailing
    separator does not produce an empty name, while inner empty names
    are kept.
    """
    volume: str | None = None
    rest = path
    if ":" in path:
        volume, rest = path.split(":", 1)
    if not rest:
        return volume, []
    parts = rest.split("/")
    if parts[-1] == "":
        parts.pop()
    return volume, parts