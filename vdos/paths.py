"""Path normalisation and resolution for the virtual DOS volume.

Keys are upper-case strings using a single backslash separator. Directory
containment is never stored; callers compare prefixes of these keys.
"""

from __future__ import annotations

import re
from typing import Tuple

SEPARATOR = "\\"
DRIVE_MARKER = ":"

_SEPARATOR_RUN = re.compile(r"[/\\]+")


def final_component(path: str) -> str:
    """Return the text after the last separator of *path*."""

    return path.rsplit(SEPARATOR, 1)[-1]


def is_directory_like(path: str) -> bool:
    """Classify *path* as a directory using the DOS 8.3 heuristic.

    A path is directory-like when it ends with a separator or when its final
    component has no ``.``. Directories named like ``FOO.D`` are therefore
    treated as files.
    """

    if path.endswith(SEPARATOR):
        return True
    return "." not in final_component(path)


def normalize(raw: str) -> str:
    """Return the canonical key for *raw*.

    Runs of ``/`` and ``\\`` collapse into one backslash and the result is
    upper-cased. A trailing separator survives only when the component in
    front of it is directory-like, so ``C:\\A\\`` stays as is while
    ``C:\\A\\B.TXT\\`` becomes ``C:\\A\\B.TXT``.
    """

    normalized = _SEPARATOR_RUN.sub(lambda _: SEPARATOR, raw).upper()
    if normalized.endswith(SEPARATOR) and not is_directory_like(normalized[:-1]):
        normalized = normalized[:-1]
    return normalized


def drive_of(path: str) -> str:
    return path.split(SEPARATOR, 1)[0]


def directory_key(path: str) -> str:
    """Normalize *path* and drop a trailing separator unless it is a drive root."""

    key = normalize(path)
    if key.endswith(SEPARATOR):
        head = key[:-1]
        if head and not head.endswith(DRIVE_MARKER):
            return head
    return key


def parent_directory(path: str) -> str:
    """Return the parent of *path*, bottoming out at the drive root."""

    parts = path.split(SEPARATOR)
    if len(parts) <= 2:
        return parts[0] + SEPARATOR
    return SEPARATOR.join(parts[:-1])


def split_path(path: str) -> Tuple[str, str]:
    """Split a key into ``(parent directory key, name)``.

    The parent of a top-level entry is the drive root (``C:\\``). A key with
    no separator has no parent and ``""`` is returned in its place.
    """

    head, sep, tail = path.rpartition(SEPARATOR)
    if not sep:
        return "", path
    if not head or head.endswith(DRIVE_MARKER):
        head += SEPARATOR
    return head, tail


def join_path(directory: str, name: str) -> str:
    if directory.endswith(SEPARATOR):
        return directory + name
    return directory + SEPARATOR + name


def resolve(current: str, target: str) -> str:
    """Resolve *target* against the *current* directory key.

    Rules are tried in order: absolute paths (containing ``:``), paths rooted
    at the current drive, the whole tokens ``.`` and ``..``, and finally plain
    relative paths. ``..`` and ``.`` are not interpreted inside longer paths.
    """

    if DRIVE_MARKER in target:
        return normalize(target)
    if target.startswith(("\\", "/")):
        return normalize(drive_of(current) + target)
    if target in ("", "."):
        return current
    if target == "..":
        return parent_directory(current)
    return normalize(join_path(current, target))


__all__ = [
    "SEPARATOR",
    "directory_key",
    "drive_of",
    "final_component",
    "is_directory_like",
    "join_path",
    "normalize",
    "parent_directory",
    "resolve",
    "split_path",
]
