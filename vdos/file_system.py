"""In-memory DOS volume backed by a flat file map and a directory key set."""

from __future__ import annotations

import locale
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from vdos.glob_matcher import GlobMatcher
from vdos.paths import SEPARATOR, directory_key, resolve, split_path

logger = logging.getLogger("vdos.fs")

EXECUTABLE_EXTENSIONS = ("exe", "com", "bat")
TEXT_EXTENSIONS = ("txt", "bat", "sys", "ini", "cfg")


class FileKind(str, Enum):
    TEXT = "text"
    EXECUTABLE = "executable"
    BINARY = "binary"


def file_extension(name: str) -> str:
    """Return the text after the last ``.`` of *name* (``""`` when absent)."""

    _, dot, extension = name.rpartition(".")
    return extension if dot else ""


def kind_for_extension(extension: str) -> FileKind:
    # BAT is listed in both tables; the executable table wins.
    lowered = extension.lower()
    if lowered in EXECUTABLE_EXTENSIONS:
        return FileKind.EXECUTABLE
    if lowered in TEXT_EXTENSIONS:
        return FileKind.TEXT
    return FileKind.BINARY


def content_size(content: str) -> int:
    return len(content.encode("utf-8"))


def dos_date(moment: datetime) -> str:
    return moment.strftime("%m/%d/%y")


def dos_time(moment: datetime) -> str:
    return moment.strftime("%H:%M")


@dataclass
class FileRecord:
    """A single file stored on the volume."""

    name: str
    path: str
    content: str
    kind: FileKind
    size: int
    created_date: str
    created_time: str
    extension: str

    @property
    def is_directory(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "content": self.content,
            "kind": self.kind.value,
            "size": self.size,
            "created_date": self.created_date,
            "created_time": self.created_time,
            "extension": self.extension,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FileRecord":
        content = payload["content"]
        if not isinstance(content, str):
            raise TypeError("File content must be text")
        return cls(
            name=str(payload["name"]),
            path=str(payload["path"]),
            content=content,
            kind=FileKind(payload["kind"]),
            size=content_size(content),
            created_date=str(payload.get("created_date", "")),
            created_time=str(payload.get("created_time", "")),
            extension=str(payload.get("extension", "")),
        )


@dataclass
class DirectoryEntry:
    """A subdirectory as reported by a listing; never stored."""

    name: str
    path: str
    date: str
    time: str
    kind: str = "directory"
    size: Optional[int] = None

    @property
    def is_directory(self) -> bool:
        return True


ListingEntry = Union[DirectoryEntry, FileRecord]


def _listing_order(entry: ListingEntry) -> Tuple[int, str]:
    return (0 if entry.is_directory else 1, locale.strxfrm(entry.name))


class VirtualFileSystem:
    """Simulated disk volume.

    Files live in ``files`` keyed by their normalized path; directories are
    plain keys in ``directories``. Parent/child relationships are derived by
    prefix comparison at query time.

    Every operation reports failure through its return value (``False`` or
    ``None``) and never raises for a missing or conflicting path.

    Example:
        >>> fs = VirtualFileSystem()
        >>> fs.create_file("C:\\\\A\\\\B.TXT", "hi")
        True
        >>> [entry.name for entry in fs.list_directory("C:\\\\A")]
        ['B.TXT']
    """

    def __init__(
        self,
        drive: str = "C",
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.drive = drive.rstrip(":").upper()
        self.root = f"{self.drive}:{SEPARATOR}"
        self._roots = frozenset({f"{self.drive}:", self.root})
        self.clock: Callable[[], datetime] = clock or datetime.now
        self.files: Dict[str, FileRecord] = {}
        self.directories: Set[str] = set(self._roots)

    # -------------------- keys ---------------------------------------
    def file_key(self, path: str) -> str:
        return resolve(self.root, path)

    def directory_key(self, path: str) -> str:
        return directory_key(resolve(self.root, path))

    def is_root(self, path: str) -> bool:
        return self.directory_key(path) in self._roots

    # -------------------- queries ------------------------------------
    def get_file(self, path: str) -> Optional[FileRecord]:
        return self.files.get(self.file_key(path))

    def file_exists(self, path: str) -> bool:
        return self.file_key(path) in self.files

    def directory_exists(self, path: str) -> bool:
        return self.directory_key(path) in self.directories

    def read_file(self, path: str) -> Optional[str]:
        record = self.files.get(self.file_key(path))
        return record.content if record else None

    # -------------------- file operations ----------------------------
    def create_file(
        self,
        path: str,
        content: str = "",
        kind: Optional[Union[FileKind, str]] = None,
    ) -> bool:
        """Store a new file, creating its immediate parent directory if needed.

        Only the direct parent is synthesized; missing ancestors above it are
        not. Returns ``False`` when a file already exists at *path*, when
        *path* names a drive root, or when *kind* is not a known file kind.
        """

        key = self.file_key(path)
        if key in self.files:
            logger.debug("create_file: %s already exists", key)
            return False

        parent, name = split_path(key)
        if key in self._roots or not name:
            logger.debug("create_file: %s is a drive root", key)
            return False

        extension = file_extension(name)
        try:
            file_kind = FileKind(kind) if kind is not None else kind_for_extension(extension)
        except ValueError:
            logger.debug("create_file: unknown kind %r for %s", kind, key)
            return False

        if parent and parent not in self.directories:
            self.create_directory(parent)

        now = self.clock()
        self.files[key] = FileRecord(
            name=name,
            path=key,
            content=content,
            kind=file_kind,
            size=content_size(content),
            created_date=dos_date(now),
            created_time=dos_time(now),
            extension=extension,
        )
        logger.debug("create_file: %s (%d bytes)", key, self.files[key].size)
        return True

    def write_file(self, path: str, content: str) -> bool:
        record = self.files.get(self.file_key(path))
        if record is None:
            return False
        now = self.clock()
        record.content = content
        record.size = content_size(content)
        record.created_date = dos_date(now)
        record.created_time = dos_time(now)
        logger.debug("write_file: %s (%d bytes)", record.path, record.size)
        return True

    def delete_file(self, path: str) -> bool:
        key = self.file_key(path)
        if self.files.pop(key, None) is None:
            return False
        logger.debug("delete_file: %s", key)
        return True

    def copy_file(self, source: str, destination: str) -> bool:
        content = self.read_file(source)
        if content is None:
            return False
        return self.create_file(destination, content)

    # -------------------- directory operations -----------------------
    def create_directory(self, path: str) -> bool:
        """Add a directory key. Missing parents are not created."""

        key = self.directory_key(path)
        if key in self.directories:
            return False
        self.directories.add(key)
        logger.debug("create_directory: %s", key)
        return True

    def remove_directory(self, path: str) -> bool:
        """Remove a directory key when no file lives beneath it.

        Only files are checked: an empty nested directory key does not block
        removal and is left behind.
        """

        key = self.directory_key(path)
        if key in self._roots or key not in self.directories:
            return False
        prefix = key + SEPARATOR
        if any(file_path.startswith(prefix) for file_path in self.files):
            logger.debug("remove_directory: %s is not empty", key)
            return False
        self.directories.discard(key)
        logger.debug("remove_directory: %s", key)
        return True

    def list_directory(self, path: str) -> Optional[List[ListingEntry]]:
        """Return the direct children of *path*, directories first.

        Returns ``None`` only when *path* is not a known directory; an empty
        directory yields an empty list.
        """

        key = self.directory_key(path)
        if key not in self.directories:
            return None

        base = key.rstrip(SEPARATOR)
        prefix = base + SEPARATOR
        entries: List[ListingEntry] = []

        for record in self.files.values():
            parent, _ = split_path(record.path)
            if parent.rstrip(SEPARATOR) == base:
                entries.append(record)

        now = self.clock()
        for directory in self.directories:
            if not directory.startswith(prefix):
                continue
            rest = directory[len(prefix):]
            if rest and SEPARATOR not in rest:
                entries.append(
                    DirectoryEntry(
                        name=rest,
                        path=directory,
                        date=dos_date(now),
                        time=dos_time(now),
                    )
                )

        entries.sort(key=_listing_order)
        return entries

    # -------------------- scans --------------------------------------
    def search_files(self, pattern: str, root: Optional[str] = None) -> List[FileRecord]:
        """Return files under *root* whose name matches the wildcard *pattern*.

        Containment is a raw prefix test on the normalized root, so ``C:\\A``
        also covers ``C:\\AB\\...``.
        """

        prefix = self.file_key(root if root is not None else self.root)
        matcher = GlobMatcher.compile(pattern)
        return [
            record
            for file_path, record in self.files.items()
            if file_path.startswith(prefix) and matcher.test(record.name)
        ]

    def directory_size(self, path: str) -> Tuple[int, int]:
        """Return ``(total bytes, file count)`` for every file under *path*."""

        prefix = self.file_key(path)
        total = 0
        count = 0
        for file_path, record in self.files.items():
            if file_path.startswith(prefix):
                total += record.size
                count += 1
        return total, count

    def create_archive(self, path: str) -> Dict[str, Any]:
        """Bundle every file under *path* with paths relative to it."""

        prefix = self.file_key(path)
        files = [
            {
                "path": file_path[len(prefix):],
                "content": record.content,
                "size": record.size,
            }
            for file_path, record in self.files.items()
            if file_path.startswith(prefix)
        ]
        now = self.clock()
        return {
            "directory": prefix,
            "files": files,
            "total_size": sum(entry["size"] for entry in files),
            "created": f"{dos_date(now)} {dos_time(now)}",
        }

    # -------------------- snapshots ----------------------------------
    def export(self) -> Dict[str, Any]:
        return {
            "files": [[key, record.to_dict()] for key, record in self.files.items()],
            "directories": sorted(self.directories),
            "timestamp": self.clock().isoformat(),
        }

    def import_snapshot(self, snapshot: Mapping[str, Any]) -> bool:
        """Replace the whole volume with *snapshot*.

        A malformed snapshot returns ``False`` and leaves the volume as it
        was. The drive roots are always restored.
        """

        try:
            files = {
                str(key): FileRecord.from_dict(payload)
                for key, payload in snapshot.get("files", [])
            }
            directories = {str(key) for key in snapshot.get("directories", [])}
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Rejected malformed snapshot: %s", exc)
            return False

        self.files = files
        self.directories = directories | self._roots
        logger.debug(
            "import_snapshot: %d files, %d directories", len(files), len(self.directories)
        )
        return True


__all__ = [
    "DirectoryEntry",
    "EXECUTABLE_EXTENSIONS",
    "FileKind",
    "FileRecord",
    "ListingEntry",
    "TEXT_EXTENSIONS",
    "VirtualFileSystem",
    "content_size",
    "file_extension",
    "kind_for_extension",
]
