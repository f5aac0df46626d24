#!/usr/bin/env python3
"""Interactive vdos command shell over the virtual disk volume."""

from __future__ import annotations

import argparse
import datetime as _dt
import json
import logging
import math
import readline
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from vdos.config import ShellConfig
from vdos.file_system import FileKind, FileRecord, ListingEntry, VirtualFileSystem
from vdos.history import CommandHistory
from vdos.paths import SEPARATOR, join_path, resolve, split_path
from vdos.snapshots import SnapshotError, SnapshotSigner, load_snapshot, save_snapshot
from vdos.volume import seed_default_volume

OS_NAME = "DOS Emulator v1.0"
EXECUTABLE_SUFFIXES = ("", ".exe", ".com", ".bat")
TREE_DEPTH_LIMIT = 10


def now_utc() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def isoformat_utc(dt: _dt.datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Command invocation/result types
# ---------------------------------------------------------------------------


@dataclass
class CommandInvocation:
    name: str
    args: List[str]
    line: str = ""


@dataclass
class CommandResult:
    stdout: str = ""
    stderr: str = ""
    status: int = 0
    audit: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Shell session and command registry
# ---------------------------------------------------------------------------


Handler = Callable[["ShellSession", CommandInvocation], CommandResult]


@dataclass
class Command:
    name: str
    summary: str
    usage: str
    handler: Handler
    aliases: Sequence[str] = field(default_factory=tuple)
    long_help: Optional[str] = None

    def help_text(self) -> str:
        return self.long_help or self.summary


class CommandRegistry:
    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}
        self._aliases: Dict[str, str] = {}

    def register(self, command: Command) -> None:
        self._commands[command.name] = command
        for alias in command.aliases:
            self._aliases[alias] = command.name

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(self._aliases.get(name, name))

    def names(self) -> List[str]:
        return sorted(self._commands.keys())

    def all_names(self) -> List[str]:
        return sorted([*self._commands.keys(), *self._aliases.keys()])

    def values(self) -> Iterable[Command]:
        return self._commands.values()


class TranscriptLogger:
    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)
        timestamp = now_utc().strftime("%Y%m%dT%H%M%SZ")
        self._path = self._root / f"session-{timestamp}.jsonl"
        self._file = self._path.open("a", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def log(self, payload: Dict[str, Any]) -> None:
        self._file.write(json.dumps(payload, ensure_ascii=False) + "\n")
        self._file.flush()

    def close(self) -> None:
        self._file.close()


class ShellSession:
    """State of one shell: volume, current directory, history and output.

    Lines go through :meth:`submit`, which renders the prompt echo and the
    command output into ``output`` and forwards every rendered chunk to the
    optional *sink*.
    """

    def __init__(
        self,
        fs: Optional[VirtualFileSystem] = None,
        *,
        config: Optional[ShellConfig] = None,
        sink: Optional[Callable[[str], None]] = None,
        register_builtins: bool = True,
        seed: bool = True,
    ) -> None:
        self.config = config or ShellConfig.from_env()
        if fs is None:
            fs = VirtualFileSystem(drive=self.config.drive)
            if seed:
                seed_default_volume(fs)
        self.fs = fs
        self.cwd = fs.root
        self.registry = CommandRegistry()
        self.history = CommandHistory(self.config.history_limit)
        self.output: List[str] = []
        self.sink = sink
        self.running = True
        self.start_time = now_utc()
        self.logger = logging.getLogger("vdos.shell")
        if self.config.snapshot_key:
            self.signer = SnapshotSigner.from_seed(self.config.snapshot_key)
        else:
            self.signer = SnapshotSigner.generate()
        self.transcript: Optional[TranscriptLogger] = None
        if self.config.transcript_dir is not None:
            self.transcript = TranscriptLogger(self.config.transcript_dir)
        if register_builtins:
            for definition in builtin_commands():
                self.register(definition)

    # -------------------- registry helpers --------------------
    def register(self, command: Command) -> None:
        self.registry.register(command)

    # -------------------- output ------------------------------
    @property
    def prompt(self) -> str:
        return f"{self.cwd}>"

    def print(self, text: str) -> None:
        self.output.extend(text.split("\n"))
        if self.sink is not None:
            self.sink(text)

    def _render(self, text: str) -> None:
        if not text:
            return
        self.print(text[:-1] if text.endswith("\n") else text)

    # -------------------- execution ---------------------------
    def submit(self, line: str) -> CommandResult:
        """Run one input line to completion and render its output."""

        if not line.strip():
            return CommandResult()

        self.print(f"{self.cwd}> {line}")
        self.history.push(line)

        tokens = line.split()
        invocation = CommandInvocation(name=tokens[0].lower(), args=tokens[1:], line=line)
        result = self.execute(invocation)
        self._render(result.stdout)
        self._render(result.stderr)
        self._audit(result)
        return result

    def execute(self, invocation: CommandInvocation) -> CommandResult:
        command = self.registry.get(invocation.name)
        try:
            if command is None:
                result = self.run_executable(invocation)
            else:
                result = command.handler(self, invocation)
        except Exception as exc:  # a failing handler must not end the session
            self.logger.exception("Command %s failed", invocation.name)
            result = CommandResult(status=1, stderr=f"Error: {exc}\n")

        result.audit.setdefault("command", invocation.name)
        result.audit.setdefault("args", invocation.args)
        result.audit.setdefault("status", result.status)
        result.audit.setdefault("timestamp", isoformat_utc(now_utc()))
        return result

    def run_executable(self, invocation: CommandInvocation) -> CommandResult:
        for suffix in EXECUTABLE_SUFFIXES:
            record = self.fs.get_file(self.resolve_path(invocation.name + suffix))
            if record is not None and record.kind is FileKind.EXECUTABLE:
                return CommandResult(stdout=f"Running {record.name}...\n")
        return CommandResult(
            status=127,
            stderr=(
                f"'{invocation.name}' is not recognized as an internal or external command,\n"
                "operable program or batch file.\n"
            ),
        )

    def recall_history(self, direction: str) -> str:
        return self.history.recall(direction)

    def _audit(self, result: CommandResult) -> None:
        if self.transcript is None:
            return
        payload = {
            "ts": isoformat_utc(now_utc()),
            "cwd": self.cwd,
            **result.audit,
            "stdout": result.stdout,
            "stderr": result.stderr,
        }
        self.transcript.log(payload)

    # -------------------- utilities ---------------------------
    def resolve_path(self, target: str) -> str:
        return resolve(self.cwd, target)

    def change_directory(self, target: str) -> CommandResult:
        resolved = self.resolve_path(target)
        if not self.fs.directory_exists(resolved):
            return CommandResult(status=1, stderr=f"Directory not found: {target}\n")
        key = self.fs.directory_key(resolved)
        if not key.endswith(SEPARATOR) and key.endswith(":"):
            key += SEPARATOR
        self.cwd = key
        return CommandResult()

    def uptime(self) -> _dt.timedelta:
        return now_utc() - self.start_time

    def close(self) -> None:
        if self.transcript is not None:
            self.transcript.close()
            self.transcript = None


# ---------------------------------------------------------------------------
# Built-in command implementations
# ---------------------------------------------------------------------------


def command(name: str, summary: str, usage: str, **kwargs: Any) -> Callable[[Handler], Handler]:
    aliases = tuple(kwargs.pop("aliases", ()))
    long_help = kwargs.pop("long_help", None)

    def decorator(func: Handler) -> Handler:
        func.__command_definition__ = Command(
            name=name,
            summary=summary,
            usage=usage,
            handler=func,
            aliases=aliases,
            long_help=long_help,
        )
        return func

    return decorator


def builtin_commands() -> List[Command]:
    return [
        obj.__command_definition__
        for obj in list(globals().values())
        if callable(obj) and hasattr(obj, "__command_definition__")
    ]


def _usage_error(usage: str) -> CommandResult:
    return CommandResult(status=1, stderr=f"Usage: {usage}\n")


def _file_not_found(token: str) -> CommandResult:
    return CommandResult(status=1, stderr=f"File not found: {token}\n")


def _lines(body: Iterable[str]) -> str:
    return "".join(f"{line}\n" for line in body)


def _read(shell: ShellSession, token: str) -> Optional[str]:
    return shell.fs.read_file(shell.resolve_path(token))


def _count_argument(args: Sequence[str], default: int = 10) -> int:
    if len(args) < 2:
        return default
    try:
        count = int(args[1])
    except ValueError:
        return default
    return count if count > 0 else default


# -------------------- system commands -----------------------


@command(
    name="help",
    summary="Show available commands",
    usage="help [command]",
)
def help_command(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        entries = ["Available commands:"]
        for name in shell.registry.names():
            definition = shell.registry.get(name)
            entries.append(f"  {name:15s} - {definition.summary}")
        return CommandResult(stdout=_lines(entries))
    name = invocation.args[0].lower()
    definition = shell.registry.get(name)
    if not definition:
        return CommandResult(status=1, stderr=f"Unknown command: {name}\n")
    body = [name.upper(), "-" * len(name), definition.help_text(), f"Usage: {definition.usage}"]
    if definition.aliases:
        body.append(f"Aliases: {', '.join(definition.aliases)}")
    return CommandResult(stdout=_lines(body))


@command(
    name="cls",
    summary="Clear screen",
    usage="cls",
    aliases=("clear",),
)
def cls(shell: ShellSession, _: CommandInvocation) -> CommandResult:
    shell.output.clear()
    return CommandResult()


@command(
    name="ver",
    summary="Show version",
    usage="ver",
)
def ver(shell: ShellSession, _: CommandInvocation) -> CommandResult:
    return CommandResult(stdout=f"{OS_NAME}\nCopyright (c) 2024 DOS Emulator Team\n")


@command(
    name="time",
    summary="Show current time",
    usage="time",
)
def time_command(shell: ShellSession, _: CommandInvocation) -> CommandResult:
    return CommandResult(stdout=f"Current time is {shell.fs.clock():%H:%M:%S}\n")


@command(
    name="date",
    summary="Show current date",
    usage="date",
)
def date_command(shell: ShellSession, _: CommandInvocation) -> CommandResult:
    return CommandResult(stdout=f"Current date is {shell.fs.clock():%m/%d/%Y}\n")


@command(
    name="mem",
    summary="Show memory usage",
    usage="mem",
)
def mem(shell: ShellSession, _: CommandInvocation) -> CommandResult:
    total = shell.config.memory_kb
    stored, _count = shell.fs.directory_size(shell.fs.root)
    used = min(total, math.ceil(stored / 1024))
    free = total - used
    body = [
        "Memory Type     Total =  Used  +  Free",
        f"Conventional     {total}K     {used}K    {free}K",
        f"Total            {total}K     {used}K    {free}K",
    ]
    return CommandResult(stdout=_lines(body))


@command(
    name="echo",
    summary="Echo text",
    usage="echo <text>",
)
def echo(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    return CommandResult(stdout=" ".join(invocation.args) + "\n")


@command(
    name="exit",
    summary="Exit the shell",
    usage="exit",
    aliases=("quit",),
)
def exit_command(shell: ShellSession, _: CommandInvocation) -> CommandResult:
    shell.running = False
    return CommandResult()


# -------------------- filesystem commands -------------------


def _format_entry(entry: ListingEntry) -> str:
    if entry.is_directory:
        size = "<DIR>".rjust(10)
        stamp = f"{entry.date}  {entry.time}"
    else:
        size = str(entry.size).rjust(10)
        stamp = f"{entry.created_date}  {entry.created_time}"
    return f"{stamp}    {size} {entry.name}"


@command(
    name="dir",
    summary="List directory contents",
    usage="dir [path]",
)
def dir_command(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    target = shell.resolve_path(invocation.args[0]) if invocation.args else shell.cwd
    entries = shell.fs.list_directory(target)
    if entries is None:
        return CommandResult(status=1, stdout=f"Directory of {target}\n", stderr="File not found\n")
    body = [f"Directory of {target}", ""]
    body.extend(_format_entry(entry) for entry in entries)
    body.extend(["", f"    {len(entries)} file(s)"])
    return CommandResult(stdout=_lines(body))


@command(
    name="cd",
    summary="Change directory",
    usage="cd [path]",
    aliases=("chdir",),
)
def cd(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return CommandResult(stdout=shell.cwd + "\n")
    return shell.change_directory(invocation.args[0])


@command(
    name="type",
    summary="Display file contents",
    usage="type <file>",
)
def type_command(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("type <filename>")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    return CommandResult(stdout=content + "\n")


@command(
    name="copy",
    summary="Copy file",
    usage="copy <source> <destination>",
)
def copy(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if len(invocation.args) < 2:
        return _usage_error("copy <source> <destination>")
    source = shell.resolve_path(invocation.args[0])
    destination = shell.resolve_path(invocation.args[1])
    if not shell.fs.file_exists(source):
        return _file_not_found(invocation.args[0])
    if shell.fs.directory_exists(destination) and not shell.fs.file_exists(destination):
        _, name = split_path(shell.fs.file_key(source))
        destination = join_path(shell.fs.directory_key(destination), name)
    if not shell.fs.copy_file(source, destination):
        return CommandResult(status=1, stderr=f"File already exists: {invocation.args[1]}\n")
    return CommandResult(stdout="        1 file(s) copied\n")


@command(
    name="del",
    summary="Delete file",
    usage="del <file>",
    aliases=("delete", "erase"),
)
def delete(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("del <filename>")
    if shell.fs.delete_file(shell.resolve_path(invocation.args[0])):
        return CommandResult(stdout=f"File deleted: {invocation.args[0]}\n")
    return _file_not_found(invocation.args[0])


@command(
    name="md",
    summary="Make directory",
    usage="md <dir>",
    aliases=("mkdir",),
)
def make_directory(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("md <dirname>")
    if shell.fs.create_directory(shell.resolve_path(invocation.args[0])):
        return CommandResult(stdout=f"Directory created: {invocation.args[0]}\n")
    return CommandResult(status=1, stderr=f"Directory already exists: {invocation.args[0]}\n")


@command(
    name="rd",
    summary="Remove directory",
    usage="rd <dir>",
    aliases=("rmdir",),
)
def remove_directory(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("rd <dirname>")
    token = invocation.args[0]
    target = shell.resolve_path(token)
    if not shell.fs.directory_exists(target):
        return CommandResult(status=1, stderr=f"Directory not found: {token}\n")
    if shell.fs.is_root(target):
        return CommandResult(status=1, stderr=f"Cannot remove root directory: {token}\n")
    if shell.fs.directory_key(target) == shell.fs.directory_key(shell.cwd):
        return CommandResult(status=1, stderr=f"Attempt to remove current directory: {token}\n")
    if shell.fs.remove_directory(target):
        return CommandResult(stdout=f"Directory removed: {token}\n")
    return CommandResult(status=1, stderr=f"Directory not empty: {token}\n")


@command(
    name="find",
    summary="Find files matching a wildcard pattern",
    usage="find <pattern> [directory]",
)
def find(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("find <pattern> [directory]")
    pattern = invocation.args[0]
    directory = shell.resolve_path(invocation.args[1]) if len(invocation.args) > 1 else shell.cwd
    matches = shell.fs.search_files(pattern, directory)
    if not matches:
        return CommandResult(stdout=f"No files found matching pattern: {pattern}\n")
    body = [f'Found {len(matches)} file(s) matching "{pattern}":']
    body.extend(f"  {record.path}" for record in matches)
    return CommandResult(stdout=_lines(body))


def _tree_lines(shell: ShellSession, path: str, prefix: str, depth: int) -> List[str]:
    if depth > TREE_DEPTH_LIMIT:
        return []
    entries = shell.fs.list_directory(path)
    if not entries:
        return []
    lines: List[str] = []
    for index, entry in enumerate(entries):
        last = index == len(entries) - 1
        lines.append(f"{prefix}{'└── ' if last else '├── '}{entry.name}")
        if entry.is_directory:
            lines.extend(_tree_lines(shell, entry.path, prefix + ("    " if last else "│   "), depth + 1))
    return lines


@command(
    name="tree",
    summary="Show directory tree",
    usage="tree [directory]",
)
def tree(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    target = shell.resolve_path(invocation.args[0]) if invocation.args else shell.cwd
    if not shell.fs.directory_exists(target):
        return CommandResult(status=1, stderr=f"Directory not found: {target}\n")
    return CommandResult(stdout=_lines([target, *_tree_lines(shell, target, "", 0)]))


@command(
    name="attrib",
    summary="Show file attributes",
    usage="attrib <file>",
)
def attrib(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("attrib <filename>")
    record: Optional[FileRecord] = shell.fs.get_file(shell.resolve_path(invocation.args[0]))
    if record is None:
        return _file_not_found(invocation.args[0])
    body = [
        f"File: {record.name}",
        f"Path: {record.path}",
        f"Size: {record.size} bytes",
        f"Type: {record.kind.value}",
        f"Created: {record.created_date} {record.created_time}",
        f"Extension: {record.extension or 'none'}",
    ]
    return CommandResult(stdout=_lines(body))


@command(
    name="dirsize",
    summary="Total size of files under a directory",
    usage="dirsize [directory]",
)
def dirsize(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    target = shell.resolve_path(invocation.args[0]) if invocation.args else shell.cwd
    if not shell.fs.directory_exists(target):
        return CommandResult(status=1, stderr=f"Directory not found: {target}\n")
    total, count = shell.fs.directory_size(target)
    return CommandResult(stdout=f"{count} file(s) {total} bytes in {target}\n")


@command(
    name="archive",
    summary="Summarise an archive of a directory",
    usage="archive <directory>",
)
def archive(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("archive <directory>")
    target = shell.resolve_path(invocation.args[0])
    if not shell.fs.directory_exists(target):
        return CommandResult(status=1, stderr=f"Directory not found: {invocation.args[0]}\n")
    bundle = shell.fs.create_archive(target)
    body = [f"Archive of {bundle['directory']}"]
    body.extend(f"  {entry['path']:30s} {entry['size']:>8d} bytes" for entry in bundle["files"])
    body.append(
        f"{len(bundle['files'])} file(s), {bundle['total_size']} bytes, created {bundle['created']}"
    )
    return CommandResult(stdout=_lines(body))


@command(
    name="export",
    summary="Save the volume to a signed snapshot file",
    usage="export <host-file>",
)
def export_command(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("export <host-file>")
    path = Path(invocation.args[0])
    try:
        save_snapshot(shell.fs, path, shell.signer)
    except SnapshotError as exc:
        return CommandResult(status=1, stderr=f"Export failed: {exc}\n")
    return CommandResult(stdout=f"Snapshot exported to {path}\n")


@command(
    name="import",
    summary="Replace the volume with a signed snapshot file",
    usage="import <host-file>",
)
def import_command(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("import <host-file>")
    path = Path(invocation.args[0])
    trusted = shell.signer.public_key_hex if shell.config.snapshot_key else None
    try:
        load_snapshot(shell.fs, path, trusted_key=trusted)
    except SnapshotError as exc:
        return CommandResult(status=1, stderr=f"Import failed: {exc}\n")
    if not shell.fs.directory_exists(shell.cwd):
        shell.cwd = shell.fs.root
    return CommandResult(stdout=f"Snapshot imported from {path}\n")


# -------------------- text utilities ------------------------


@command(
    name="grep",
    summary="Search text in a file",
    usage="grep <pattern> <file>",
)
def grep(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("grep <pattern> [file]")
    if len(invocation.args) < 2:
        return CommandResult(status=1, stderr="Please specify a file to search in\n")
    pattern, filename = invocation.args[0], invocation.args[1]
    content = _read(shell, filename)
    if content is None:
        return _file_not_found(filename)
    needle = pattern.lower()
    matches = [line for line in content.split("\n") if needle in line.lower()]
    if not matches:
        return CommandResult(status=1, stdout=f"No matches found in {filename}\n")
    body = [f"Found {len(matches)} match(es) in {filename}:"]
    body.extend(f"  {line}" for line in matches)
    return CommandResult(stdout=_lines(body))


@command(
    name="more",
    summary="Display file one page at a time",
    usage="more <file>",
)
def more(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("more <filename>")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    lines = content.split("\n")
    page_size = shell.config.page_size
    body: List[str] = []
    for start in range(0, len(lines), page_size):
        body.extend(lines[start:start + page_size])
        if start + page_size < len(lines):
            body.append("-- More --")
    return CommandResult(stdout=_lines(body))


@command(
    name="sort",
    summary="Sort file lines",
    usage="sort <file>",
)
def sort(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("sort <filename>")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    lines = sorted(line for line in content.split("\n") if line.strip())
    return CommandResult(stdout=_lines(["Sorted content:", *lines]))


@command(
    name="wc",
    summary="Count lines, words and characters",
    usage="wc <file>",
)
def wc(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("wc <filename>")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    lines = len(content.split("\n"))
    words = len(content.split())
    return CommandResult(stdout=f"{lines} lines, {words} words, {len(content)} characters\n")


@command(
    name="head",
    summary="Show the first lines of a file",
    usage="head <file> [lines]",
)
def head(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("head <filename> [lines]")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    count = _count_argument(invocation.args)
    body = [f"First {count} lines of {invocation.args[0]}:", *content.split("\n")[:count]]
    return CommandResult(stdout=_lines(body))


@command(
    name="tail",
    summary="Show the last lines of a file",
    usage="tail <file> [lines]",
)
def tail(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("tail <filename> [lines]")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    count = _count_argument(invocation.args)
    body = [f"Last {count} lines of {invocation.args[0]}:", *content.split("\n")[-count:]]
    return CommandResult(stdout=_lines(body))


@command(
    name="diff",
    summary="Compare two files",
    usage="diff <file1> <file2>",
)
def diff(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if len(invocation.args) < 2:
        return _usage_error("diff <file1> <file2>")
    first = _read(shell, invocation.args[0])
    if first is None:
        return _file_not_found(invocation.args[0])
    second = _read(shell, invocation.args[1])
    if second is None:
        return _file_not_found(invocation.args[1])
    if first == second:
        return CommandResult(stdout="Files are identical\n")
    delta = abs(len(first) - len(second))
    return CommandResult(status=1, stdout=f"Files are different\nSize difference: {delta} characters\n")


@command(
    name="uniq",
    summary="Show unique lines",
    usage="uniq <file>",
)
def uniq(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("uniq <filename>")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    unique = list(dict.fromkeys(content.split("\n")))
    return CommandResult(stdout=_lines(["Unique lines:", *unique]))


@command(
    name="nl",
    summary="Number file lines",
    usage="nl <file>",
)
def nl(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("nl <filename>")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    numbered = [f"{index:>6}  {line}" for index, line in enumerate(content.split("\n"), start=1)]
    return CommandResult(stdout=_lines(["Numbered lines:", *numbered]))


@command(
    name="tac",
    summary="Show file lines in reverse order",
    usage="tac <file>",
)
def tac(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("tac <filename>")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    return CommandResult(stdout=_lines(["Reversed lines:", *reversed(content.split("\n"))]))


@command(
    name="rev",
    summary="Reverse characters of each line",
    usage="rev <file>",
)
def rev(shell: ShellSession, invocation: CommandInvocation) -> CommandResult:
    if not invocation.args:
        return _usage_error("rev <filename>")
    content = _read(shell, invocation.args[0])
    if content is None:
        return _file_not_found(invocation.args[0])
    return CommandResult(stdout=_lines(["Reversed characters:", *(line[::-1] for line in content.split("\n"))]))


# -------------------- REPL loop ------------------------------


class Completer:
    def __init__(self, shell: ShellSession) -> None:
        self.shell = shell

    def complete(self, text: str, state: int) -> Optional[str]:
        buffer = readline.get_line_buffer()
        tokens = buffer.split()
        if buffer.endswith(" "):
            tokens.append("")
        if len(tokens) <= 1:
            options = [name for name in self.shell.registry.all_names() if name.startswith(text.lower())]
        else:
            directory, _, partial = text.rpartition(SEPARATOR)
            base = self.shell.resolve_path(directory) if directory else self.shell.cwd
            entries = self.shell.fs.list_directory(base) or []
            lead = directory + SEPARATOR if directory else ""
            options = [
                lead + entry.name + (SEPARATOR if entry.is_directory else "")
                for entry in entries
                if entry.name.startswith(partial.upper())
            ]
        if state < len(options):
            return options[state]
        return None


class Shell:
    def __init__(self, session: ShellSession) -> None:
        self.session = session
        self.completer = Completer(self.session)
        readline.set_completer(self.completer.complete)
        readline.set_completer_delims(" \t")
        readline.parse_and_bind("tab: complete")
        readline.set_auto_history(False)
        readline.set_history_length(self.session.history.limit)
        self.sync_history()

    def sync_history(self) -> None:
        """Rebuild readline's arrow-key list from the bounded session history."""

        readline.clear_history()
        for line in self.session.history:
            readline.add_history(line)

    def banner(self) -> str:
        return f"{OS_NAME} loaded successfully!\nType \"help\" for available commands.\n"

    def run(self) -> None:
        print(self.banner())
        try:
            while self.session.running:
                try:
                    line = input(self.session.prompt)
                except EOFError:
                    print()
                    break
                except KeyboardInterrupt:
                    print()
                    continue
                result = self.session.submit(line)
                self.sync_history()
                if result.stdout:
                    print(result.stdout, end="")
                if result.stderr:
                    print(result.stderr, end="", file=sys.stderr)
        finally:
            self.session.close()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[Sequence[str]] = None) -> int:
    args_list = list(sys.argv[1:] if argv is None else argv)
    parser = argparse.ArgumentParser(prog="vdos", add_help=True)
    parser.add_argument("--snapshot", metavar="PATH", help="Load a signed snapshot file before running")
    parser.add_argument("--no-seed", action="store_true", help="Start from an empty volume")
    parser.add_argument("--log-level", dest="log_level", help="Logging level (default: VDOS_LOG_LEVEL or WARNING)")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to execute non-interactively")
    parsed = parser.parse_args(args_list)

    config = ShellConfig.from_env()
    level_name = (parsed.log_level or config.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="[%(asctime)s] %(levelname)s: %(message)s",
    )

    try:
        session = ShellSession(config=config, seed=not parsed.no_seed)
    except SnapshotError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if parsed.snapshot:
        trusted = session.signer.public_key_hex if config.snapshot_key else None
        try:
            load_snapshot(session.fs, Path(parsed.snapshot), trusted_key=trusted)
        except SnapshotError as exc:
            print(str(exc), file=sys.stderr)
            session.close()
            return 1

    if parsed.command:
        result = session.submit(" ".join(parsed.command))
        if result.stdout:
            print(result.stdout, end="")
        if result.stderr:
            print(result.stderr, end="", file=sys.stderr)
        session.close()
        return result.status

    Shell(session).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
