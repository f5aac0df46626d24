import json
from datetime import datetime
from pathlib import Path

import pytest

import vdos.command_shell as command_shell
from vdos.command_shell import Command, CommandResult, ShellSession
from vdos.config import ShellConfig
from vdos.file_system import VirtualFileSystem

FIXED = datetime(2024, 3, 5, 9, 7, 30)


def _session(**config_overrides) -> ShellSession:
    """A session over an empty volume with a fixed clock."""

    fs = VirtualFileSystem(clock=lambda: FIXED)
    return ShellSession(fs, config=ShellConfig(**config_overrides))


def _seeded(**config_overrides) -> ShellSession:
    return ShellSession(config=ShellConfig(**config_overrides))


def test_dir_and_parent_navigation_scenario() -> None:
    shell = _session()
    shell.fs.create_file("C:\\A\\B.TXT", "hi")

    listing = shell.submit("dir C:\\A")
    assert listing.status == 0
    assert "Directory of C:\\A" in listing.stdout
    assert "03/05/24  09:07             2 B.TXT" in listing.stdout
    assert "1 file(s)" in listing.stdout

    assert shell.submit("cd C:\\A").status == 0
    assert shell.cwd == "C:\\A"
    assert shell.prompt == "C:\\A>"
    shell.submit("cd ..")
    assert shell.cwd == "C:\\"


def test_submit_echoes_prompt_and_output() -> None:
    shell = _session()
    shell.submit("echo hello   world")
    assert shell.output == ["C:\\> echo hello   world", "hello world"]


def test_blank_line_is_a_no_op() -> None:
    shell = _session()
    shell.submit("dir")
    shell.recall_history("up")
    before = list(shell.output)

    result = shell.submit("   ")
    assert result.status == 0
    assert shell.output == before
    assert shell.history.entries() == ["dir"]
    assert shell.history.cursor == 0


def test_unknown_command_reports_dos_message() -> None:
    shell = _session()
    result = shell.submit("frobnicate now")
    assert result.status == 127
    assert "'frobnicate' is not recognized as an internal or external command," in result.stderr
    assert shell.output[-1] == "operable program or batch file."


def test_executables_run_from_current_directory() -> None:
    shell = _seeded()
    assert shell.submit("cd games").status == 0
    assert shell.submit("snake").stdout == "Running SNAKE.EXE...\n"
    assert shell.submit("TETRIS.EXE").stdout == "Running TETRIS.EXE...\n"

    shell.submit("cd \\")
    assert shell.submit("autoexec").stdout == "Running AUTOEXEC.BAT...\n"
    assert shell.submit("config.sys").status == 127


def test_handler_faults_are_rendered_not_raised() -> None:
    shell = _session()

    def explode(session: ShellSession, invocation) -> CommandResult:
        raise RuntimeError("boom")

    shell.register(Command(name="explode", summary="fail", usage="explode", handler=explode))
    result = shell.submit("EXPLODE")
    assert result.status == 1
    assert result.stderr == "Error: boom\n"
    assert shell.output[-1] == "Error: boom"
    assert shell.submit("ver").status == 0


def test_history_recall_through_session() -> None:
    shell = _session(history_limit=2)
    for line in ("dir", "ver", "mem"):
        shell.submit(line)
    assert shell.recall_history("up") == "mem"
    assert shell.recall_history("up") == "ver"
    assert shell.recall_history("up") == "ver"
    assert shell.recall_history("down") == "mem"
    assert shell.recall_history("down") == ""


def test_change_directory_failures_leave_cursor() -> None:
    shell = _seeded()
    shell.submit("cd dos")
    result = shell.submit("cd nope")
    assert result.status == 1
    assert result.stderr == "Directory not found: nope\n"
    assert shell.cwd == "C:\\DOS"

    assert shell.submit("cd").stdout == "C:\\DOS\n"
    shell.submit("cd c:")
    assert shell.cwd == "C:\\"


def test_make_and_remove_directories() -> None:
    shell = _session()
    assert shell.submit("md g").stdout == "Directory created: g\n"
    assert shell.submit("mkdir G").status == 1
    shell.fs.create_file("C:\\G\\F.TXT", "z")

    assert shell.submit("rd g").stderr == "Directory not empty: g\n"
    assert shell.submit("del g\\f.txt").stdout == "File deleted: g\\f.txt\n"
    assert shell.submit("rmdir g").stdout == "Directory removed: g\n"
    assert shell.submit("rd g").stderr == "Directory not found: g\n"
    assert shell.submit("rd \\").stderr == "Cannot remove root directory: \\\n"

    shell.submit("md work")
    shell.submit("cd work")
    assert "current directory" in shell.submit("rd .").stderr


def test_copy_type_and_delete() -> None:
    shell = _seeded()
    assert shell.submit("copy AUTOEXEC.BAT TEMP").stdout == "        1 file(s) copied\n"
    assert shell.fs.read_file("C:\\TEMP\\AUTOEXEC.BAT") == shell.fs.read_file("C:\\AUTOEXEC.BAT")
    assert shell.submit("copy autoexec.bat temp").stderr == "File already exists: temp\n"
    assert shell.submit("copy missing.txt temp").stderr == "File not found: missing.txt\n"
    assert shell.submit("copy command.com shell.com").status == 0
    assert shell.fs.read_file("C:\\SHELL.COM") == "DOS Command Interpreter"

    assert shell.submit("type shell.com").stdout == "DOS Command Interpreter\n"
    assert shell.submit("del shell.com").status == 0
    assert shell.submit("type shell.com").stderr == "File not found: shell.com\n"
    assert shell.submit("copy onlyone").stderr.startswith("Usage:")


def test_find_lists_matching_paths() -> None:
    shell = _seeded()
    result = shell.submit("find *.EXE")
    assert 'Found 3 file(s) matching "*.EXE":' in result.stdout
    assert "  C:\\GAMES\\SNAKE.EXE" in result.stdout
    assert "COMMAND.COM" not in result.stdout

    assert shell.submit("find *.EXE utils").stdout == "No files found matching pattern: *.EXE\n"


def test_more_pages_in_batch_by_default() -> None:
    shell = _session(page_size=2)
    shell.fs.create_file("C:\\LONG.TXT", "1\n2\n3\n4\n5")
    result = shell.submit("more long.txt")
    assert result.stdout == "1\n2\n-- More --\n3\n4\n-- More --\n5\n"


def test_tree_renders_nested_entries() -> None:
    shell = _seeded()
    lines = shell.submit("tree").stdout.splitlines()
    assert lines[0] == "C:\\"
    assert lines[1] == "├── DOS"
    assert "│   └── TETRIS.EXE" in lines
    assert lines[-1] == "└── CONFIG.SYS"


def test_attrib_and_directory_reports() -> None:
    shell = _session()
    shell.fs.create_file("C:\\DATA\\ONE.TXT", "123")
    attributes = shell.submit("attrib data\\one.txt").stdout
    assert "Size: 3 bytes" in attributes
    assert "Type: text" in attributes
    assert "Extension: TXT" in attributes

    assert shell.submit("dirsize data").stdout == "1 file(s) 3 bytes in C:\\DATA\n"
    summary = shell.submit("archive data").stdout
    assert summary.startswith("Archive of C:\\DATA\n")
    assert "1 file(s), 3 bytes, created 03/05/24 09:07" in summary


def test_text_utilities() -> None:
    shell = _session()
    shell.fs.create_file("C:\\A.TXT", "beta\nalpha\nbeta\nGamma")
    shell.fs.create_file("C:\\B.TXT", "beta\nalpha\nbeta\nGamma")
    shell.fs.create_file("C:\\C.TXT", "other")

    assert shell.submit("grep BETA a.txt").stdout == "Found 2 match(es) in a.txt:\n  beta\n  beta\n"
    assert shell.submit("grep zeta a.txt").stdout == "No matches found in a.txt\n"
    assert shell.submit("grep zeta").stderr == "Please specify a file to search in\n"
    assert shell.submit("sort a.txt").stdout == "Sorted content:\nGamma\nalpha\nbeta\nbeta\n"
    assert shell.submit("wc a.txt").stdout == "4 lines, 4 words, 21 characters\n"
    assert shell.submit("head a.txt 2").stdout == "First 2 lines of a.txt:\nbeta\nalpha\n"
    assert shell.submit("tail a.txt 1").stdout == "Last 1 lines of a.txt:\nGamma\n"
    assert shell.submit("uniq a.txt").stdout == "Unique lines:\nbeta\nalpha\nGamma\n"
    assert shell.submit("nl c.txt").stdout == "Numbered lines:\n     1  other\n"
    assert shell.submit("tac a.txt").stdout == "Reversed lines:\nGamma\nbeta\nalpha\nbeta\n"
    assert shell.submit("rev c.txt").stdout == "Reversed characters:\nrehto\n"
    assert shell.submit("diff a.txt b.txt").stdout == "Files are identical\n"
    different = shell.submit("diff a.txt c.txt")
    assert different.stdout == "Files are different\nSize difference: 16 characters\n"


def test_system_utilities() -> None:
    shell = _session(memory_kb=640)
    assert shell.submit("ver").stdout.startswith("DOS Emulator v1.0\n")
    assert shell.submit("time").stdout == "Current time is 09:07:30\n"
    assert shell.submit("date").stdout == "Current date is 03/05/2024\n"
    assert "Conventional     640K     0K    640K" in shell.submit("mem").stdout

    shell.submit("cls")
    assert shell.output == []

    assert "dir" in shell.submit("help").stdout
    assert "Usage: dir [path]" in shell.submit("help DIR").stdout
    assert shell.submit("help nothing").status == 1

    shell.submit("quit")
    assert not shell.running


def test_sink_receives_rendered_text() -> None:
    received = []
    shell = ShellSession(VirtualFileSystem(), config=ShellConfig(), sink=received.append)
    shell.submit("echo hi")
    assert received == ["C:\\> echo hi", "hi"]


def test_export_and_import_commands(tmp_path: Path) -> None:
    shell = _seeded(snapshot_key="04" * 32)
    target = tmp_path / "volume.json"
    assert shell.submit(f"export {target}").stdout == f"Snapshot exported to {target}\n"

    shell.submit("md scratch")
    shell.submit("cd scratch")
    shell.submit("del \\config.sys")
    assert shell.submit(f"import {target}").status == 0
    assert shell.fs.read_file("C:\\CONFIG.SYS") is not None
    assert shell.cwd == "C:\\"

    failure = shell.submit(f"import {tmp_path / 'absent.json'}")
    assert failure.status == 1
    assert failure.stderr.startswith("Import failed: Snapshot not found")


def test_import_rejects_foreign_signer_when_key_configured(tmp_path: Path) -> None:
    target = tmp_path / "volume.json"
    _seeded(snapshot_key="05" * 32).submit(f"export {target}")

    shell = _seeded(snapshot_key="06" * 32)
    result = shell.submit(f"import {target}")
    assert result.status == 1
    assert "untrusted" in result.stderr


def test_transcript_records_each_line(tmp_path: Path) -> None:
    shell = _session(transcript_dir=tmp_path)
    try:
        shell.submit("ver")
        shell.submit("bogus")
        transcript_path = shell.transcript.path
    finally:
        shell.close()

    entries = [json.loads(line) for line in transcript_path.read_text(encoding="utf-8").splitlines()]
    assert [entry["command"] for entry in entries] == ["ver", "bogus"]
    assert entries[1]["status"] == 127
    assert entries[0]["cwd"] == "C:\\"


def test_builtin_commands_are_discovered() -> None:
    names = {definition.name for definition in command_shell.builtin_commands()}
    assert {"dir", "cd", "type", "copy", "del", "md", "rd", "find"} <= names
    shell = _session()
    assert shell.registry.get("erase").name == "del"


def test_main_runs_one_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert command_shell.main(["--no-seed", "echo", "ready"]) == 0
    assert capsys.readouterr().out == "ready\n"

    assert command_shell.main(["--no-seed", "bogus"]) == 127
    assert "not recognized" in capsys.readouterr().err


def test_main_loads_snapshot(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    target = tmp_path / "volume.json"
    _seeded().submit(f"export {target}")

    assert command_shell.main(["--no-seed", "--snapshot", str(target), "type", "command.com"]) == 0
    assert capsys.readouterr().out == "DOS Command Interpreter\n"

    assert command_shell.main(["--snapshot", str(tmp_path / "absent.json"), "ver"]) == 1


def _completions(shell: ShellSession, text: str) -> list:
    completer = command_shell.Completer(shell)
    options = []
    state = 0
    while True:
        option = completer.complete(text, state)
        if option is None:
            return options
        options.append(option)
        state += 1


def test_completer_offers_command_names(monkeypatch: pytest.MonkeyPatch) -> None:
    shell = _seeded()
    monkeypatch.setattr(command_shell.readline, "get_line_buffer", lambda: "di")
    assert _completions(shell, "di") == ["diff", "dir", "dirsize"]


def test_completer_offers_namespace_entries(monkeypatch: pytest.MonkeyPatch) -> None:
    shell = _seeded()
    monkeypatch.setattr(command_shell.readline, "get_line_buffer", lambda: "type au")
    assert _completions(shell, "au") == ["AUTOEXEC.BAT"]

    monkeypatch.setattr(command_shell.readline, "get_line_buffer", lambda: "cd GAMES\\SN")
    assert _completions(shell, "GAMES\\SN") == ["GAMES\\SNAKE.EXE"]

    monkeypatch.setattr(command_shell.readline, "get_line_buffer", lambda: "cd ga")
    assert _completions(shell, "ga") == ["GAMES\\"]


def test_repl_mirrors_bounded_history(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    shell = _seeded(history_limit=2)
    lines = iter(["ver", "   ", "mem", "echo hi"])

    def fake_input(prompt: str) -> str:
        try:
            return next(lines)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr("builtins.input", fake_input)
    command_shell.Shell(shell).run()

    readline = command_shell.readline
    mirrored = [readline.get_history_item(index) for index in range(1, readline.get_current_history_length() + 1)]
    assert mirrored == ["mem", "echo hi"]
    assert shell.history.entries() == ["mem", "echo hi"]
    assert "hi\n" in capsys.readouterr().out


def test_repl_closes_transcript_on_end_of_input(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    shell = _session(transcript_dir=tmp_path)

    def end_of_input(prompt: str) -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", end_of_input)
    command_shell.Shell(shell).run()
    assert shell.transcript is None
    assert list(tmp_path.glob("session-*.jsonl"))
