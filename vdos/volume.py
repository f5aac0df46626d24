"""Default contents of a freshly booted volume."""

from __future__ import annotations

from vdos.file_system import VirtualFileSystem

DEFAULT_DIRECTORIES = ("DOS", "GAMES", "UTILS", "TEMP")


def autoexec_content(drive: str) -> str:
    return (
        "@echo off\n"
        "echo Starting DOS Emulator v1.0\n"
        "echo Loading system files...\n"
        "echo.\n"
        "echo Welcome to DOS Emulator!\n"
        "echo Type 'help' for available commands\n"
        "echo.\n"
        "prompt $p$g\n"
        f"path={drive}:\\DOS;{drive}:\\UTILS;{drive}:\\GAMES\n"
    )


def config_content(drive: str) -> str:
    return (
        f"DEVICE={drive}:\\DOS\\HIMEM.SYS\n"
        f"DEVICE={drive}:\\DOS\\EMM386.EXE\n"
        "BUFFERS=20\n"
        "FILES=40\n"
        "DOS=HIGH,UMB\n"
    )


def seed_default_volume(fs: VirtualFileSystem) -> None:
    """Populate *fs* with the stock system files, utilities and games."""

    root = fs.root
    for name in DEFAULT_DIRECTORIES:
        fs.create_directory(root + name)

    fs.create_file(root + "AUTOEXEC.BAT", autoexec_content(fs.drive))
    fs.create_file(root + "CONFIG.SYS", config_content(fs.drive))
    fs.create_file(root + "COMMAND.COM", "DOS Command Interpreter")

    for name, content in (
        ("EDIT.COM", "Simple Text Editor"),
        ("FORMAT.COM", "Disk Format Utility"),
        ("CHKDSK.COM", "Check Disk Utility"),
    ):
        fs.create_file(root + "UTILS\\" + name, content)

    for name, content in (
        ("SNAKE.EXE", "Snake Game"),
        ("TETRIS.EXE", "Tetris Game"),
        ("PACMAN.EXE", "Pac-Man Game"),
    ):
        fs.create_file(root + "GAMES\\" + name, content)


__all__ = ["DEFAULT_DIRECTORIES", "seed_default_volume"]
