"""Shell configuration read from ``VDOS_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from vdos.history import DEFAULT_HISTORY_LIMIT


def _positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw:
        try:
            parsed = int(raw)
            if parsed > 0:
                return parsed
        except ValueError:
            pass
    return default


@dataclass
class ShellConfig:
    """Runtime settings for a shell session.

    Attributes:
        drive: Drive letter of the simulated volume.
        history_limit: Maximum number of remembered command lines.
        page_size: Lines rendered by ``more`` before a ``-- More --`` marker.
        memory_kb: Conventional memory reported by ``mem``.
        transcript_dir: Directory receiving JSONL session transcripts, if any.
        snapshot_key: Hex Ed25519 seed used to sign exported snapshots. When
            unset an ephemeral key is generated per session.
        log_level: Level name passed to ``logging.basicConfig``.
    """

    drive: str = "C"
    history_limit: int = DEFAULT_HISTORY_LIMIT
    page_size: int = 20
    memory_kb: int = 640
    transcript_dir: Optional[Path] = None
    snapshot_key: Optional[str] = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ShellConfig":
        env = os.environ if environ is None else environ
        drive = (env.get("VDOS_DRIVE") or "C").strip().rstrip(":").upper()
        if len(drive) != 1 or not drive.isalpha():
            drive = "C"
        transcript_dir = env.get("VDOS_TRANSCRIPT_DIR")
        return cls(
            drive=drive,
            history_limit=_positive_int(env, "VDOS_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT),
            page_size=_positive_int(env, "VDOS_PAGE_SIZE", 20),
            memory_kb=_positive_int(env, "VDOS_MEMORY_KB", 640),
            transcript_dir=Path(transcript_dir) if transcript_dir else None,
            snapshot_key=env.get("VDOS_SNAPSHOT_KEY") or None,
            log_level=(env.get("VDOS_LOG_LEVEL") or "WARNING").upper(),
        )


__all__ = ["ShellConfig"]
