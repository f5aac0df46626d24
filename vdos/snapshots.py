"""Signed snapshot files for exporting and restoring a volume."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from vdos.file_system import VirtualFileSystem

logger = logging.getLogger("vdos.snapshots")


class SnapshotError(RuntimeError):
    """Raised when a snapshot file cannot be written, read or trusted."""


def canonical_bytes(snapshot: Mapping[str, Any]) -> bytes:
    return json.dumps(
        snapshot, sort_keys=True, ensure_ascii=False, separators=(",", ":")
    ).encode("utf-8")


class SnapshotSigner:
    """Sign and verify snapshot payloads with Ed25519."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key

    @classmethod
    def generate(cls) -> "SnapshotSigner":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed_hex: str) -> "SnapshotSigner":
        """Build a signer from a 32-byte seed encoded as hex."""

        try:
            seed = bytes.fromhex(seed_hex.strip())
            return cls(Ed25519PrivateKey.from_private_bytes(seed))
        except ValueError as exc:
            raise SnapshotError(f"Invalid snapshot signing key: {exc}") from exc

    @property
    def public_key_hex(self) -> str:
        raw = self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return raw.hex()

    def sign(self, snapshot: Mapping[str, Any]) -> str:
        return self._private_key.sign(canonical_bytes(snapshot)).hex()

    @staticmethod
    def verify(snapshot: Mapping[str, Any], signature_hex: str, public_key_hex: str) -> None:
        """Raise :class:`SnapshotError` unless *signature_hex* matches *snapshot*."""

        try:
            public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            public_key.verify(bytes.fromhex(signature_hex), canonical_bytes(snapshot))
        except InvalidSignature as exc:
            raise SnapshotError("Snapshot signature mismatch") from exc
        except ValueError as exc:
            raise SnapshotError(f"Malformed snapshot signature: {exc}") from exc


def save_snapshot(fs: VirtualFileSystem, path: Path, signer: SnapshotSigner) -> Dict[str, Any]:
    """Export *fs* to *path* as a signed JSON document and return the document."""

    snapshot = fs.export()
    document = {
        "snapshot": snapshot,
        "signature": signer.sign(snapshot),
        "public_key": signer.public_key_hex,
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"Cannot write snapshot {path}: {exc}") from exc
    logger.info("Exported %d files to %s", len(snapshot["files"]), path)
    return document


def load_snapshot(
    fs: VirtualFileSystem,
    path: Path,
    *,
    trusted_key: Optional[str] = None,
) -> Dict[str, Any]:
    """Verify the snapshot stored at *path* and import it into *fs*.

    When *trusted_key* is given the document must also be signed by that
    public key; otherwise the embedded key only guards against corruption.
    """

    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SnapshotError(f"Snapshot not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise SnapshotError(f"Cannot read snapshot {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise SnapshotError("Snapshot document must be a JSON object")
    snapshot = document.get("snapshot")
    signature = document.get("signature")
    public_key = document.get("public_key")
    if not isinstance(snapshot, dict) or not isinstance(signature, str) or not isinstance(public_key, str):
        raise SnapshotError("Snapshot document is missing its payload or signature")

    if trusted_key is not None and public_key.lower() != trusted_key.lower():
        raise SnapshotError("Snapshot was signed by an untrusted key")
    SnapshotSigner.verify(snapshot, signature, public_key)

    if not fs.import_snapshot(snapshot):
        raise SnapshotError("Snapshot structure is invalid")
    logger.info("Imported %d files from %s", len(fs.files), path)
    return snapshot


__all__ = [
    "SnapshotError",
    "SnapshotSigner",
    "canonical_bytes",
    "load_snapshot",
    "save_snapshot",
]
