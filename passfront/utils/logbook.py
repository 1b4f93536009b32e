"""Rotating operational logger plus a tamper-evident JSON audit trail."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import threading
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import keyring
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519
from keyring.errors import KeyringError

from .paths import state_dir

LOGGER_NAME = "passfront"
AUDIT_SERVICE = "passfront-audit"
AUDIT_KEY_NAME = "PASSFRONT-AUDIT-KEY"

_write_lock = threading.Lock()


def log_dir() -> Path:
    return state_dir() / "logs"


def audit_log_path() -> Path:
    return state_dir() / "audit.jsonl"


def audit_key_path() -> Path:
    return state_dir() / "audit_ed25519.pem"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the ``passfront`` logger, attaching the rotating file handler once."""

    root = logging.getLogger(LOGGER_NAME)
    if not root.handlers:
        directory = log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            directory / "passfront.log",
            maxBytes=1_000_000,
            backupCount=5,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root.setLevel(logging.INFO)
        root.addHandler(handler)
    if name:
        return root.getChild(name)
    return root


def _keyring_key() -> Optional[ed25519.Ed25519PrivateKey]:
    try:
        stored = keyring.get_password(AUDIT_SERVICE, AUDIT_KEY_NAME)
    except KeyringError:
        return None
    if not stored:
        return None
    try:
        raw = base64.b64decode(stored.strip(), validate=True)
    except ValueError as exc:
        raise ValueError("audit key must be base64 encoded Ed25519 private key bytes") from exc
    if len(raw) != 32:
        raise ValueError("audit key must contain exactly 32 bytes for Ed25519")
    return ed25519.Ed25519PrivateKey.from_private_bytes(raw)


def _load_or_create_key() -> ed25519.Ed25519PrivateKey:
    key = _keyring_key()
    if key is not None:
        return key
    path = audit_key_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        loaded = serialization.load_pem_private_key(path.read_bytes(), password=None)
        if not isinstance(loaded, ed25519.Ed25519PrivateKey):
            raise ValueError(f"{path} does not hold an Ed25519 private key")
        return loaded
    key = ed25519.Ed25519PrivateKey.generate()
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    path.write_bytes(pem)
    os.chmod(path, 0o600)
    return key


def _last_hash(path: Path) -> Optional[str]:
    if not path.exists():
        return None
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    if not lines:
        return None
    try:
        return json.loads(lines[-1]).get("hash")
    except json.JSONDecodeError:
        return None


def _write_audit_record(record: Dict[str, object]) -> Dict[str, object]:
    key = _load_or_create_key()
    path = audit_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    entry: Dict[str, object] = {
        "ts": time.time(),
        "prev": _last_hash(path),
        "record": record,
    }
    canonical = json.dumps(entry, sort_keys=True, separators=(",", ":")).encode("utf-8")
    digest = hashlib.sha256(canonical).digest()
    entry["hash"] = digest.hex()
    entry["signature"] = base64.b64encode(key.sign(digest)).decode("ascii")
    entry["public_key"] = base64.b64encode(
        key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
    ).decode("ascii")
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(entry, sort_keys=True) + "\n")
    return entry


def record(action: str, *, ok: bool = True, **fields: object) -> Dict[str, object]:
    """Log *action* and append it to the signed audit trail.

    Callers pass entry names, field names and statuses only. Secret values
    never belong in *fields*.
    """

    payload: Dict[str, object] = {"action": action, "ok": ok, **fields}
    logger = get_logger()
    logger.log(logging.INFO if ok else logging.WARNING, json.dumps(payload, sort_keys=True))
    with _write_lock:
        return _write_audit_record(payload)


__all__ = ["audit_log_path", "get_logger", "record"]
