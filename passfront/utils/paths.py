"""Filesystem path helpers for passfront state."""

from __future__ import annotations

import os
from pathlib import Path

STATE_DIR_ENV = "PASSFRONT_STATE_DIR"


def state_dir() -> Path:
    """Return the directory used for persistent passfront state.

    The location defaults to ``~/.passfront`` but can be overridden via the
    ``PASSFRONT_STATE_DIR`` environment variable. The path is expanded and
    resolved so callers always receive an absolute location.
    """

    override = os.environ.get(STATE_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".passfront"


def default_store_dir() -> Path:
    """Return the conventional ``pass`` store location."""

    return Path.home() / ".password-store"
