"""Runtime settings resolved once at startup."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .utils.paths import default_store_dir, state_dir

EXECUTABLE_ENV = "PASSWORD_STORE_EXECUTABLE"
STORE_DIR_ENV = "PASSWORD_STORE_DIR"
CLIP_TIME_ENV = "PASSWORD_STORE_CLIP_TIME"
GENERATED_LENGTH_ENV = "PASSWORD_STORE_GENERATED_LENGTH"
URL_FIELD_ENV = "PASSFRONT_URL_FIELD"
EDITOR_ENVS = ("PASSFRONT_EDITOR", "VISUAL", "EDITOR")

DEFAULT_EXECUTABLE = "pass"
DEFAULT_CLIP_TIME = 45.0
DEFAULT_GENERATED_LENGTH = 25
DEFAULT_URL_FIELD = "url"
ENTRY_SUFFIX = ".gpg"


@dataclass(frozen=True)
class Settings:
    """Immutable configuration surface for a passfront session."""

    executable: str = DEFAULT_EXECUTABLE
    store_dir: Path = default_store_dir()
    clip_time: float = DEFAULT_CLIP_TIME
    generated_length: int = DEFAULT_GENERATED_LENGTH
    url_field: str = DEFAULT_URL_FIELD
    editor: Optional[str] = None
    entry_suffix: str = ENTRY_SUFFIX


def positive_seconds(name: str, raw: Any) -> float:
    """Return *raw* as a finite, positive number of seconds."""

    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{name} must be a finite, positive number of seconds, got {raw!r}")
    return value


def _parse_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[Path] = None,
    **overrides: Any,
) -> Settings:
    """Resolve :class:`Settings` from overrides, the environment and ``.env``.

    When *environ* is omitted the process environment is used, after the
    ``.env`` file in the state directory (or *env_file*) has been loaded
    without overriding variables that are already set.
    """

    if environ is None:
        load_dotenv(env_file or state_dir() / ".env", override=False)
        environ = os.environ

    values: Dict[str, Any] = {}
    if environ.get(EXECUTABLE_ENV):
        values["executable"] = environ[EXECUTABLE_ENV]
    if environ.get(STORE_DIR_ENV):
        values["store_dir"] = Path(environ[STORE_DIR_ENV]).expanduser()
    if environ.get(CLIP_TIME_ENV):
        values["clip_time"] = positive_seconds(CLIP_TIME_ENV, environ[CLIP_TIME_ENV])
    if environ.get(GENERATED_LENGTH_ENV):
        values["generated_length"] = _parse_int(GENERATED_LENGTH_ENV, environ[GENERATED_LENGTH_ENV])
    if environ.get(URL_FIELD_ENV):
        values["url_field"] = environ[URL_FIELD_ENV]
    for name in EDITOR_ENVS:
        if environ.get(name):
            values["editor"] = environ[name]
            break

    for key, value in overrides.items():
        if value is None:
            continue
        if key not in Settings.__dataclass_fields__:
            raise ConfigurationError(f"unknown setting {key!r}")
        values[key] = value

    if "store_dir" in values:
        values["store_dir"] = Path(values["store_dir"]).expanduser()
    if "clip_time" in overrides and overrides["clip_time"] is not None:
        values["clip_time"] = positive_seconds("clip_time", overrides["clip_time"])
    return Settings(**values)


__all__ = [
    "DEFAULT_CLIP_TIME",
    "DEFAULT_GENERATED_LENGTH",
    "DEFAULT_URL_FIELD",
    "ENTRY_SUFFIX",
    "Settings",
    "load_settings",
    "positive_seconds",
]
