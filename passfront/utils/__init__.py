"""Utility helpers exposed by passfront."""

from .clipboard_backend import PasteHistory, PyperclipAdapter, detect_adapter, use_adapter
from .paths import state_dir
from .shell import build_args, flag, shell_join

__all__ = [
    "PasteHistory",
    "PyperclipAdapter",
    "build_args",
    "detect_adapter",
    "flag",
    "shell_join",
    "state_dir",
    "use_adapter",
]
