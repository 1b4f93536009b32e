"""System clipboard adapters and the application-local paste history."""

from __future__ import annotations

import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Deque, Iterator, List, Optional, Protocol

import pyperclip

from ..errors import ClipboardUnavailableError


class ClipboardAdapter(Protocol):
    """Protocol implemented by every system clipboard backend."""

    def copy_text(self, text: str) -> None:
        ...

    def paste_text(self) -> str:
        ...


class PyperclipAdapter:
    """Adapter built on top of :mod:`pyperclip`."""

    def copy_text(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            raise ClipboardUnavailableError(f"system clipboard is unavailable: {exc}") from exc

    def paste_text(self) -> str:
        try:
            return pyperclip.paste() or ""
        except pyperclip.PyperclipException as exc:
            raise ClipboardUnavailableError(f"system clipboard is unavailable: {exc}") from exc


_adapter_override: Optional[ClipboardAdapter] = None


@contextmanager
def use_adapter(adapter: ClipboardAdapter) -> Iterator[None]:
    global _adapter_override
    previous = _adapter_override
    _adapter_override = adapter
    try:
        yield
    finally:
        _adapter_override = previous


def detect_adapter() -> ClipboardAdapter:
    if _adapter_override is not None:
        return _adapter_override
    return PyperclipAdapter()


@dataclass
class HistoryCell:
    """One slot of the paste history; mutable so it can be blanked in place."""

    text: str

    def blank(self) -> None:
        self.text = ""


class PasteHistory:
    """Bounded, newest-first history of text placed on the clipboard.

    Cells are handed out to callers so a single entry can be zeroed later
    without touching its neighbours.
    """

    def __init__(self, maxlen: int = 60) -> None:
        self._cells: Deque[HistoryCell] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def push(self, text: str) -> HistoryCell:
        cell = HistoryCell(text)
        with self._lock:
            self._cells.appendleft(cell)
        return cell

    def latest(self) -> Optional[str]:
        with self._lock:
            return self._cells[0].text if self._cells else None

    def texts(self) -> List[str]:
        with self._lock:
            return [cell.text for cell in self._cells]

    def __len__(self) -> int:
        return len(self._cells)


__all__ = [
    "ClipboardAdapter",
    "HistoryCell",
    "PasteHistory",
    "PyperclipAdapter",
    "detect_adapter",
    "use_adapter",
]
