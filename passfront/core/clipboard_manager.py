"""Ownership of the single secret exposed on the clipboard."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape

from ..config import positive_seconds
from ..errors import ClipboardUnavailableError
from ..utils import logbook
from ..utils.clipboard_backend import ClipboardAdapter, HistoryCell, PasteHistory, detect_adapter

logger = logbook.get_logger("clipboard")

SecretResolver = Callable[[str, str], str]
Notifier = Callable[[str], None]

_console = Console(stderr=True, highlight=False)


def console_notifier(message: str) -> None:
    _console.print(f"[cyan]{escape(message)}[/]")


@dataclass
class _SecretSlot:
    entry: str
    field: str
    secret: bytearray
    cell: HistoryCell
    timer: Optional[threading.Timer]
    generation: int


class SecretClipboard:
    """Copy secrets to the clipboard and purge them after a bounded time.

    At most one secret is live at a time. Installing a new one purges the
    previous slot first, which also cancels its timer, so there is never
    more than one pending purge. Every slot mutation happens under one
    lock; a timer only acts when its generation still matches the live
    slot, so a cancelled timer never purges a later secret.
    """

    def __init__(
        self,
        resolver: SecretResolver,
        *,
        timeout: float,
        adapter: Optional[ClipboardAdapter] = None,
        history: Optional[PasteHistory] = None,
        notify: Notifier = console_notifier,
    ) -> None:
        self._resolver = resolver
        self.timeout = positive_seconds("clipboard timeout", timeout)
        self._adapter = adapter
        self.history = history or PasteHistory()
        self._notify = notify
        self._lock = threading.RLock()
        self._slot: Optional[_SecretSlot] = None
        self._generation = 0
        self._cleared = threading.Event()
        self._cleared.set()

    @property
    def adapter(self) -> ClipboardAdapter:
        return self._adapter if self._adapter is not None else detect_adapter()

    @property
    def live(self) -> bool:
        return self._slot is not None

    @property
    def live_field(self) -> Optional[str]:
        slot = self._slot
        return slot.field if slot else None

    @property
    def pending_timer(self) -> Optional[threading.Timer]:
        slot = self._slot
        return slot.timer if slot else None

    def copy(self, entry: str, field: str = "secret", *, timeout: Optional[float] = None) -> None:
        """Resolve *field* of *entry* and expose it on the clipboard.

        Resolution happens before any slot change, so a failing lookup leaves
        the current slot untouched.
        """

        duration = positive_seconds("clipboard timeout", timeout) if timeout is not None else self.timeout
        value = self._resolver(entry, field)
        with self._lock:
            self._purge_locked(announce=False)
            secret = bytearray(value.encode("utf-8"))
            self.adapter.copy_text(value)
            cell = self.history.push(value)
            self._generation += 1
            generation = self._generation
            timer = threading.Timer(duration, self._expire, args=(generation,))
            timer.daemon = True
            self._slot = _SecretSlot(entry, field, secret, cell, timer, generation)
            self._cleared.clear()
            timer.start()
        del value
        logbook.record("copy", entry=entry, field=field, timeout=duration)
        self._notify(f"Copied {field} for {entry} to the clipboard. Will clear in {duration:g} seconds.")

    def purge(self) -> bool:
        """Clear the live secret, if any. Returns ``True`` when a slot was cleared."""

        with self._lock:
            return self._purge_locked(announce=True)

    def wait_cleared(self, timeout: Optional[float] = None) -> bool:
        return self._cleared.wait(timeout)

    def _expire(self, generation: int) -> None:
        try:
            with self._lock:
                slot = self._slot
                if slot is None or slot.generation != generation:
                    return
                self._purge_locked(announce=True)
        except Exception:
            logger.exception("timed clipboard purge failed")

    def _blank_system_clipboard(self, slot: _SecretSlot) -> bool:
        """Blank the system clipboard unless it provably holds someone else's text.

        Returns ``False`` when the clipboard could not be written.
        """

        ours = slot.secret.decode("utf-8")
        try:
            try:
                current: Optional[str] = self.adapter.paste_text()
            except ClipboardUnavailableError as exc:
                logger.warning("cannot read clipboard while clearing %s/%s, blanking it: %s", slot.entry, slot.field, exc)
                current = None
            if current is not None and current != ours:
                logger.info("clipboard no longer holds %s/%s, leaving it untouched", slot.entry, slot.field)
                return True
            self.adapter.copy_text("")
            return True
        except ClipboardUnavailableError as exc:
            logger.error("cannot blank clipboard for %s/%s: %s", slot.entry, slot.field, exc)
            return False
        finally:
            del ours

    def _purge_locked(self, *, announce: bool) -> bool:
        slot = self._slot
        if slot is None:
            return False
        self._slot = None
        if slot.timer is not None:
            slot.timer.cancel()
            slot.timer = None
        try:
            blanked = self._blank_system_clipboard(slot)
        finally:
            for index in range(len(slot.secret)):
                slot.secret[index] = 0
            slot.secret.clear()
            slot.cell.blank()
            self._cleared.set()
        logbook.record("clear", ok=blanked, entry=slot.entry, field=slot.field)
        if announce:
            if blanked:
                self._notify(f"Field {slot.field} cleared.")
            else:
                self._notify(f"Field {slot.field} forgotten, but the system clipboard could not be cleared.")
        return True


__all__ = ["SecretClipboard", "console_notifier"]
