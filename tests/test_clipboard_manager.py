"""Tests for the secret clipboard lifecycle."""

from __future__ import annotations

import threading
import time
from typing import Dict, List

import pytest

from passfront.core import SecretClipboard
from passfront.errors import ClipboardUnavailableError, ConfigurationError, ExternalToolError


SECRETS: Dict[str, Dict[str, str]] = {
    "site": {"secret": "hunter2", "user": "alice"},
    "bank": {"secret": "correct horse battery staple"},
}


def _resolve(entry: str, field: str) -> str:
    try:
        return SECRETS[entry][field]
    except KeyError:
        raise ExternalToolError("show", entry=entry, returncode=1, diagnostic=f"Error: {entry} is not in the password store.") from None


@pytest.fixture()
def lifecycle(clipboard, notices: List[str]) -> SecretClipboard:
    return SecretClipboard(_resolve, timeout=30, adapter=clipboard, notify=notices.append)


def test_copy_exposes_value_and_schedules_purge(lifecycle: SecretClipboard, clipboard, notices: List[str]) -> None:
    lifecycle.copy("site", "secret")
    assert clipboard.paste_text() == "hunter2"
    assert lifecycle.live_field == "secret"
    timer = lifecycle.pending_timer
    assert timer is not None and timer.is_alive()
    assert notices == ["Copied secret for site to the clipboard. Will clear in 30 seconds."]
    assert all("hunter2" not in notice for notice in notices)
    lifecycle.purge()


def test_auto_purge_after_timeout(clipboard, notices: List[str]) -> None:
    lifecycle = SecretClipboard(_resolve, timeout=0.2, adapter=clipboard, notify=notices.append)
    lifecycle.copy("site", "secret")
    time.sleep(0.3)
    assert lifecycle.wait_cleared(3)
    assert clipboard.paste_text() == ""
    assert lifecycle.pending_timer is None
    assert not lifecycle.live
    assert notices[-1] == "Field secret cleared."


def test_purge_is_idempotent(lifecycle: SecretClipboard, clipboard, notices: List[str]) -> None:
    lifecycle.copy("site", "user")
    assert lifecycle.purge() is True
    writes = list(clipboard.writes)
    assert lifecycle.purge() is False
    assert clipboard.writes == writes
    assert clipboard.paste_text() == ""
    assert notices.count("Field user cleared.") == 1


def test_purge_without_secret_is_noop(lifecycle: SecretClipboard, clipboard) -> None:
    assert lifecycle.purge() is False
    assert clipboard.writes == []


def test_new_copy_cancels_previous_timer(lifecycle: SecretClipboard, clipboard) -> None:
    lifecycle.copy("site", "secret")
    first = lifecycle.pending_timer
    lifecycle.copy("bank", "secret")
    second = lifecycle.pending_timer
    assert first is not None and second is not None and first is not second
    assert first.finished.is_set()
    assert clipboard.paste_text() == "correct horse battery staple"
    assert lifecycle.history.texts() == ["correct horse battery staple", ""]
    lifecycle.purge()


def test_stale_timer_never_purges_newer_secret(lifecycle: SecretClipboard, clipboard) -> None:
    lifecycle.copy("site", "secret")
    lifecycle.copy("bank", "secret")
    lifecycle._expire(1)
    assert lifecycle.live
    assert clipboard.paste_text() == "correct horse battery staple"
    lifecycle._expire(2)
    assert not lifecycle.live
    assert clipboard.paste_text() == ""


def test_purge_leaves_foreign_clipboard_text(lifecycle: SecretClipboard, clipboard) -> None:
    lifecycle.copy("site", "secret")
    clipboard.copy_text("copied by another application")
    lifecycle.purge()
    assert clipboard.paste_text() == "copied by another application"
    assert lifecycle.history.texts() == [""]


def test_purge_leaves_no_plaintext(lifecycle: SecretClipboard, clipboard) -> None:
    lifecycle.copy("site", "secret")
    slot = lifecycle._slot
    assert slot is not None
    buffer = slot.secret
    timer = slot.timer
    lifecycle.purge()
    assert buffer == bytearray()
    assert slot.cell.text == ""
    assert slot.timer is None
    assert timer is not None and "hunter2" not in repr(timer.args)
    assert "hunter2" not in lifecycle.history.texts()
    assert clipboard.paste_text() == ""


def test_failed_lookup_keeps_current_slot(lifecycle: SecretClipboard, clipboard) -> None:
    lifecycle.copy("site", "secret")
    with pytest.raises(ExternalToolError):
        lifecycle.copy("missing", "secret")
    assert lifecycle.live_field == "secret"
    assert clipboard.paste_text() == "hunter2"
    lifecycle.purge()


def test_concurrent_copies_leave_one_live_slot(clipboard) -> None:
    lifecycle = SecretClipboard(_resolve, timeout=30, adapter=clipboard, notify=lambda _message: None)
    barrier = threading.Barrier(8)

    def _worker(index: int) -> None:
        barrier.wait()
        lifecycle.copy("site" if index % 2 else "bank", "secret")
        if index % 3 == 0:
            lifecycle.purge()

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    live_timers = [
        t
        for t in threading.enumerate()
        if isinstance(t, threading.Timer)
        and getattr(t.function, "__self__", None) is lifecycle
        and not t.finished.is_set()
    ]
    if lifecycle.live:
        assert live_timers == [lifecycle.pending_timer]
        assert clipboard.paste_text() in {"hunter2", "correct horse battery staple"}
    else:
        assert live_timers == []
        assert clipboard.paste_text() == ""
    lifecycle.purge()


@pytest.mark.parametrize("timeout", [0, -1, float("inf"), float("nan")])
def test_rejects_unusable_timeout(clipboard, timeout: float) -> None:
    with pytest.raises(ConfigurationError):
        SecretClipboard(_resolve, timeout=timeout, adapter=clipboard)


@pytest.mark.parametrize("timeout", [-1, 0, float("inf"), float("nan")])
def test_per_copy_timeout_is_validated(lifecycle: SecretClipboard, clipboard, notices: List[str], timeout: float) -> None:
    with pytest.raises(ConfigurationError):
        lifecycle.copy("site", "secret", timeout=timeout)
    assert not lifecycle.live
    assert clipboard.writes == []
    assert notices == []


class UnreadableClipboard:
    def __init__(self) -> None:
        self.text = ""
        self.writes: List[str] = []

    def copy_text(self, text: str) -> None:
        self.text = text
        self.writes.append(text)

    def paste_text(self) -> str:
        raise ClipboardUnavailableError("no paste support")


class ReadOnlyClipboard(UnreadableClipboard):
    def copy_text(self, text: str) -> None:
        if not text:
            raise ClipboardUnavailableError("clipboard went away")
        super().copy_text(text)

    def paste_text(self) -> str:
        return self.text


def test_unreadable_clipboard_is_blanked_on_purge(notices: List[str]) -> None:
    adapter = UnreadableClipboard()
    lifecycle = SecretClipboard(_resolve, timeout=30, adapter=adapter, notify=notices.append)
    lifecycle.copy("site", "secret")
    assert lifecycle.purge() is True
    assert adapter.writes == ["hunter2", ""]
    assert not lifecycle.live
    assert lifecycle.history.texts() == [""]
    assert notices[-1] == "Field secret cleared."


def test_timed_purge_survives_unreadable_clipboard(notices: List[str]) -> None:
    adapter = UnreadableClipboard()
    lifecycle = SecretClipboard(_resolve, timeout=0.1, adapter=adapter, notify=notices.append)
    lifecycle.copy("site", "secret")
    assert lifecycle.wait_cleared(3)
    assert adapter.text == ""
    assert not lifecycle.live


def test_purge_finishes_when_clipboard_cannot_be_written(notices: List[str]) -> None:
    adapter = ReadOnlyClipboard()
    lifecycle = SecretClipboard(_resolve, timeout=30, adapter=adapter, notify=notices.append)
    lifecycle.copy("site", "secret")
    assert lifecycle.purge() is True
    assert not lifecycle.live
    assert lifecycle.pending_timer is None
    assert lifecycle.history.texts() == [""]
    assert "could not be cleared" in notices[-1]
