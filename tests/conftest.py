from __future__ import annotations

import stat
import sys
from pathlib import Path
from typing import Callable, Iterator, List

import keyring
import keyring.backend
import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from passfront.config import Settings  # noqa: E402
from passfront.core import ProcessRunner, StoreManager  # noqa: E402
from passfront.utils.clipboard_backend import use_adapter  # noqa: E402


FAKE_PASS = r"""#!/bin/sh
cmd="$1"
[ $# -gt 0 ] && shift
store="${PASSWORD_STORE_DIR:?}"
printf '%s\n' "$cmd" "$@" > "$store/.args"

positional() {
    index="$1"
    shift
    count=0
    for arg in "$@"; do
        case "$arg" in
            --*) continue ;;
        esac
        count=$((count + 1))
        if [ "$count" -eq "$index" ]; then
            printf '%s' "$arg"
            return
        fi
    done
}

case "$cmd" in
    show)
        if [ -f "$store/$1.gpg" ]; then
            cat "$store/$1.gpg"
            exit 0
        fi
        echo "Error: $1 is not in the password store." >&2
        exit 1
        ;;
    generate)
        entry=$(positional 1 "$@")
        length=$(positional 2 "$@")
        if [ "$entry" = "fail" ]; then
            echo "boom" >&2
            exit 3
        fi
        mkdir -p "$(dirname "$store/$entry.gpg")"
        printf 'generated-%s\n' "$length" > "$store/$entry.gpg"
        printf 'The generated password for %s is:\ngenerated-%s\n' "$entry" "$length"
        ;;
    insert)
        entry=$(positional 1 "$@")
        mkdir -p "$(dirname "$store/$entry.gpg")"
        cat > "$store/$entry.gpg"
        ;;
    edit)
        echo "$1" >> "$store/.edits"
        printf '%s' "${EDITOR:-}" > "$store/.editor"
        echo "editing $1"
        while [ ! -f "$store/.release" ]; do
            sleep 0.05
        done
        exit "$(cat "$store/.release")"
        ;;
    flood)
        head -c 300000 /dev/zero | tr '\0' 'y' >&2
        head -c 300000 /dev/zero | tr '\0' 'x'
        ;;
    echo-args)
        printf '%s\n' "$@"
        ;;
    version)
        echo "v1.7.4"
        ;;
    remove|rename|copy|init|git)
        echo "ok"
        ;;
    *)
        echo "Error: unknown command $cmd" >&2
        exit 1
        ;;
esac
"""


class MemoryKeyring(keyring.backend.KeyringBackend):
    priority = 1

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self._data.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self._data[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        self._data.pop((service, username), None)


class MemoryClipboard:
    def __init__(self) -> None:
        self.text = ""
        self.writes: List[str] = []

    def copy_text(self, text: str) -> None:
        self.text = text
        self.writes.append(text)

    def paste_text(self) -> str:
        return self.text


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    state = tmp_path / "state"
    monkeypatch.setenv("PASSFRONT_STATE_DIR", str(state))
    keyring.set_keyring(MemoryKeyring())
    return state


@pytest.fixture()
def store_dir(tmp_path: Path) -> Path:
    path = tmp_path / "store"
    path.mkdir()
    return path


@pytest.fixture()
def fake_pass(tmp_path: Path) -> Path:
    script = tmp_path / "bin" / "pass"
    script.parent.mkdir()
    script.write_text(FAKE_PASS, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture()
def runner(fake_pass: Path, store_dir: Path) -> ProcessRunner:
    return ProcessRunner(str(fake_pass), env={"PASSWORD_STORE_DIR": str(store_dir)})


@pytest.fixture()
def clipboard() -> Iterator[MemoryClipboard]:
    adapter = MemoryClipboard()
    with use_adapter(adapter):
        yield adapter


@pytest.fixture()
def notices() -> List[str]:
    return []


@pytest.fixture()
def manager(fake_pass: Path, store_dir: Path, clipboard: MemoryClipboard, notices: List[str]) -> StoreManager:
    settings = Settings(executable=str(fake_pass), store_dir=store_dir, clip_time=45.0, editor="fake-editor")
    return StoreManager(settings, adapter=clipboard, notify=notices.append)


@pytest.fixture()
def write_entry(store_dir: Path) -> Callable[[str, str], Path]:
    def _write(name: str, text: str) -> Path:
        path = store_dir / f"{name}.gpg"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
