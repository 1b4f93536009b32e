"""High level façade over the password store executable."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from ..config import Settings, load_settings
from ..errors import ExternalToolError, PassfrontError
from ..utils import logbook
from ..utils.clipboard_backend import ClipboardAdapter
from ..utils.shell import flag
from .clipboard_manager import Notifier, SecretClipboard, console_notifier
from .entry_repository import EntryRepository, ParsedEntry, parse_entry
from .process_runner import AsyncInvocation, EditSession, ProcessRunner

logger = logbook.get_logger("store")


class StoreManager:
    """Compose the runner, the entry repository and the clipboard lifecycle."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        runner: Optional[ProcessRunner] = None,
        adapter: Optional[ClipboardAdapter] = None,
        notify: Notifier = console_notifier,
    ) -> None:
        self.settings = settings or load_settings()
        self.runner = runner or ProcessRunner(
            self.settings.executable,
            env={"PASSWORD_STORE_DIR": str(self.settings.store_dir)},
        )
        self.repository = EntryRepository(self.settings.store_dir, suffix=self.settings.entry_suffix)
        self.notify = notify
        self.clipboard = SecretClipboard(
            self.get_field,
            timeout=self.settings.clip_time,
            adapter=adapter,
            notify=notify,
        )

    # -- reading --------------------------------------------------------
    def list(self, subdirectory: str = "") -> List[str]:
        return self.repository.list(subdirectory)

    def show(self, entry: str) -> str:
        """Return the decrypted contents of *entry*."""

        try:
            output = self.runner.run("show", entry, entry=entry)
        except ExternalToolError:
            logbook.record("show", ok=False, entry=entry)
            raise
        logbook.record("show", entry=entry)
        return output

    def parse(self, entry: str) -> ParsedEntry:
        return parse_entry(entry, self.show(entry), url_field=self.settings.url_field)

    def get_field(self, entry: str, field: str) -> str:
        return self.parse(entry).get(field)

    def url(self, entry: str) -> Optional[str]:
        return self.parse(entry).url

    # -- clipboard ------------------------------------------------------
    def copy(self, entry: str, field: str = "secret", *, timeout: Optional[float] = None) -> None:
        self.clipboard.copy(entry, field, timeout=timeout)

    def clear(self) -> bool:
        return self.clipboard.purge()

    # -- writing --------------------------------------------------------
    def generate(
        self,
        entry: str,
        length: Optional[int] = None,
        *,
        force: bool = False,
        no_symbols: bool = False,
        callback: Optional[Callable[[str], None]] = None,
    ) -> AsyncInvocation:
        """Start ``generate`` for *entry* and return the running invocation."""

        size = length if length is not None else self.settings.generated_length
        if size <= 0:
            raise PassfrontError(f"cannot generate '{entry}': length must be positive")
        invocation = self.runner.start(
            "generate",
            flag("--force", force),
            flag("--no-symbols", no_symbols),
            entry,
            size,
            entry=entry,
            callback=callback,
        )
        invocation.on_success(lambda _output: logbook.record("generate", entry=entry, length=size))
        invocation.on_error(lambda error: self._report(error))
        return invocation

    def insert(self, entry: str, contents: str, *, force: bool = False) -> None:
        self.runner.run(
            "insert",
            "--multiline",
            flag("--force", force),
            entry,
            entry=entry,
            input_text=contents,
        )
        logbook.record("insert", entry=entry)

    def edit(self, entry: str) -> EditSession:
        """Open *entry* in the configured editor; only one edit may run at a time."""

        session = self.runner.start_edit(
            entry,
            "edit",
            entry,
            editor=self.settings.editor,
            on_exit=self._edit_finished,
        )
        logbook.record("edit", entry=entry, status="started")
        return session

    def _edit_finished(self, session: EditSession) -> None:
        ok = session.returncode == 0
        logbook.record("edit", ok=ok, entry=session.entry, status="finished", returncode=session.returncode)
        if not ok:
            self.notify(f"Editing {session.entry} failed with exit status {session.returncode}.")

    def remove(self, entry: str, *, recursive: bool = False) -> None:
        self.runner.run("remove", "--force", flag("--recursive", recursive), entry, entry=entry)
        logbook.record("remove", entry=entry, recursive=recursive)

    def rename(self, entry: str, new_entry: str, *, force: bool = False) -> None:
        self.runner.run("rename", flag("--force", force), entry, new_entry, entry=entry)
        logbook.record("rename", entry=entry, target=new_entry)

    def duplicate(self, entry: str, new_entry: str, *, force: bool = False) -> None:
        self.runner.run("copy", flag("--force", force), entry, new_entry, entry=entry)
        logbook.record("duplicate", entry=entry, target=new_entry)

    def init(self, gpg_ids: Iterable[str], *, path: Optional[str] = None) -> str:
        ids = list(gpg_ids)
        if not ids:
            raise PassfrontError("init requires at least one GPG id")
        output = self.runner.run("init", f"--path={path}" if path else None, *ids)
        logbook.record("init", path=path, recipients=len(ids))
        return output

    def git(self, *args: str) -> str:
        output = self.runner.run("git", *args)
        logbook.record("git", command=args[0] if args else None)
        return output

    def version(self) -> str:
        return self.runner.run("version")

    def _report(self, error: ExternalToolError) -> None:
        logbook.record(error.action, ok=False, entry=error.entry, returncode=error.returncode)
        self.notify(str(error))


__all__ = ["StoreManager"]
