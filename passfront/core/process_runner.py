"""Synchronous and asynchronous invocation of the password store executable."""

from __future__ import annotations

import os
import shutil
import subprocess
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import IO, Callable, Dict, List, Mapping, Optional, Sequence

from ..errors import ConfigurationError, EditSessionActiveError, ExternalToolError
from ..utils.logbook import get_logger
from ..utils.shell import ArgumentSlot, build_args, shell_join

logger = get_logger("process")

SuccessCallback = Callable[[str], None]
ErrorCallback = Callable[[ExternalToolError], None]

_CHUNK_SIZE = 4096


def resolve_executable(executable: str) -> str:
    """Return an absolute path for *executable* or raise :class:`ConfigurationError`."""

    resolved = shutil.which(executable)
    if resolved is None:
        raise ConfigurationError(f"password store executable {executable!r} was not found or is not executable")
    return os.path.abspath(resolved)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class InvocationState(Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AsyncInvocation:
    """One in-flight run of the external tool.

    The invocation moves from ``RUNNING`` to either ``SUCCEEDED`` (exit
    status zero, carrying the complete standard output) or ``FAILED``
    (carrying an :class:`ExternalToolError`). Success callbacks fire exactly
    once, with the full output, and never for a failed run.
    """

    def __init__(self, action: str, entry: Optional[str], args: Sequence[str]) -> None:
        self.action = action
        self.entry = entry
        self.args = tuple(args)
        self.future: "Future[str]" = Future()
        self._lock = threading.Lock()
        self._state = InvocationState.RUNNING
        self._chunks: List[bytes] = []
        self._callbacks: List[SuccessCallback] = []
        self._error_callbacks: List[ErrorCallback] = []
        self.returncode: Optional[int] = None

    @property
    def state(self) -> InvocationState:
        return self._state

    def on_success(self, callback: SuccessCallback) -> "AsyncInvocation":
        """Register *callback*; it runs immediately if the run already succeeded."""

        with self._lock:
            if self._state is InvocationState.RUNNING:
                self._callbacks.append(callback)
                return self
            succeeded = self._state is InvocationState.SUCCEEDED
        if succeeded:
            self._invoke(callback, self.future.result())
        return self

    def on_error(self, callback: ErrorCallback) -> "AsyncInvocation":
        with self._lock:
            if self._state is InvocationState.RUNNING:
                self._error_callbacks.append(callback)
                return self
            failed = self._state is InvocationState.FAILED
        if failed:
            error = self.future.exception()
            if isinstance(error, ExternalToolError):
                self._invoke(callback, error)
        return self

    def result(self, timeout: Optional[float] = None) -> str:
        """Block until the run finishes and return its output or raise its error."""

        return self.future.result(timeout)

    def wait(self, timeout: Optional[float] = None) -> InvocationState:
        try:
            self.future.exception(timeout)
        except FutureTimeoutError:
            pass
        return self._state

    # -- driven by the runner -------------------------------------------
    def _append(self, chunk: bytes) -> None:
        self._chunks.append(chunk)

    def _succeed(self) -> None:
        output = _decode(b"".join(self._chunks))
        self._chunks.clear()
        with self._lock:
            self._state = InvocationState.SUCCEEDED
            callbacks, self._callbacks = self._callbacks, []
            self._error_callbacks = []
        for callback in callbacks:
            self._invoke(callback, output)
        self.future.set_result(output)

    def _fail(self, error: ExternalToolError) -> None:
        self._chunks.clear()
        with self._lock:
            self._state = InvocationState.FAILED
            callbacks, self._error_callbacks = self._error_callbacks, []
            self._callbacks = []
        logger.warning("%s", error)
        for callback in callbacks:
            self._invoke(callback, error)
        self.future.set_exception(error)

    def _invoke(self, callback: Callable, value: object) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("callback for %s failed", self.action)


class EditSession:
    """Handle on a live interactive edit run."""

    def __init__(self, entry: str, process: subprocess.Popen) -> None:
        self.entry = entry
        self.process = process
        self._done = threading.Event()

    @property
    def active(self) -> bool:
        return not self._done.is_set()

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        self._done.wait(timeout)
        return self.process.returncode if self._done.is_set() else None


class ProcessRunner:
    """Run the password store executable.

    Parameters
    ----------
    executable:
        Name or path of the tool; resolved on ``PATH`` immediately so a
        missing tool fails at setup rather than on first use.
    env:
        Extra environment variables exported to every child process.
    """

    def __init__(self, executable: str, *, env: Optional[Mapping[str, str]] = None) -> None:
        self.executable = resolve_executable(executable)
        self._env_overrides: Dict[str, str] = dict(env or {})
        self._edit_lock = threading.Lock()
        self._edit_session: Optional[EditSession] = None

    def _environment(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        env = os.environ.copy()
        env.update(self._env_overrides)
        if extra:
            env.update(extra)
        return env

    # -- synchronous ----------------------------------------------------
    def run(
        self,
        *slots: ArgumentSlot,
        entry: Optional[str] = None,
        input_text: Optional[str] = None,
        check: bool = True,
    ) -> str:
        """Run the tool through the shell and return its standard output.

        With ``check=False`` the exit status is ignored and callers only see
        the captured text.
        """

        args = build_args(*slots)
        command_line = shell_join(self.executable, args)
        action = args[0] if args else "run"
        logger.debug("running %s", action)
        completed = subprocess.run(
            command_line,
            shell=True,
            input=input_text.encode("utf-8") if input_text is not None else None,
            stdin=subprocess.DEVNULL if input_text is None else None,
            capture_output=True,
            env=self._environment(),
        )
        stdout = _decode(completed.stdout)
        if check and completed.returncode != 0:
            raise ExternalToolError(
                action,
                entry=entry,
                args=args,
                returncode=completed.returncode,
                diagnostic=_decode(completed.stderr) or stdout,
            )
        return stdout

    # -- asynchronous ---------------------------------------------------
    def start(
        self,
        *slots: ArgumentSlot,
        entry: Optional[str] = None,
        callback: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> AsyncInvocation:
        """Spawn the tool without blocking and return its :class:`AsyncInvocation`."""

        args = build_args(*slots)
        action = args[0] if args else "run"
        invocation = AsyncInvocation(action, entry, args)
        if callback is not None:
            invocation.on_success(callback)
        if on_error is not None:
            invocation.on_error(on_error)
        try:
            process = subprocess.Popen(
                [self.executable, *args],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self._environment(),
            )
        except OSError as exc:
            invocation._fail(ExternalToolError(action, entry=entry, args=args, diagnostic=str(exc)))
            return invocation
        supervisor = threading.Thread(
            target=self._supervise,
            args=(invocation, process),
            name=f"passfront-{action}",
            daemon=True,
        )
        supervisor.start()
        return invocation

    def _supervise(self, invocation: AsyncInvocation, process: subprocess.Popen) -> None:
        diagnostics: List[bytes] = []
        stderr_reader = threading.Thread(
            target=self._drain,
            args=(process.stderr, diagnostics.append),
            daemon=True,
        )
        stderr_reader.start()
        self._drain(process.stdout, invocation._append)
        stderr_reader.join()
        returncode = process.wait()
        invocation.returncode = returncode
        if returncode == 0:
            invocation._succeed()
            return
        invocation._fail(
            ExternalToolError(
                invocation.action,
                entry=invocation.entry,
                args=invocation.args,
                returncode=returncode,
                diagnostic=_decode(b"".join(diagnostics)),
            )
        )

    @staticmethod
    def _drain(stream: Optional[IO[bytes]], sink: Callable[[bytes], None]) -> None:
        if stream is None:
            return
        with stream:
            while True:
                chunk = stream.read1(_CHUNK_SIZE)  # type: ignore[attr-defined]
                if not chunk:
                    break
                sink(chunk)

    # -- interactive edit -----------------------------------------------
    @property
    def edit_session(self) -> Optional[EditSession]:
        return self._edit_session

    def start_edit(
        self,
        entry: str,
        *slots: ArgumentSlot,
        editor: Optional[str] = None,
        on_exit: Optional[Callable[[EditSession], None]] = None,
    ) -> EditSession:
        """Hand *entry* to an external editor through the tool's ``edit`` command.

        Only one session may be live; a second request raises
        :class:`EditSessionActiveError` before anything is spawned.
        """

        if not self._edit_lock.acquire(blocking=False):
            active = self._edit_session.entry if self._edit_session else None
            raise EditSessionActiveError(entry, active)
        args = build_args(*slots)
        extra = {"EDITOR": editor} if editor else None
        try:
            process = subprocess.Popen(
                [self.executable, *args],
                stdout=subprocess.DEVNULL,
                env=self._environment(extra),
            )
        except OSError as exc:
            self._edit_lock.release()
            raise ExternalToolError("edit", entry=entry, args=args, diagnostic=str(exc)) from exc
        session = EditSession(entry, process)
        self._edit_session = session
        watcher = threading.Thread(
            target=self._watch_edit,
            args=(session, on_exit),
            name="passfront-edit",
            daemon=True,
        )
        watcher.start()
        return session

    def _watch_edit(self, session: EditSession, on_exit: Optional[Callable[[EditSession], None]]) -> None:
        try:
            session.process.wait()
        finally:
            self._edit_session = None
            self._edit_lock.release()
            session._done.set()
        if session.returncode != 0:
            logger.warning("edit of %s exited with status %s", session.entry, session.returncode)
        if on_exit is not None:
            try:
                on_exit(session)
            except Exception:
                logger.exception("edit exit handler for %s failed", session.entry)


__all__ = [
    "AsyncInvocation",
    "EditSession",
    "InvocationState",
    "ProcessRunner",
    "resolve_executable",
]
