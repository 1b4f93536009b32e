"""Exception hierarchy shared across passfront."""

from __future__ import annotations

from typing import Optional, Sequence


class PassfrontError(RuntimeError):
    """Base class for every error raised by passfront."""


class ConfigurationError(PassfrontError):
    """Raised when the runtime configuration is unusable."""


class CommandBuildError(PassfrontError):
    """Raised when an argument cannot be escaped safely."""


class ExternalToolError(PassfrontError):
    """Raised when the password store executable reports a failure.

    The exception keeps the argument vector, the exit status and whatever
    diagnostic text the tool wrote so callers can show the tool's own
    message to the user.
    """

    def __init__(
        self,
        action: str,
        *,
        entry: Optional[str] = None,
        args: Sequence[str] = (),
        returncode: Optional[int] = None,
        diagnostic: str = "",
    ) -> None:
        self.action = action
        self.entry = entry
        self.args_vector = tuple(args)
        self.returncode = returncode
        self.diagnostic = diagnostic.strip()
        super().__init__(self._format())

    def _format(self) -> str:
        target = f" '{self.entry}'" if self.entry else ""
        status = f"exit status {self.returncode}" if self.returncode is not None else "abnormal termination"
        message = f"{self.action}{target} failed ({status})"
        if self.diagnostic:
            message = f"{message}: {self.diagnostic}"
        return message


class EditSessionActiveError(PassfrontError):
    """Raised when an edit session is requested while another is live."""

    def __init__(self, requested: str, active: Optional[str]) -> None:
        self.requested = requested
        self.active = active
        detail = f" (editing '{active}')" if active else ""
        super().__init__(f"cannot edit '{requested}': an edit session is already running{detail}")


class FieldNotFoundError(PassfrontError):
    """Raised when an entry has no field with the requested name."""

    def __init__(self, entry: str, field: str) -> None:
        self.entry = entry
        self.field = field
        super().__init__(f"field '{field}' not found in entry '{entry}'")


class ClipboardUnavailableError(PassfrontError):
    """Raised when the system clipboard cannot be reached."""


__all__ = [
    "ClipboardUnavailableError",
    "CommandBuildError",
    "ConfigurationError",
    "EditSessionActiveError",
    "ExternalToolError",
    "FieldNotFoundError",
    "PassfrontError",
]
