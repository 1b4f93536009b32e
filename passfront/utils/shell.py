"""Argument vector construction for the password store executable."""

from __future__ import annotations

import shlex
from typing import Iterable, List, Optional, Sequence, Union

from ..errors import CommandBuildError

ArgumentSlot = Optional[Union[str, int]]


def build_args(*slots: ArgumentSlot) -> List[str]:
    """Return the argument vector for *slots*.

    Absent slots (``None`` or ``""``) are dropped, present ones keep their
    order. Integers are rendered in decimal so callers can pass lengths
    directly.
    """

    args: List[str] = []
    for slot in slots:
        if slot is None or slot == "":
            continue
        if isinstance(slot, bool):
            raise CommandBuildError(f"refusing to render boolean argument {slot!r}")
        if isinstance(slot, int):
            args.append(str(slot))
            continue
        if not isinstance(slot, str):
            raise CommandBuildError(f"unsupported argument type {type(slot).__name__}")
        args.append(slot)
    return args


def flag(name: str, enabled: bool) -> Optional[str]:
    """Return *name* when *enabled* else an absent slot."""

    return name if enabled else None


def _quote(value: str) -> str:
    if "\x00" in value:
        raise CommandBuildError("argument contains a NUL byte and cannot be passed to a shell")
    return shlex.quote(value)


def shell_join(executable: str, args: Sequence[str]) -> str:
    """Escape *executable* and every argument individually and join them.

    Raises :class:`CommandBuildError` instead of emitting a command line
    that is not safely escaped.
    """

    if not executable:
        raise CommandBuildError("executable path must not be empty")
    parts = [_quote(executable)]
    parts.extend(_quote(arg) for arg in _checked(args))
    return " ".join(parts)


def _checked(args: Iterable[str]) -> Iterable[str]:
    for arg in args:
        if not isinstance(arg, str):
            raise CommandBuildError(f"unsupported argument type {type(arg).__name__}")
        yield arg


__all__ = ["ArgumentSlot", "build_args", "flag", "shell_join"]
