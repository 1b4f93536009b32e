"""Command line surface for passfront."""

from __future__ import annotations

import argparse
import sys
from typing import Any, Callable, Dict, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from . import __version__
from .config import load_settings
from .core import InvocationState, StoreManager
from .errors import PassfrontError

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="passfront", description="Front end for the pass password store")
    parser.add_argument("--version", action="store_true", help="Display version information and exit")
    subparsers = parser.add_subparsers(dest="command")

    listing = subparsers.add_parser("list", help="List entries")
    listing.add_argument("subdirectory", nargs="?", default="")

    show = subparsers.add_parser("show", help="Print an entry")
    show.add_argument("entry")
    show.add_argument("--field", default=None, help="Print a single field")

    copy = subparsers.add_parser("copy", help="Copy a field to the clipboard until it is cleared")
    copy.add_argument("entry")
    copy.add_argument("--field", default="secret")
    copy.add_argument("--timeout", type=float, default=None, help="Seconds before the clipboard is cleared")

    subparsers.add_parser("clear", help="Clear a secret copied by this process")

    generate = subparsers.add_parser("generate", help="Generate a new password")
    generate.add_argument("entry")
    generate.add_argument("length", nargs="?", type=int, default=None)
    generate.add_argument("--force", action="store_true")
    generate.add_argument("--no-symbols", action="store_true", dest="no_symbols")
    generate.add_argument("--clip", action="store_true", help="Copy the new password to the clipboard")

    insert = subparsers.add_parser("insert", help="Insert an entry read from standard input")
    insert.add_argument("entry")
    insert.add_argument("--force", action="store_true")

    edit = subparsers.add_parser("edit", help="Edit an entry with the external editor")
    edit.add_argument("entry")

    remove = subparsers.add_parser("remove", help="Remove an entry")
    remove.add_argument("entry")
    remove.add_argument("--recursive", action="store_true")

    for name, help_text in (("rename", "Rename an entry"), ("duplicate", "Copy an entry to a new name")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("entry")
        sub.add_argument("new_entry")
        sub.add_argument("--force", action="store_true")

    init = subparsers.add_parser("init", help="Initialise the store for GPG ids")
    init.add_argument("gpg_ids", nargs="+")
    init.add_argument("--path", default=None)

    git = subparsers.add_parser("git", help="Run git inside the store")
    git.add_argument("git_args", nargs=argparse.REMAINDER)

    subparsers.add_parser("version", help="Show the pass version")
    return parser


def _hold_clipboard(manager: StoreManager) -> None:
    """Keep the process alive until the secret is purged; Ctrl+C purges early."""

    try:
        manager.clipboard.wait_cleared()
    except KeyboardInterrupt:
        manager.clear()


def _handle_list(manager: StoreManager, args: argparse.Namespace) -> int:
    entries = manager.list(args.subdirectory)
    if not entries:
        console.print("No entries found.")
        return 0
    tree = Tree(escape(args.subdirectory) or "Password Store")
    nodes: Dict[str, Tree] = {}
    for entry in entries:
        parent = tree
        prefix = ""
        for part in entry.split("/")[:-1]:
            prefix = f"{prefix}/{part}" if prefix else part
            if prefix not in nodes:
                nodes[prefix] = parent.add(f"[bold blue]{escape(part)}[/]")
            parent = nodes[prefix]
        parent.add(escape(entry.rsplit("/", 1)[-1]))
    console.print(tree)
    return 0


def _handle_show(manager: StoreManager, args: argparse.Namespace) -> int:
    if args.field:
        console.print(manager.get_field(args.entry, args.field), markup=False, soft_wrap=True)
    else:
        console.print(manager.show(args.entry), markup=False, soft_wrap=True, end="")
    return 0


def _handle_copy(manager: StoreManager, args: argparse.Namespace) -> int:
    manager.copy(args.entry, args.field, timeout=args.timeout)
    _hold_clipboard(manager)
    return 0


def _handle_clear(manager: StoreManager, args: argparse.Namespace) -> int:
    if not manager.clear():
        console.print("Nothing to clear.")
    return 0


def _handle_generate(manager: StoreManager, args: argparse.Namespace) -> int:
    invocation = manager.generate(args.entry, args.length, force=args.force, no_symbols=args.no_symbols)
    if invocation.wait() is not InvocationState.SUCCEEDED:
        return 1
    console.print(f"Generated password for {args.entry}.")
    if args.clip:
        manager.copy(args.entry)
        _hold_clipboard(manager)
    return 0


def _handle_insert(manager: StoreManager, args: argparse.Namespace) -> int:
    contents = sys.stdin.read()
    manager.insert(args.entry, contents, force=args.force)
    console.print(f"Inserted {args.entry}.")
    return 0


def _handle_edit(manager: StoreManager, args: argparse.Namespace) -> int:
    session = manager.edit(args.entry)
    returncode = session.wait()
    return 0 if returncode == 0 else 1


def _handle_remove(manager: StoreManager, args: argparse.Namespace) -> int:
    manager.remove(args.entry, recursive=args.recursive)
    console.print(f"Removed {args.entry}.")
    return 0


def _handle_rename(manager: StoreManager, args: argparse.Namespace) -> int:
    manager.rename(args.entry, args.new_entry, force=args.force)
    console.print(f"Renamed {args.entry} to {args.new_entry}.")
    return 0


def _handle_duplicate(manager: StoreManager, args: argparse.Namespace) -> int:
    manager.duplicate(args.entry, args.new_entry, force=args.force)
    console.print(f"Copied {args.entry} to {args.new_entry}.")
    return 0


def _handle_init(manager: StoreManager, args: argparse.Namespace) -> int:
    console.print(manager.init(args.gpg_ids, path=args.path), markup=False, soft_wrap=True, end="")
    return 0


def _handle_git(manager: StoreManager, args: argparse.Namespace) -> int:
    console.print(manager.git(*args.git_args), markup=False, soft_wrap=True, end="")
    return 0


def _handle_version(manager: StoreManager, args: argparse.Namespace) -> int:
    console.print(manager.version(), markup=False, soft_wrap=True, end="")
    return 0


HANDLERS: Dict[str, Callable[[StoreManager, argparse.Namespace], int]] = {
    "list": _handle_list,
    "show": _handle_show,
    "copy": _handle_copy,
    "clear": _handle_clear,
    "generate": _handle_generate,
    "insert": _handle_insert,
    "edit": _handle_edit,
    "remove": _handle_remove,
    "rename": _handle_rename,
    "duplicate": _handle_duplicate,
    "init": _handle_init,
    "git": _handle_git,
    "version": _handle_version,
}


def main(argv: Optional[Sequence[str]] = None, *, manager_factory: Optional[Callable[[], Any]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.version:
        console.print(f"passfront {__version__}")
        return 0
    if args.command is None:
        parser.print_help()
        return 1
    handler = HANDLERS[args.command]
    target = getattr(args, "entry", None)
    try:
        manager = manager_factory() if manager_factory else StoreManager(load_settings())
        return handler(manager, args)
    except PassfrontError as exc:
        action = f"{args.command} {target}" if target else args.command
        err_console.print(f"[red]Error:[/] {escape(action)}: {escape(str(exc))}", soft_wrap=True)
        return 1


__all__ = ["main"]
