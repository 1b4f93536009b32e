"""Core managers powering passfront."""

from .clipboard_manager import SecretClipboard
from .entry_repository import EntryRepository, ParsedEntry, parse_entry
from .process_runner import AsyncInvocation, EditSession, InvocationState, ProcessRunner
from .store_manager import StoreManager

__all__ = [
    "AsyncInvocation",
    "EditSession",
    "EntryRepository",
    "InvocationState",
    "ParsedEntry",
    "ProcessRunner",
    "SecretClipboard",
    "StoreManager",
    "parse_entry",
]
