"""Discovery of store entries on disk and parsing of decrypted entry text."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from ..config import DEFAULT_URL_FIELD, ENTRY_SUFFIX
from ..errors import FieldNotFoundError

PASSWORD_FIELDS = frozenset({"secret", "password"})
_SKIPPED_DIRS = frozenset({".git", ".extensions"})

DirectoryId = Tuple[int, int]


def _directory_id(path: str) -> DirectoryId:
    info = os.stat(path)
    return (info.st_dev, info.st_ino)


@dataclass
class ParsedEntry:
    """Decrypted entry split into its password line and ``key: value`` fields."""

    name: str
    password: str
    fields: Dict[str, str] = field(default_factory=dict)
    url_field: str = DEFAULT_URL_FIELD

    def get(self, name: str) -> str:
        if name in PASSWORD_FIELDS:
            return self.password
        try:
            return self.fields[name]
        except KeyError:
            raise FieldNotFoundError(self.name, name) from None

    @property
    def url(self) -> Optional[str]:
        return self.fields.get(self.url_field)

    def field_names(self) -> List[str]:
        return ["secret", *self.fields]


def parse_entry(name: str, text: str, *, url_field: str = DEFAULT_URL_FIELD) -> ParsedEntry:
    """Split the output of ``show`` into password and fields.

    The first line is the password. Every later line containing ``": "``
    becomes a field; the first occurrence of a field name wins.
    """

    lines = text.splitlines()
    password = lines[0] if lines else ""
    fields: Dict[str, str] = {}
    for line in lines[1:]:
        key, sep, value = line.partition(": ")
        if not sep:
            continue
        key = key.strip()
        if key and key not in fields:
            fields[key] = value.strip()
    return ParsedEntry(name=name, password=password, fields=fields, url_field=url_field)


class EntryRepository:
    """Map files under the store root to logical entry names."""

    def __init__(self, root: Path, *, suffix: str = ENTRY_SUFFIX) -> None:
        self.root = Path(root).expanduser()
        self.suffix = suffix

    def entry_path(self, entry: str) -> Path:
        return self.root / f"{entry}{self.suffix}"

    def exists(self, entry: str) -> bool:
        return self.entry_path(entry).is_file()

    def entry_name(self, path: Path) -> str:
        relative = Path(path).relative_to(self.root).as_posix()
        return relative[: -len(self.suffix)]

    def list(self, subdirectory: str = "") -> List[str]:
        """Return every entry below *subdirectory* of the store root.

        Symlinked directories are followed, except those that lead back to a
        directory already on the current path. Entries come back sorted and
        deduplicated.
        """

        base = self.root / subdirectory if subdirectory else self.root
        if not base.is_dir():
            return []
        found: Set[str] = set()
        ancestry: Dict[str, FrozenSet[DirectoryId]] = {}
        for dirpath, dirnames, filenames in os.walk(base, followlinks=True):
            chain = ancestry.pop(dirpath, frozenset()) | {_directory_id(dirpath)}
            kept: List[str] = []
            for name in dirnames:
                if name in _SKIPPED_DIRS:
                    continue
                child = os.path.join(dirpath, name)
                try:
                    identity = _directory_id(child)
                except OSError:
                    continue
                if identity in chain:
                    continue
                ancestry[child] = chain
                kept.append(name)
            dirnames[:] = kept
            for filename in filenames:
                if filename.endswith(self.suffix) and len(filename) > len(self.suffix):
                    found.add(self.entry_name(Path(dirpath) / filename))
        return sorted(found)


__all__ = ["EntryRepository", "ParsedEntry", "parse_entry"]
