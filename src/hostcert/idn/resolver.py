"""Pick the newest versioned shared library in a directory.

Shared libraries are installed as ``<base>.<N>`` (``libidn.so.11``,
``libidn.so.12``).  A higher ``N`` is a more recent ABI revision, so the
highest valid suffix wins.  Ordering is numeric, never lexical:
``libidn.so.10`` beats ``libidn.so.9``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)


def parse_suffix(name: str, base_name: str) -> int | None:
    """Return the integer suffix of ``<base_name>.<N>``, or ``None``.

    Only ASCII digits are admitted; an empty suffix, a sign, whitespace,
    or a dotted version such as ``11.6.16`` is rejected.
    """
    prefix = base_name + "."
    if not name.startswith(prefix):
        return None
    suffix = name[len(prefix) :]
    if not suffix or not (suffix.isascii() and suffix.isdigit()):
        return None
    return int(suffix, 10)


class SuffixSortedFileSet:
    """Paths sharing a base name, ordered by their integer suffix.

    The suffix is parsed once, when a path is added.  Paths whose suffix
    is not a non-negative base-10 integer are rejected; a second path with
    an already-present suffix value (``lib.so.7`` vs ``lib.so.07``) is
    rejected too, so the first representative is kept.
    """

    def __init__(self, base_name: str) -> None:
        self.base_name = base_name
        self._entries: dict[int, Path] = {}

    def add(self, path: str | Path) -> bool:
        """Admit *path*; return ``False`` if it was rejected."""
        path = Path(path)
        suffix = parse_suffix(path.name, self.base_name)
        if suffix is None or suffix in self._entries:
            return False
        self._entries[suffix] = path
        return True

    def suffix_of(self, path: str | Path) -> int | None:
        path = Path(path)
        for suffix, entry in self._entries.items():
            if entry == path:
                return suffix
        return None

    def highest(self) -> Path | None:
        if not self._entries:
            return None
        return self._entries[max(self._entries)]

    def __iter__(self) -> Iterator[Path]:
        for suffix in sorted(self._entries):
            yield self._entries[suffix]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, Path)) and Path(path) in self._entries.values()

    def __repr__(self) -> str:
        names = ", ".join(p.name for p in self)
        return f"<SuffixSortedFileSet {self.base_name}: [{names}]>"


def resolve_versioned_library(directory: str | Path, base_name: str) -> Path | None:
    """Return the highest-versioned ``<base_name>.<N>`` file in *directory*.

    A missing or unreadable directory, or one without a valid candidate,
    yields ``None``: the library is simply unavailable.
    """
    directory = Path(directory)
    candidates = SuffixSortedFileSet(base_name)
    try:
        entries = sorted(directory.iterdir())
    except OSError as exc:
        log.debug("Cannot list %s: %s", directory, exc)
        return None

    for entry in entries:
        if not entry.name.startswith(base_name + "."):
            continue
        if not entry.is_file():
            continue
        if not candidates.add(entry):
            log.debug("Ignoring %s: suffix is not a version number", entry)

    best = candidates.highest()
    if best is not None:
        log.debug("Resolved %s in %s to %s", base_name, directory, best.name)
    return best
