"""Scoped ownership of a dynamically loaded shared library.

A :class:`LoadedLibrary` is only ever obtained through
:func:`open_library`, which guarantees the native handle is released on
every path out of the ``with`` block::

    with open_library(path) as lib:
        to_ascii = lib.function("idna_to_ascii_8z", ctypes.c_int, [...])
        if to_ascii is None:
            return raw          # handle still released
        ...

Symbol lookup returns the ctypes function or ``None``; a missing entry
point never leaks an :class:`AttributeError` into callers.  Any use of
the library after release raises :class:`LibraryClosedError`.
"""

from __future__ import annotations

import contextlib
import ctypes
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from hostcert.core.errors import LibraryClosedError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

log = logging.getLogger(__name__)


def _dlclose(handle: Any) -> None:  # noqa: ANN401
    """Release the native handle behind a :class:`ctypes.CDLL`."""
    if not isinstance(handle, ctypes.CDLL):
        return
    import _ctypes  # noqa: PLC0415

    native = getattr(handle, "_handle", None)
    release = getattr(_ctypes, "dlclose", None) or getattr(_ctypes, "FreeLibrary", None)
    if native and release is not None:
        release(native)


class LoadedLibrary:
    """An open shared library with a single owner."""

    def __init__(
        self,
        path: Path,
        handle: Any,  # noqa: ANN401
        closer: Callable[[Any], None] = _dlclose,
    ) -> None:
        self.path = path
        self._handle = handle
        self._closer = closer

    @property
    def closed(self) -> bool:
        return self._handle is None

    def function(
        self,
        name: str,
        restype: Any = None,  # noqa: ANN401
        argtypes: Sequence[Any] | None = None,
    ) -> Callable[..., Any] | None:
        """Return the exported function *name*, or ``None`` if absent.

        Raises
        ------
        LibraryClosedError
            If the library has already been released.

        """
        if self._handle is None:
            msg = f"Shared library {self.path} has been released"
            raise LibraryClosedError(msg)
        try:
            func = self._handle[name]
        except (AttributeError, KeyError):
            return None
        func.restype = restype
        if argtypes is not None:
            func.argtypes = list(argtypes)
        return func

    def close(self) -> None:
        """Release the handle.  Safe to call more than once."""
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            self._closer(handle)
        except Exception as exc:  # noqa: BLE001
            log.debug("Releasing %s failed: %s", self.path, exc)
        log.debug("Released shared library %s", self.path)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<LoadedLibrary {self.path} ({state})>"


@contextlib.contextmanager
def open_library(
    path: str | Path,
    *,
    loader: Callable[[str], Any] = ctypes.CDLL,
    closer: Callable[[Any], None] = _dlclose,
) -> Iterator[LoadedLibrary]:
    """Load *path* and yield a :class:`LoadedLibrary`, released on exit.

    Load failures propagate as :class:`OSError` before anything is
    yielded, so there is nothing to release.
    """
    path = Path(path)
    library = LoadedLibrary(path, loader(str(path)), closer)
    log.debug("Loaded shared library %s", path)
    try:
        yield library
    finally:
        library.close()
