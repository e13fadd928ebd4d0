"""Best-effort ASCII-compatible encoding of internationalized domain names.

Conversion is delegated to ``idna_to_ascii_8z`` from GNU libidn (or the
``libcidn`` copy shipped with glibc on some distributions), located at
run time with :func:`~hostcert.idn.resolver.resolve_versioned_library`.
The library is optional: when it is missing, lacks the entry point, or
rejects the input, the raw name is returned and the reason is appended
to the caller's diagnostics list.  A certificate with an unconverted
domain is still a usable certificate.

The library is opened per :meth:`DomainNameEncoder.encode` call and
released before the call returns, on every path.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
from typing import TYPE_CHECKING, Any

from hostcert.idn.library import open_library
from hostcert.idn.resolver import resolve_versioned_library

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from contextlib import AbstractContextManager
    from pathlib import Path

    from hostcert.config.settings import IdnSettings
    from hostcert.idn.library import LoadedLibrary

log = logging.getLogger(__name__)

IDNA_TO_ASCII = "idna_to_ascii_8z"
IDNA_STRERROR = "idna_strerror"
IDN_FREE = "idn_free"

IDNA_SUCCESS = 0
IDNA_ALLOW_UNASSIGNED = 0x0001

DEFAULT_SEARCH_DIRS = (
    "/usr/lib64",
    "/lib64",
    "/usr/lib/x86_64-linux-gnu",
    "/lib/x86_64-linux-gnu",
    "/usr/lib",
    "/lib",
)
DEFAULT_LIBRARY_NAMES = ("libcidn.so", "libidn.so")

# Resolved lazily; libc is only needed when the IDN library has no idn_free.
_LIBC_FREE: Callable[[int], None] | None = None


def _get_libc_free() -> Callable[[int], None]:
    global _LIBC_FREE  # noqa: PLW0603
    if _LIBC_FREE is None:
        libc = ctypes.CDLL(ctypes.util.find_library("c"))
        free = libc.free
        free.restype = None
        free.argtypes = [ctypes.c_void_p]
        _LIBC_FREE = free
    return _LIBC_FREE


class _ConversionError(Exception):
    """Internal: the library was usable but could not convert the name."""


def is_ascii(label: str) -> bool:
    return label.isascii()


class DomainNameEncoder:
    """Convert domain names to their ASCII-compatible form.

    Parameters
    ----------
    search_dirs:
        Directories checked in order for the conversion library.
    library_names:
        Library base names tried in each directory, e.g. ``libidn.so``.
    opener:
        Context-manager factory that loads a library path and yields a
        :class:`~hostcert.idn.library.LoadedLibrary`.
    enabled:
        When false, non-ASCII names are never converted.

    """

    def __init__(
        self,
        *,
        search_dirs: Sequence[str | Path] = DEFAULT_SEARCH_DIRS,
        library_names: Sequence[str] = DEFAULT_LIBRARY_NAMES,
        opener: Callable[[Path], AbstractContextManager[LoadedLibrary]] = open_library,
        enabled: bool = True,
    ) -> None:
        self.search_dirs = tuple(search_dirs)
        self.library_names = tuple(library_names)
        self.enabled = enabled
        self._opener = opener

    @classmethod
    def from_settings(cls, settings: IdnSettings) -> DomainNameEncoder:
        return cls(
            search_dirs=settings.search_dirs,
            library_names=settings.library_names,
            enabled=settings.enabled,
        )

    def find_library(self) -> Path | None:
        """Return the first resolvable conversion library, or ``None``."""
        for directory in self.search_dirs:
            for base_name in self.library_names:
                found = resolve_versioned_library(directory, base_name)
                if found is not None:
                    return found
        return None

    def encode(self, raw: str, diagnostics: list[str] | None = None) -> str:
        """Return the ASCII-compatible form of *raw*.

        Pure-ASCII input is returned unchanged without touching any
        library.  On any failure *raw* itself is returned and a message
        explaining why is appended to *diagnostics*.
        """
        if is_ascii(raw):
            return raw

        def _report(message: str) -> str:
            log.warning(
                "Domain name '%s' left unconverted: %s",
                raw,
                message,
                extra={"domain": raw},
            )
            if diagnostics is not None:
                diagnostics.append(message)
            return raw

        if not self.enabled:
            return _report("internationalized domain name conversion is disabled")

        path = self.find_library()
        if path is None:
            dirs = ", ".join(str(d) for d in self.search_dirs)
            names = ", ".join(self.library_names)
            return _report(f"no IDN conversion library ({names}) found in {dirs}")

        try:
            with self._opener(path) as library:
                to_ascii = library.function(
                    IDNA_TO_ASCII,
                    ctypes.c_int,
                    [ctypes.c_char_p, ctypes.POINTER(ctypes.c_void_p), ctypes.c_int],
                )
                if to_ascii is None:
                    return _report(f"library {path} found but entry point {IDNA_TO_ASCII} is missing")
                converted = self._convert(library, to_ascii, raw)
        except _ConversionError as exc:
            return _report(str(exc))
        except OSError as exc:
            return _report(f"could not load {path}: {exc}")
        except Exception as exc:  # noqa: BLE001
            return _report(f"{IDNA_TO_ASCII} from {path} failed: {exc}")

        log.debug("Converted domain name '%s' to '%s'", raw, converted)
        return converted

    @staticmethod
    def _convert(
        library: LoadedLibrary,
        to_ascii: Callable[..., Any],
        raw: str,
    ) -> str:
        """Invoke the entry point and take ownership of its output buffer."""
        output = ctypes.c_void_p()
        rc = to_ascii(raw.encode("utf-8"), ctypes.pointer(output), IDNA_ALLOW_UNASSIGNED)
        if rc != IDNA_SUCCESS:
            msg = f"{IDNA_TO_ASCII} returned error code {rc}{_describe_error(library, rc)}"
            raise _ConversionError(msg)
        if not output.value:
            msg = f"{IDNA_TO_ASCII} reported success but produced no output"
            raise _ConversionError(msg)

        try:
            value = ctypes.string_at(output.value)
        finally:
            _free(library, output.value)

        try:
            converted = value.decode("ascii")
        except UnicodeDecodeError:
            msg = f"{IDNA_TO_ASCII} produced non-ASCII output"
            raise _ConversionError(msg) from None
        if not converted:
            msg = f"{IDNA_TO_ASCII} produced an empty name"
            raise _ConversionError(msg)
        return converted


def _describe_error(library: LoadedLibrary, rc: int) -> str:
    strerror = library.function(IDNA_STRERROR, ctypes.c_char_p, [ctypes.c_int])
    if strerror is None:
        return ""
    text = strerror(rc)
    if not text:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return f" ({text.strip()})"


def _free(library: LoadedLibrary, address: int) -> None:
    idn_free = library.function(IDN_FREE, None, [ctypes.c_void_p])
    if idn_free is not None:
        idn_free(address)
    else:
        _get_libc_free()(address)
