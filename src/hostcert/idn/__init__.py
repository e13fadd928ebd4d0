"""Internationalized domain name conversion through an optional shared library.

Exports the encoder, the versioned-library resolver, and the scoped
library handle.
"""

from hostcert.idn.encoder import DomainNameEncoder
from hostcert.idn.library import LoadedLibrary, open_library
from hostcert.idn.resolver import SuffixSortedFileSet, resolve_versioned_library

__all__ = [
    "DomainNameEncoder",
    "LoadedLibrary",
    "SuffixSortedFileSet",
    "open_library",
    "resolve_versioned_library",
]
