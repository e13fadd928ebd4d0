"""Error taxonomy for certificate issuance.

Every failure that aborts generation derives from :class:`HostCertError`.
Non-fatal conditions (entropy shortfall, seed-file save failure, domain
encoding failure) are logged and collected as diagnostics instead.
"""

from __future__ import annotations


class HostCertError(Exception):
    """Base class for fatal certificate issuance failures.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class ConfigurationError(HostCertError):
    """The request is invalid; raised before any resource is touched."""


class CryptoError(HostCertError):
    """An underlying cryptographic primitive failed."""


class KeyGenerationError(CryptoError):
    """The key pair could not be generated."""


class SigningError(CryptoError):
    """The certificate request or certificate could not be signed."""


class OutputWriteError(HostCertError):
    """The key or certificate file could not be written."""


class EntropyError(HostCertError):
    """The entropy pool was used incorrectly (e.g. consumed twice)."""


class LibraryClosedError(HostCertError):
    """A shared library handle was used after it had been released."""
